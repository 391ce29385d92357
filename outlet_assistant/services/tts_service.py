"""
TEXT-TO-SPEECH SERVICE MODULE
=============================

Turns reply text into MP3 audio with the Google Cloud Text-to-Speech REST API.
The voice endpoints call synthesize() (one voice) or synthesize_sequence()
(Kannada part then English part, concatenated) and send the result to the
browser as base64.

VOICE PROFILES:
  Each mode asks for a named profile rather than a raw Google voice, e.g.
  "kn-IN" for the Kannada half of a bilingual reply or "en-US-learning" for the
  slower, clearer pronunciation coach. Unknown names fall back to "en-GB".
"""

import base64
import logging
from typing import Dict, Iterable, Optional, Tuple

import requests

from config import GOOGLE_TTS_API_KEY, GOOGLE_TTS_ENDPOINT, TTS_MAX_RETRIES, TTS_TIMEOUT_SECONDS
from outlet_assistant.utils.retry import with_retry


logger = logging.getLogger("outlet_assistant")

_HEADPHONES = ["headphone-class-device"]

# languageCode / name select the Google voice; the rest goes into audioConfig.
VOICE_PROFILES: Dict[str, dict] = {
    "en-GB": {"languageCode": "en-GB", "name": "en-GB-Standard-A"},
    "en-US": {"languageCode": "en-US", "name": "en-US-Standard-C", "speakingRate": 1.0},
    "en-IN": {"languageCode": "en-IN", "name": "en-IN-Standard-A", "speakingRate": 1.0},
    "kn-IN": {"languageCode": "kn-IN", "name": "kn-IN-Standard-A", "speakingRate": 1.0},
    "en-US-clear": {
        "languageCode": "en-US", "name": "en-US-Standard-A",
        "speakingRate": 0.9, "effectsProfileId": _HEADPHONES,
    },
    "en-GB-clear": {"languageCode": "en-GB", "name": "en-GB-Standard-B", "speakingRate": 1.0},
    "en-US-learning": {
        "languageCode": "en-US", "name": "en-US-Standard-A",
        "speakingRate": 0.85, "effectsProfileId": _HEADPHONES,
    },
    "en-US-welcome": {
        "languageCode": "en-US", "name": "en-US-Standard-C",
        "speakingRate": 0.85, "effectsProfileId": _HEADPHONES,
    },
}
DEFAULT_VOICE = "en-GB"


class TTSError(RuntimeError):
    """The TTS API rejected the request or returned no audio."""


class TTSNotConfiguredError(TTSError):
    pass


def encode_audio(audio: bytes) -> str:
    return base64.b64encode(audio).decode("ascii")


def build_payload(text: str, voice: str) -> dict:
    """Build the synthesize request body for a voice profile (unknown profiles use en-GB)."""
    profile = VOICE_PROFILES.get(voice, VOICE_PROFILES[DEFAULT_VOICE])
    audio_config = {"audioEncoding": "MP3"}
    if "speakingRate" in profile:
        audio_config["speakingRate"] = profile["speakingRate"]
        audio_config["pitch"] = 0.0
    if "effectsProfileId" in profile:
        audio_config["effectsProfileId"] = list(profile["effectsProfileId"])
    return {
        "input": {"text": text},
        "voice": {"languageCode": profile["languageCode"], "name": profile["name"]},
        "audioConfig": audio_config,
    }


# ==============================================================================
# TTS SERVICE CLASS
# ==============================================================================

class TTSService:
    """Calls Google TTS; retries network errors, raises TTSError on API errors."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: str = GOOGLE_TTS_ENDPOINT,
        session: Optional[requests.Session] = None,
        timeout: float = TTS_TIMEOUT_SECONDS,
        max_retries: int = TTS_MAX_RETRIES,
        retry_delay: float = 0.5,
    ):
        self.api_key = api_key if api_key is not None else GOOGLE_TTS_API_KEY
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        if not self.api_key:
            logger.warning("GOOGLE_TTS_API_KEY not set. Voice replies will be unavailable.")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def synthesize(self, text: str, voice: str = DEFAULT_VOICE) -> bytes:
        """Return MP3 bytes for text spoken with the given voice profile."""
        if not self.api_key:
            raise TTSNotConfiguredError(
                "Google TTS API key is not configured. Please set GOOGLE_TTS_API_KEY in your environment variables."
            )

        payload = build_payload(text, voice)
        logger.info(
            "Synthesizing %s chars with %s (%s)",
            len(text), voice, payload["voice"]["name"],
        )

        response = with_retry(
            lambda: self.session.post(
                self.endpoint,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            ),
            max_retries=self.max_retries,
            initial_delay=self.retry_delay,
            retry_on=(requests.ConnectionError, requests.Timeout),
        )

        if not response.ok:
            raise TTSError(f"TTS API error: {response.status_code} {response.reason} - {response.text}")

        audio_content = response.json().get("audioContent")
        if not audio_content:
            raise TTSError("No audio content returned from Google TTS")

        return base64.b64decode(audio_content)

    def synthesize_sequence(self, parts: Iterable[Tuple[str, str]]) -> bytes:
        """Speak each (text, voice) part in order and concatenate the MP3 streams."""
        audio = b""
        for text, voice in parts:
            chunk = self.synthesize(text, voice)
            logger.info("%s audio length: %s bytes", voice, len(chunk))
            audio += chunk
        return audio
