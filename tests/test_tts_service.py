import base64

import pytest
import requests

from conftest import FakeHTTPResponse, FakeSession
from outlet_assistant.services.tts_service import (
    TTSError,
    TTSNotConfiguredError,
    TTSService,
    build_payload,
    encode_audio,
)


def audio_response(data: bytes):
    return FakeHTTPResponse(payload={"audioContent": base64.b64encode(data).decode()})


def test_build_payload_for_learning_voice():
    payload = build_payload("Hello", "en-US-learning")
    assert payload == {
        "input": {"text": "Hello"},
        "voice": {"languageCode": "en-US", "name": "en-US-Standard-A"},
        "audioConfig": {
            "audioEncoding": "MP3",
            "speakingRate": 0.85,
            "pitch": 0.0,
            "effectsProfileId": ["headphone-class-device"],
        },
    }


def test_build_payload_plain_and_unknown_voices():
    assert build_payload("Hi", "en-GB")["audioConfig"] == {"audioEncoding": "MP3"}
    assert build_payload("Hi", "fr-FR")["voice"] == {"languageCode": "en-GB", "name": "en-GB-Standard-A"}
    assert build_payload("ನಮಸ್ಕಾರ", "kn-IN")["voice"]["languageCode"] == "kn-IN"


def test_synthesize_posts_with_key_and_decodes_audio():
    session = FakeSession([audio_response(b"mp3-bytes")])
    tts = TTSService(api_key="tts-key", endpoint="https://tts.test/synthesize", session=session)

    assert tts.synthesize("Hello", "en-US-clear") == b"mp3-bytes"
    call = session.calls[0]
    assert call["url"] == "https://tts.test/synthesize"
    assert call["params"] == {"key": "tts-key"}
    assert call["json"]["voice"]["name"] == "en-US-Standard-A"
    assert call["json"]["audioConfig"]["speakingRate"] == 0.9


def test_synthesize_without_key_raises():
    tts = TTSService(api_key="", session=FakeSession([]))
    assert not tts.is_configured
    with pytest.raises(TTSNotConfiguredError, match="API key"):
        tts.synthesize("Hello")


def test_api_error_includes_status_and_body():
    session = FakeSession([FakeHTTPResponse(403, reason="Forbidden", text="API not enabled")])
    tts = TTSService(api_key="tts-key", session=session, retry_delay=0)
    with pytest.raises(TTSError, match="TTS API error: 403 Forbidden - API not enabled"):
        tts.synthesize("Hello")
    assert len(session.calls) == 1


def test_missing_audio_content_is_an_error():
    tts = TTSService(api_key="tts-key", session=FakeSession([FakeHTTPResponse(payload={})]))
    with pytest.raises(TTSError, match="No audio content"):
        tts.synthesize("Hello")


def test_network_errors_are_retried():
    session = FakeSession([requests.ConnectionError("reset"), audio_response(b"ok")])
    tts = TTSService(api_key="tts-key", session=session, max_retries=2, retry_delay=0)
    assert tts.synthesize("Hello") == b"ok"
    assert len(session.calls) == 2


def test_synthesize_sequence_concatenates_in_order():
    session = FakeSession([audio_response(b"kannada-"), audio_response(b"english")])
    tts = TTSService(api_key="tts-key", session=session)

    audio = tts.synthesize_sequence([("ನಮಸ್ಕಾರ", "kn-IN"), ("Hello", "en-US-clear")])

    assert audio == b"kannada-english"
    assert [c["json"]["voice"]["languageCode"] for c in session.calls] == ["kn-IN", "en-US"]


def test_encode_audio():
    assert encode_audio(b"abc") == "YWJj"
