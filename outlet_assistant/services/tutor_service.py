"""
TUTOR SERVICE MODULE
====================

Business logic behind every chat and voice endpoint. The API layer validates
the request and calls one method here; the method builds the system prompt,
asks the LLM for a reply and, for voice modes, turns the reply into audio.

MODES:
  outlet_chat            - Text chat with the outlet approach assistant.
  kannada_chat           - Bilingual text tutor with knowledge-base context (RAG).
  training_voice_chat    - Sales / game training assistant, spoken in en-GB.
  onboarding_voice_chat  - Distributor onboarding interview, spoken in en-GB.
  english_voice_chat     - English-only pronunciation coach, slower en-US voice.
  kannada_voice_chat     - Dual voice tutor: Kannada half in kn-IN, English half in en-US.
  welcome_audio          - Speak the UI's welcome message.

FALLBACKS:
  The Kannada text tutor retries with a fixed prompt when generation fails.
  The two tutor voice modes answer with a spoken apology instead of an error,
  unless the failure is a key / quota / timeout problem the user must see.
"""

import logging
from typing import Dict, List, Optional

from outlet_assistant import prompts
from outlet_assistant.models import ChatMessage, Scenario, UserProfile
from outlet_assistant.services.llm_service import LLMNotConfiguredError, LLMService
from outlet_assistant.services.tts_service import TTSNotConfiguredError, TTSService, encode_audio
from outlet_assistant.services.vector_store import VectorStoreService
from outlet_assistant.utils.text_processing import (
    ENGLISH_MARKER,
    KANNADA_MARKER,
    clean_text_for_voice,
    split_bilingual_text,
)


logger = logging.getLogger("outlet_assistant")

FALLBACK_ERROR = "AI model unavailable - using fallback response"
ENGLISH_FALLBACK_TEXT = "I'm having technical difficulties right now. Please try again."
KANNADA_FALLBACK_TEXT = "ನಾನು ಈಗ ತಾಂತ್ರಿಕ ತೊಂದರೆಗಳನ್ನು ಎದುರಿಸುತ್ತಿದ್ದೇನೆ. ದಯವಿಟ್ಟು ಮತ್ತೆ ಪ್ರಯತ್ನಿಸಿ."

DEFAULT_ENGLISH_SCENARIO = Scenario(
    name="english-pronunciation-practice",
    mode="pronunciation",
    specialization="english-learning",
    prompt="",
)
DEFAULT_KANNADA_SCENARIO = Scenario(
    name="kannada-english-conversation",
    mode="conversation",
    specialization="bilingual",
    prompt="",
)

# ==============================================================================
# SCENARIO TIPS
# ==============================================================================

ENGLISH_SCENARIO_TIPS: Dict[str, List[str]] = {
    "english-pronunciation-practice": [
        "Listen carefully to the English pronunciation",
        "Practice repeating the words and phrases",
        "Focus on difficult sounds like 'th' and 'v'",
    ],
    "english-conversation": [
        "Practice speaking in English naturally",
        "Listen to the rhythm and intonation",
        "Try to mimic the pronunciation",
    ],
    "english-grammar": [
        "Pay attention to sentence structure",
        "Practice the correct word order",
        "Listen to natural speech patterns",
    ],
}

KANNADA_SCENARIO_TIPS: Dict[str, List[str]] = {
    "kannada-conversation": [
        "ಕನ್ನಡದಲ್ಲಿ ಮಾತನಾಡಿ, ಇಂಗ್ಲಿಷ್ ಕಲಿಯಿರಿ",
        "Speak in Kannada, learn English",
        "Practice both languages daily",
    ],
    "kannada-pronunciation": [
        "ಕನ್ನಡ ಧ್ವನಿಗಳನ್ನು ಇಂಗ್ಲಿಷ್ ಧ್ವನಿಗಳೊಂದಿಗೆ ಹೋಲಿಸಿ",
        "Compare Kannada sounds with English sounds",
        "Focus on difficult sounds like 'th' and 'v'",
    ],
    "kannada-grammar": [
        "ಕನ್ನಡ ವ್ಯಾಕರಣವನ್ನು ಇಂಗ್ಲಿಷ್ ವ್ಯಾಕರಣದೊಂದಿಗೆ ಹೋಲಿಸಿ",
        "Compare Kannada grammar with English grammar",
        "Practice sentence structure differences",
    ],
    "kannada-vocabulary": [
        "ದೈನಂದಿನ ಪದಗಳನ್ನು ಎರಡೂ ಭಾಷೆಗಳಲ್ಲಿ ಕಲಿಯಿರಿ",
        "Learn everyday words in both languages",
        "Build vocabulary through context",
    ],
}


def scenario_tips(mode: str, scenario_name: Optional[str]) -> List[str]:
    """Tips shown under a voice reply; mode is "english" or "kannada"."""
    if mode == "kannada":
        table, default = KANNADA_SCENARIO_TIPS, "kannada-conversation"
    else:
        table, default = ENGLISH_SCENARIO_TIPS, "english-pronunciation-practice"
    return list(table.get(scenario_name or "", table[default]))


class TutorServiceError(RuntimeError):
    """A failure the caller should report as an error response rather than hide behind a fallback."""


def last_user_message(messages: List[ChatMessage]) -> str:
    """Content of the last message; ValueError when there is none."""
    content = messages[-1].content if messages else ""
    if not content or not content.strip():
        raise ValueError("No user message found")
    return content


def _raise_for_visible_failure(error: Exception):
    """Key, quota and timeout failures are reported to the user instead of falling back."""
    if isinstance(error, (LLMNotConfiguredError, TTSNotConfiguredError)):
        raise error
    message = str(error)
    if "API key" in message:
        raise TutorServiceError("Invalid or expired LLM API key") from error
    if "quota" in message:
        raise TutorServiceError("API quota exceeded - please try again later") from error
    if "timeout" in message:
        raise TutorServiceError("AI model response timeout - please try again") from error


# ==============================================================================
# TUTOR SERVICE CLASS
# ==============================================================================

class TutorService:
    """Runs one request of a chat / voice mode: prompt, LLM reply, optional speech."""

    def __init__(
        self,
        llm_service: LLMService,
        tts_service: TTSService,
        vector_store_service: Optional[VectorStoreService] = None,
    ):
        self.llm = llm_service
        self.tts = tts_service
        self.vector_store = vector_store_service

    # ------------------------------------------------------------------------------
    # TEXT MODES
    # ------------------------------------------------------------------------------

    def outlet_chat(self, messages: List[ChatMessage]) -> dict:
        last_user_message(messages)
        text = self.llm.generate(prompts.OUTLET_ASSISTANT_PROMPT, messages, temperature=0.7, max_tokens=1000)
        return {"text": text}

    def retrieve_context(self, query: str) -> str:
        """Knowledge-base context for query; "" when there is no index or retrieval fails."""
        if not self.vector_store:
            return ""
        try:
            return self.vector_store.search_context(query)
        except Exception as e:
            logger.warning("Knowledge retrieval failed, falling back to general knowledge: %s", e)
            return ""

    def kannada_chat(self, messages: List[ChatMessage], user_language: str = "kannada") -> dict:
        """
        Bilingual tutor reply. Relevant knowledge chunks are added to the prompt when found.
        If generation fails we ask again with a fixed fallback exchange; if that
        also fails the original error is raised.
        """
        user_message = last_user_message(messages)
        logger.info("Kannada tutor message (%s): %s", user_language, user_message[:100])

        context = self.retrieve_context(user_message)
        system_prompt = prompts.build_kannada_tutor_prompt(context)

        try:
            text = self.llm.generate(system_prompt, messages, temperature=0.7, max_tokens=1000)
        except Exception as e:
            logger.error("Kannada tutor generation failed, using fallback prompt: %s", e)
            try:
                text = self.llm.generate(
                    prompts.KANNADA_TUTOR_FALLBACK_SYSTEM,
                    [ChatMessage(role="user", content=prompts.KANNADA_TUTOR_FALLBACK_USER)],
                    temperature=0.7,
                    max_tokens=1000,
                )
            except Exception as fallback_error:
                logger.error("Fallback generation also failed: %s", fallback_error)
                raise e from fallback_error

        return {"text": text, "usedContext": bool(context)}

    # ------------------------------------------------------------------------------
    # OUTLET TRAINING VOICE MODES
    # ------------------------------------------------------------------------------

    def training_voice_chat(self, messages: List[ChatMessage], scenario: Optional[Scenario] = None) -> dict:
        last_user_message(messages)
        system_prompt = prompts.build_training_prompt(scenario)
        text = self.llm.generate(system_prompt, messages, temperature=0.7, max_tokens=1000)
        logger.info("Training reply generated, synthesizing speech...")
        audio = self.tts.synthesize(text, "en-GB")
        return {"text": text, "audio": encode_audio(audio)}

    def onboarding_voice_chat(self, messages: List[ChatMessage]) -> dict:
        last_user_message(messages)
        text = self.llm.generate(prompts.ONBOARDING_PROMPT, messages, temperature=0.7, max_tokens=1000)
        logger.info("Onboarding reply generated, synthesizing speech...")
        audio = self.tts.synthesize(text, "en-GB")
        return {"text": text, "audio": encode_audio(audio)}

    # ------------------------------------------------------------------------------
    # TUTOR VOICE MODES
    # ------------------------------------------------------------------------------

    def english_voice_chat(
        self,
        messages: List[ChatMessage],
        scenario: Optional[Scenario] = None,
        user_profile: Optional[UserProfile] = None,
    ) -> dict:
        """English-only pronunciation coach spoken with the slower en-US learning voice."""
        user_message = last_user_message(messages)
        logger.info("English voice message: %s", user_message[:100])
        current = scenario or DEFAULT_ENGLISH_SCENARIO
        tips = scenario_tips("english", current.name)

        try:
            system_prompt = prompts.build_pronunciation_prompt(current, user_profile)
            text = self.llm.generate(system_prompt, messages, temperature=0.7, max_tokens=200)
            if len(text.strip()) < 5:
                raise ValueError("Empty or invalid response from AI model")

            audio = encode_audio(self.tts.synthesize(text, "en-US-learning"))
            return {
                "text": text,
                "audio": audio,
                "scenarioTips": tips,
                "debug": {
                    "modelUsed": self.llm.model,
                    "textLength": len(text),
                    "audioLength": len(audio),
                    "voiceUsed": "en-US-Standard-A",
                },
            }
        except Exception as e:
            logger.error("English voice reply failed: %s", e)
            _raise_for_visible_failure(e)

        try:
            audio = encode_audio(self.tts.synthesize(ENGLISH_FALLBACK_TEXT, "en-US-learning"))
        except Exception as tts_error:
            logger.error("Fallback speech failed: %s", tts_error)
            raise TutorServiceError("Both AI model and text-to-speech services are unavailable") from tts_error

        return {"text": ENGLISH_FALLBACK_TEXT, "audio": audio, "scenarioTips": tips, "error": FALLBACK_ERROR}

    def speak_bilingual(self, text: str) -> bytes:
        """
        Speak a cleaned tutor reply. With both markers, the Kannada half uses the
        kn-IN voice and the English half the clear en-US voice; a reply without
        markers is read entirely in Kannada.
        """
        if KANNADA_MARKER in text and ENGLISH_MARKER in text:
            kannada, english = split_bilingual_text(text)
            if kannada and english:
                return self.tts.synthesize_sequence([(kannada, "kn-IN"), (english, "en-US-clear")])
            if kannada:
                return self.tts.synthesize(kannada, "kn-IN")
            return self.tts.synthesize(english or text, "en-US-clear")
        return self.tts.synthesize(text, "kn-IN")

    def kannada_voice_chat(
        self,
        messages: List[ChatMessage],
        scenario: Optional[Scenario] = None,
        user_profile: Optional[UserProfile] = None,
        user_language: str = "kannada",
    ) -> dict:
        """Dual voice tutor: bilingual reply, grammar corrections, Kannada + English speech."""
        user_message = last_user_message(messages)
        logger.info("Kannada voice message: %s", user_message[:100])
        current = scenario or DEFAULT_KANNADA_SCENARIO
        tips = scenario_tips("kannada", current.name)

        try:
            system_prompt = prompts.build_dual_voice_prompt(current, user_profile, user_language)
            original = self.llm.generate(system_prompt, messages, temperature=0.7, max_tokens=300)
            cleaned = clean_text_for_voice(original)
            if len(cleaned) < 5:
                raise ValueError("Empty or invalid response from AI model")

            audio = encode_audio(self.speak_bilingual(cleaned))
            return {
                "text": cleaned,
                "originalText": original,
                "audio": audio,
                "scenarioTips": tips,
                "debug": {
                    "modelUsed": self.llm.model,
                    "textLength": len(cleaned),
                    "audioLength": len(audio),
                    "userLanguage": user_language,
                },
            }
        except Exception as e:
            logger.error("Kannada voice reply failed: %s", e)
            _raise_for_visible_failure(e)

        fallback_text = f"{KANNADA_MARKER} {KANNADA_FALLBACK_TEXT}\n{ENGLISH_MARKER} {ENGLISH_FALLBACK_TEXT}"
        try:
            audio = self.tts.synthesize_sequence([
                (KANNADA_FALLBACK_TEXT, "kn-IN"),
                (ENGLISH_FALLBACK_TEXT, "en-US-clear"),
            ])
        except Exception as tts_error:
            logger.error("Fallback speech failed: %s", tts_error)
            raise TutorServiceError("Both AI model and text-to-speech services are unavailable") from tts_error

        return {"text": fallback_text, "audio": encode_audio(audio), "scenarioTips": tips, "error": FALLBACK_ERROR}

    # ------------------------------------------------------------------------------
    # WELCOME MESSAGE
    # ------------------------------------------------------------------------------

    def welcome_audio(self, welcome_message: str) -> dict:
        if not welcome_message or not isinstance(welcome_message, str):
            raise ValueError("Invalid or missing welcomeMessage")
        audio = self.tts.synthesize(welcome_message, "en-US-welcome")
        logger.info("Welcome message audio synthesized")
        return {"audio": encode_audio(audio)}
