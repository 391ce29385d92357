import base64

import pytest

from conftest import FakeLLM, FakeTTS, conversation
from outlet_assistant import prompts
from outlet_assistant.models import ChatMessage, Scenario, UserProfile
from outlet_assistant.services.llm_service import LLMNotConfiguredError
from outlet_assistant.services.tutor_service import (
    ENGLISH_FALLBACK_TEXT,
    FALLBACK_ERROR,
    KANNADA_FALLBACK_TEXT,
    TutorService,
    TutorServiceError,
    last_user_message,
    scenario_tips,
)


class StubKnowledge:
    def __init__(self, context="", error=None):
        self.context = context
        self.error = error
        self.queries = []

    def search_context(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.context


def decoded(result):
    return base64.b64decode(result["audio"]).decode("utf-8")


def test_last_user_message_requires_content():
    assert last_user_message(conversation("Hi", "Hello", "How are you?")) == "How are you?"
    for messages in ([], [ChatMessage(role="user", content="   ")]):
        with pytest.raises(ValueError, match="No user message found"):
            last_user_message(messages)


def test_scenario_tips_fall_back_to_defaults():
    assert scenario_tips("english", "english-grammar")[0] == "Pay attention to sentence structure"
    assert scenario_tips("english", "unknown") == scenario_tips("english", "english-pronunciation-practice")
    assert scenario_tips("kannada", None)[1] == "Speak in Kannada, learn English"


# -----------------------------------------------------------------------------
# TEXT MODES
# -----------------------------------------------------------------------------

def test_outlet_chat_uses_outlet_prompt(fake_llm, fake_tts):
    service = TutorService(fake_llm, fake_tts)
    result = service.outlet_chat(conversation("How do I approach a bakery?"))
    assert result == {"text": "Hello there, nice to meet you."}
    assert fake_llm.calls[0]["system_prompt"] == prompts.OUTLET_ASSISTANT_PROMPT
    assert fake_tts.calls == []


def test_kannada_chat_adds_retrieved_context(fake_tts):
    llm = FakeLLM(["ಕನ್ನಡ: ಮಾವು English: Mango"])
    knowledge = StubKnowledge(context="Mango Delight is the best seller.")
    service = TutorService(llm, fake_tts, knowledge)

    result = service.kannada_chat(conversation("Which flavour sells most?"))

    assert result == {"text": "ಕನ್ನಡ: ಮಾವು English: Mango", "usedContext": True}
    assert knowledge.queries == ["Which flavour sells most?"]
    assert "Mango Delight is the best seller." in llm.calls[0]["system_prompt"]


def test_kannada_chat_without_context_uses_general_prompt(fake_llm, fake_tts):
    service = TutorService(fake_llm, fake_tts, StubKnowledge(error=RuntimeError("index broken")))
    result = service.kannada_chat(conversation("Hello"))
    assert result["usedContext"] is False
    assert fake_llm.calls[0]["system_prompt"] == prompts.KANNADA_TUTOR_GENERAL_PROMPT


def test_kannada_chat_retries_with_fallback_prompt(fake_tts):
    llm = FakeLLM([RuntimeError("model overloaded"), "ಕನ್ನಡ: ಸರಿ English: Okay"])
    result = TutorService(llm, fake_tts).kannada_chat(conversation("Hello"))

    assert result["text"] == "ಕನ್ನಡ: ಸರಿ English: Okay"
    fallback_call = llm.calls[1]
    assert fallback_call["system_prompt"] == prompts.KANNADA_TUTOR_FALLBACK_SYSTEM
    assert fallback_call["messages"][0].content == prompts.KANNADA_TUTOR_FALLBACK_USER


def test_kannada_chat_raises_original_error_when_fallback_fails(fake_tts):
    llm = FakeLLM([RuntimeError("first failure"), RuntimeError("second failure")])
    with pytest.raises(RuntimeError, match="first failure"):
        TutorService(llm, fake_tts).kannada_chat(conversation("Hello"))


# -----------------------------------------------------------------------------
# OUTLET TRAINING VOICE MODES
# -----------------------------------------------------------------------------

def test_training_voice_chat_speaks_reply_in_british_english(fake_llm, fake_tts):
    scenario = Scenario(name="bakery", mode="sales", prompt="The owner is busy and sceptical.")
    result = TutorService(fake_llm, fake_tts).training_voice_chat(conversation("Let's start"), scenario)

    assert result["text"] == "Hello there, nice to meet you."
    assert decoded(result) == "[en-GB]Hello there, nice to meet you."
    system_prompt = fake_llm.calls[0]["system_prompt"]
    assert "Scenario Instructions:\nThe owner is busy and sceptical." in system_prompt
    assert system_prompt.endswith("Mode: sales")


def test_onboarding_voice_chat_uses_onboarding_prompt(fake_llm, fake_tts):
    result = TutorService(fake_llm, fake_tts).onboarding_voice_chat(conversation("I want to be a distributor"))
    assert fake_llm.calls[0]["system_prompt"] == prompts.ONBOARDING_PROMPT
    assert fake_tts.calls == [("Hello there, nice to meet you.", "en-GB")]
    assert result["audio"]


# -----------------------------------------------------------------------------
# ENGLISH VOICE TUTOR
# -----------------------------------------------------------------------------

def test_english_voice_chat_returns_audio_tips_and_debug(fake_tts):
    llm = FakeLLM(["Great! Now say 'three' slowly."])
    profile = UserProfile(background="Shop owner", proficiency="intermediate", goals="talk to tourists")

    result = TutorService(llm, fake_tts).english_voice_chat(conversation("Tree"), None, profile)

    assert fake_tts.calls == [("Great! Now say 'three' slowly.", "en-US-learning")]
    assert result["scenarioTips"] == scenario_tips("english", "english-pronunciation-practice")
    assert result["debug"] == {
        "modelUsed": "fake-model",
        "textLength": len("Great! Now say 'three' slowly."),
        "audioLength": len(result["audio"]),
        "voiceUsed": "en-US-Standard-A",
    }
    assert llm.calls[0]["max_tokens"] == 200
    assert "Shop owner" in llm.calls[0]["system_prompt"]
    assert "error" not in result


def test_english_voice_chat_short_reply_uses_spoken_fallback(fake_tts):
    result = TutorService(FakeLLM(["ok"]), fake_tts).english_voice_chat(conversation("Hello"))
    assert result["text"] == ENGLISH_FALLBACK_TEXT
    assert result["error"] == FALLBACK_ERROR
    assert decoded(result) == f"[en-US-learning]{ENGLISH_FALLBACK_TEXT}"


@pytest.mark.parametrize("message, expected", [
    ("Invalid API key provided", "Invalid or expired LLM API key"),
    ("You exceeded your current quota", "API quota exceeded"),
    ("Request timeout after 30s", "AI model response timeout"),
])
def test_english_voice_chat_reports_key_quota_and_timeout_errors(fake_tts, message, expected):
    service = TutorService(FakeLLM([RuntimeError(message)]), fake_tts)
    with pytest.raises(TutorServiceError, match=expected):
        service.english_voice_chat(conversation("Hello"))
    assert fake_tts.calls == []


def test_english_voice_chat_capitalized_timeout_uses_spoken_fallback(fake_tts):
    result = TutorService(FakeLLM([RuntimeError("Timeout")]), fake_tts).english_voice_chat(conversation("Hello"))
    assert result["text"] == ENGLISH_FALLBACK_TEXT
    assert result["error"] == FALLBACK_ERROR


def test_english_voice_chat_propagates_missing_llm_key(fake_tts):
    service = TutorService(FakeLLM([LLMNotConfiguredError("LLM API key is not configured")]), fake_tts)
    with pytest.raises(LLMNotConfiguredError):
        service.english_voice_chat(conversation("Hello"))


def test_english_voice_chat_fails_when_fallback_speech_fails():
    service = TutorService(FakeLLM([RuntimeError("model down")]), FakeTTS(fail=True))
    with pytest.raises(TutorServiceError, match="Both AI model and text-to-speech services are unavailable"):
        service.english_voice_chat(conversation("Hello"))


# -----------------------------------------------------------------------------
# KANNADA DUAL VOICE TUTOR
# -----------------------------------------------------------------------------

def test_kannada_voice_chat_speaks_each_half_in_its_language(fake_tts):
    reply = 'ಕನ್ನಡ: *ನಮಸ್ಕಾರ*! English: "Hello", how are you?'
    result = TutorService(FakeLLM([reply]), fake_tts).kannada_voice_chat(
        conversation("ನಮಸ್ಕಾರ"), user_language="kannada"
    )

    assert result["originalText"] == reply
    assert result["text"] == "ಕನ್ನಡ: ನಮಸ್ಕಾರ! English: Hello, how are you?"
    assert fake_tts.calls == [("ನಮಸ್ಕಾರ!", "kn-IN"), ("Hello, how are you?", "en-US-clear")]
    assert decoded(result) == "[kn-IN]ನಮಸ್ಕಾರ![en-US-clear]Hello, how are you?"
    assert result["debug"]["userLanguage"] == "kannada"
    assert result["scenarioTips"] == scenario_tips("kannada", "kannada-english-conversation")


def test_speak_bilingual_without_markers_reads_everything_in_kannada(fake_llm, fake_tts):
    service = TutorService(fake_llm, fake_tts)
    assert service.speak_bilingual("ನೀವು ಚೆನ್ನಾಗಿ ಮಾತನಾಡುತ್ತೀರಿ") == "[kn-IN]ನೀವು ಚೆನ್ನಾಗಿ ಮಾತನಾಡುತ್ತೀರಿ".encode("utf-8")


def test_speak_bilingual_with_empty_kannada_half(fake_llm, fake_tts):
    TutorService(fake_llm, fake_tts).speak_bilingual("ಕನ್ನಡ: English: Only English here")
    assert fake_tts.calls == [("Only English here", "en-US-clear")]


def test_kannada_voice_chat_fallback_is_bilingual(fake_tts):
    result = TutorService(FakeLLM([RuntimeError("model down")]), fake_tts).kannada_voice_chat(conversation("Hi"))

    assert result["error"] == FALLBACK_ERROR
    assert KANNADA_FALLBACK_TEXT in result["text"] and ENGLISH_FALLBACK_TEXT in result["text"]
    assert fake_tts.calls == [(KANNADA_FALLBACK_TEXT, "kn-IN"), (ENGLISH_FALLBACK_TEXT, "en-US-clear")]


def test_kannada_voice_chat_tts_failure_without_model_is_an_error():
    service = TutorService(FakeLLM([RuntimeError("model down")]), FakeTTS(fail=True))
    with pytest.raises(TutorServiceError):
        service.kannada_voice_chat(conversation("Hi"))


# -----------------------------------------------------------------------------
# WELCOME MESSAGE
# -----------------------------------------------------------------------------

def test_welcome_audio(fake_llm, fake_tts):
    result = TutorService(fake_llm, fake_tts).welcome_audio("Welcome to your practice session!")
    assert decoded(result) == "[en-US-welcome]Welcome to your practice session!"


def test_welcome_audio_rejects_empty_message(fake_llm, fake_tts):
    with pytest.raises(ValueError, match="Invalid or missing welcomeMessage"):
        TutorService(fake_llm, fake_tts).welcome_audio("")
