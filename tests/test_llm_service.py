import pytest
from langchain_core.language_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_core.runnables import RunnableLambda

from outlet_assistant.models import ChatMessage
from outlet_assistant.services.llm_service import (
    LLMNotConfiguredError,
    LLMService,
    escape_curly_braces,
    mask_api_key,
    to_langchain_messages,
)


@pytest.fixture(autouse=True)
def reset_key_rotation(monkeypatch):
    monkeypatch.setattr(LLMService, "_shared_key_index", 0)


def test_to_langchain_messages_maps_roles_and_skips_empty():
    converted = to_langchain_messages([
        ChatMessage(role="user", content="Hi"),
        ChatMessage(role="assistant", content="Hello!"),
        ChatMessage(role="assistant", content=""),
        {"role": "system", "content": "Be brief"},
        {"content": "no role"},
    ])
    assert [type(m) for m in converted] == [HumanMessage, AIMessage, SystemMessage, HumanMessage]
    assert converted[1].content == "Hello!"


def test_helpers():
    assert escape_curly_braces('{"a": 1}') == '{{"a": 1}}'
    assert mask_api_key("gsk_1234567890abcd") == "gsk_...abcd"
    assert mask_api_key("short") == "****"


def test_generate_without_keys_raises():
    service = LLMService(api_keys=[])
    assert not service.is_configured
    with pytest.raises(LLMNotConfiguredError):
        service.generate("system", [ChatMessage(role="user", content="Hi")])


def test_generate_sends_system_prompt_and_history():
    seen = []

    def respond(prompt_value):
        seen.extend(prompt_value.to_messages())
        return AIMessage(content="  Namaskara!  ")

    service = LLMService(api_keys=["key-one-123456"], llm_factory=lambda key, t, m: RunnableLambda(respond))
    reply = service.generate(
        'Reply as JSON like {"score": 1}',
        [ChatMessage(role="user", content="Hello"), ChatMessage(role="assistant", content="Hi")],
    )

    assert reply == "Namaskara!"
    assert isinstance(seen[0], SystemMessage)
    assert seen[0].content == 'Reply as JSON like {"score": 1}'
    assert [m.content for m in seen[1:]] == ["Hello", "Hi"]


def test_generate_passes_sampling_settings_to_factory():
    built = []

    def factory(key, temperature, max_tokens):
        built.append((key, temperature, max_tokens))
        return FakeListChatModel(responses=["ok"])

    LLMService(api_keys=["k1"], llm_factory=factory).generate("s", [], temperature=0.2, max_tokens=1500)
    assert built == [("k1", 0.2, 1500)]


def test_keys_rotate_between_requests():
    used = []

    def factory(key, temperature, max_tokens):
        used.append(key)
        return FakeListChatModel(responses=["ok"])

    service = LLMService(api_keys=["k1", "k2", "k3"], llm_factory=factory)
    for _ in range(4):
        service.generate("s", [ChatMessage(role="user", content="hi")])
    assert used == ["k1", "k2", "k3", "k1"]


def test_rotation_is_shared_between_instances():
    used = []

    def factory(key, temperature, max_tokens):
        used.append(key)
        return FakeListChatModel(responses=["ok"])

    first = LLMService(api_keys=["k1", "k2"], llm_factory=factory)
    second = LLMService(api_keys=["k1", "k2"], llm_factory=factory)
    first.generate("s", [])
    second.generate("s", [])
    assert used == ["k1", "k2"]


def test_failed_key_falls_through_to_next():
    def factory(key, temperature, max_tokens):
        if key == "k1":
            def fail(_):
                raise RuntimeError("Error code: 429 - rate limit reached")
            return RunnableLambda(fail)
        return FakeListChatModel(responses=[f"answer from {key}"])

    service = LLMService(api_keys=["k1", "k2"], llm_factory=factory)
    assert service.generate("s", []) == "answer from k2"


def test_all_keys_failing_raises_last_error():
    def factory(key, temperature, max_tokens):
        def fail(_):
            raise RuntimeError(f"{key} failed")
        return RunnableLambda(fail)

    service = LLMService(api_keys=["k1", "k2"], llm_factory=factory)
    with pytest.raises(RuntimeError, match="k2 failed"):
        service.generate("s", [])
