"""
LLM SERVICE MODULE
==================

Thin wrapper around Groq chat models (langchain-groq). Every chat mode and the
feedback analysis go through LLMService.generate(): a system prompt plus the
conversation so far in, the model's reply text out.

ROUND-ROBIN API KEYS:
  - One ChatGroq client per key in GROQ_API_KEYS (GROQ_API_KEY, GROQ_API_KEY_2, ...).
  - A class-level counter picks the starting key for each request, so consecutive
    requests spread across keys no matter which service instance makes them.
  - If the chosen key fails (rate limit, network), the next key is tried until one
    succeeds; when every key has failed the last error is raised to the caller.
  - Keys are only ever logged masked.
"""

import logging
import threading
from typing import Iterable, List, Optional, Union

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_groq import ChatGroq

from config import GROQ_API_KEYS, GROQ_MODEL
from outlet_assistant.models import ChatMessage


logger = logging.getLogger("outlet_assistant")


class LLMNotConfiguredError(RuntimeError):
    """Raised when a generation is requested but no GROQ_API_KEY is set."""


def escape_curly_braces(text: str) -> str:
    """Double { and } so ChatPromptTemplate treats them as literal text, not variables."""
    return text.replace("{", "{{").replace("}", "}}")


def mask_api_key(key: str) -> str:
    if len(key) <= 8:
        return "****"
    return f"{key[:4]}...{key[-4:]}"


def to_langchain_messages(messages: Iterable[Union[ChatMessage, dict]]) -> List[BaseMessage]:
    """Convert {role, content} messages into LangChain message objects; empty messages are skipped."""
    converted: List[BaseMessage] = []
    for msg in messages:
        role = msg.role if isinstance(msg, ChatMessage) else msg.get("role", "user")
        content = msg.content if isinstance(msg, ChatMessage) else msg.get("content", "")
        if not content:
            continue
        if role == "assistant":
            converted.append(AIMessage(content=content))
        elif role == "system":
            converted.append(SystemMessage(content=content))
        else:
            converted.append(HumanMessage(content=content))
    return converted


# ==============================================================================
# LLM SERVICE CLASS
# ==============================================================================

class LLMService:
    """Generates replies with Groq, rotating across the configured API keys."""

    _shared_key_index = 0
    _lock = threading.Lock()

    def __init__(self, api_keys: Optional[List[str]] = None, model: str = GROQ_MODEL, llm_factory=None):
        """
        api_keys defaults to GROQ_API_KEYS from config. llm_factory(api_key, temperature,
        max_tokens) builds the chat model; it defaults to ChatGroq and can be replaced in tests.
        """
        self.api_keys = list(api_keys if api_keys is not None else GROQ_API_KEYS)
        self.model = model
        self._llm_factory = llm_factory or self._build_groq
        if not self.api_keys:
            logger.warning("GROQ_API_KEY not set. Chat generation will be unavailable.")
        else:
            logger.info("LLM service ready with %s API key(s), model %s", len(self.api_keys), self.model)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_keys)

    def _build_groq(self, api_key: str, temperature: float, max_tokens: int):
        return ChatGroq(
            groq_api_key=api_key,
            model_name=self.model,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    def _next_key_index(self) -> int:
        with LLMService._lock:
            index = LLMService._shared_key_index % len(self.api_keys)
            LLMService._shared_key_index += 1
        return index

    # ------------------------------------------------------------------------------
    # GENERATION
    # ------------------------------------------------------------------------------

    def generate(
        self,
        system_prompt: str,
        messages: Iterable[Union[ChatMessage, dict]],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """
        Send system prompt + conversation to the model and return the reply text (stripped).
        Raises LLMNotConfiguredError without keys, or the last provider error if every key fails.
        """
        if not self.api_keys:
            raise LLMNotConfiguredError("LLM API key is not configured. Please set GROQ_API_KEY.")

        prompt = ChatPromptTemplate.from_messages([
            ("system", escape_curly_braces(system_prompt)),
            MessagesPlaceholder(variable_name="history"),
        ])
        history = to_langchain_messages(messages)

        start = self._next_key_index()
        last_error: Optional[Exception] = None

        for offset in range(len(self.api_keys)):
            index = (start + offset) % len(self.api_keys)
            key = self.api_keys[index]
            try:
                llm = self._llm_factory(key, temperature, max_tokens)
                chain = prompt | llm
                result = chain.invoke({"history": history})
                content = getattr(result, "content", result)
                logger.info(
                    "LLM reply generated with key #%s (%s), %s chars",
                    index + 1, mask_api_key(key), len(content or ""),
                )
                return (content or "").strip()
            except Exception as e:
                last_error = e
                if offset < len(self.api_keys) - 1:
                    logger.warning(
                        "LLM call failed with key #%s (%s), trying next key: %s",
                        index + 1, mask_api_key(key), e,
                    )

        logger.error("LLM call failed with all %s key(s): %s", len(self.api_keys), last_error)
        raise last_error
