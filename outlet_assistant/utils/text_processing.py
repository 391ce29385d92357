"""
TEXT PROCESSING UTILITY
=======================

Small regex helpers for the voice tutor: clean an LLM reply before it is sent
to text-to-speech, split the bilingual "ಕನ್ನಡ: ... English: ..." format into
its two halves, spot grammar corrections, and guess the script of a message.
"""

import re
from typing import Optional, Tuple


KANNADA_MARKER = "ಕನ್ನಡ:"
ENGLISH_MARKER = "English:"

# Straight and curly quotes (double and single).
_QUOTES_RE = re.compile(r"[\"“”'‘’]")
_KANNADA_RE = re.compile(r"[\u0C80-\u0CFF]")
_LATIN_RE = re.compile(r"[a-zA-Z]")

_CORRECTION_PATTERNS = [
    re.compile(r"correct way to say", re.IGNORECASE),
    re.compile(r"should be", re.IGNORECASE),
    re.compile(r"grammar", re.IGNORECASE),
    re.compile(r"correction", re.IGNORECASE),
    re.compile(r"by the way", re.IGNORECASE),
]

_KANNADA_PART_RE = re.compile(re.escape(KANNADA_MARKER) + r"\s*(.*?)(?=\s*" + re.escape(ENGLISH_MARKER) + r"|$)", re.DOTALL)
_ENGLISH_PART_RE = re.compile(re.escape(ENGLISH_MARKER) + r"\s*(.*?)$", re.DOTALL)


def clean_text_for_voice(text: str) -> str:
    """Strip quotes, asterisks, brackets and braces; normalize whitespace so TTS reads it naturally."""
    text = _QUOTES_RE.sub("", text)
    text = text.replace("*", "")
    text = re.sub(r"[\[\]{}]", "", text)
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"\s+([.,!?])", r"\1", text)
    return text.strip()


def has_grammar_correction(text: str) -> bool:
    return any(pattern.search(text) for pattern in _CORRECTION_PATTERNS)


def extract_correction(text: str) -> Optional[str]:
    """
    Return the corrected sentence the tutor suggested, e.g. the part after
    "the correct way to say that would be:". None when the reply has no correction.
    """
    match = re.search(r"correct way to say that would be:\s*(.+?)(?:\n|$)", text, re.IGNORECASE)
    if match:
        return match.group(1).strip()

    match = re.search(r"should be:\s*(.+?)(?:\n|$)", text, re.IGNORECASE)
    if match:
        return match.group(1).strip()

    return None


def format_text_for_display(text: str) -> str:
    """Convert newlines and **bold** / *italic* markdown into simple HTML for the chat bubble."""
    text = text.replace("\n", "<br>")
    text = re.sub(r"\*\*(.*?)\*\*", r"<strong>\1</strong>", text)
    return re.sub(r"\*(.*?)\*", r"<em>\1</em>", text)


def detect_language(text: str) -> str:
    """Return 'kannada', 'english' or 'mixed' from the scripts present; defaults to 'english'."""
    has_kannada = bool(_KANNADA_RE.search(text))
    has_english = bool(_LATIN_RE.search(text))

    if has_kannada and has_english:
        return "mixed"
    if has_kannada:
        return "kannada"
    return "english"


def split_bilingual_text(text: str) -> Tuple[str, str]:
    """
    Split a bilingual reply into (kannada, english).

    The Kannada part runs from "ಕನ್ನಡ:" up to "English:" (or the end); the
    English part runs from "English:" to the end. A missing part is "".
    """
    kannada_match = _KANNADA_PART_RE.search(text)
    english_match = _ENGLISH_PART_RE.search(text)
    return (
        kannada_match.group(1).strip() if kannada_match else "",
        english_match.group(1).strip() if english_match else "",
    )
