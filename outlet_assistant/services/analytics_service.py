"""
ANALYTICS SERVICE MODULE
========================

Learning progress for the dashboard, computed from a user's saved
conversations and messages: practice sessions, a rough pronunciation score,
grammar accuracy, active vocabulary, streaks and the last week's activity.

All scores are heuristics over the text the learner typed; nothing here calls
an external model. The compute_* functions are pure so they can be tested
with plain lists of dicts.
"""

import re
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from outlet_assistant.services.conversation_store import ConversationStore
from outlet_assistant.services.feedback_service import round_half_up


_CAPITAL = re.compile(r"[A-Z]")
_END_PUNCTUATION = re.compile(r"[.!?]")
_ARTICLE = re.compile(r"\b(a|an|the)\b", re.IGNORECASE)

# Each slip costs 0.2 grammar points per message it appears in. Slips are
# matched against the lowercased message, so "I am" counts as well.
_LOWERCASE_I = re.compile(r"\bi am\b")
_ME_AND = re.compile(r"\bme and\b", re.IGNORECASE)
_MISSING_APOSTROPHE = [
    re.compile(r"\bdont\b", re.IGNORECASE),
    re.compile(r"\bcant\b", re.IGNORECASE),
    re.compile(r"\bwont\b", re.IGNORECASE),
]


def _user_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [m for m in messages if m.get("role") == "user"]


def _day(timestamp: str) -> str:
    """YYYY-MM-DD part of an ISO timestamp."""
    return (timestamp or "")[:10]


def compute_pronunciation_score(messages: List[Dict[str, Any]], session_count: int) -> float:
    if not messages:
        return 0.0

    score = 7.0
    user_msgs = _user_messages(messages)
    assistant_count = len(messages) - len(user_msgs)

    if user_msgs:
        avg_length = sum(len(m.get("content", "")) for m in user_msgs) / len(user_msgs)
        if avg_length > 50:
            score += 0.5
        if avg_length > 100:
            score += 0.5

    most = max(len(user_msgs), assistant_count)
    if most:
        score += min(len(user_msgs), assistant_count) / most

    if session_count > 10:
        score += 0.5
    if session_count > 20:
        score += 0.5

    return min(10.0, max(0.0, score))


def compute_grammar_accuracy(messages: List[Dict[str, Any]]) -> float:
    if not messages:
        return 0.0

    accuracy = 85.0
    for message in _user_messages(messages):
        content = message.get("content", "")
        if _CAPITAL.search(content):
            accuracy += 0.5
        if _END_PUNCTUATION.search(content):
            accuracy += 0.5
        if _ARTICLE.search(content):
            accuracy += 0.3

        slips = [_LOWERCASE_I, _ME_AND] + _MISSING_APOSTROPHE
        lowered = content.lower()
        accuracy -= 0.2 * sum(1 for pattern in slips if pattern.search(lowered))

    return min(100.0, max(0.0, accuracy))


def extract_vocabulary(messages: List[Dict[str, Any]], limit: int = 20) -> List[str]:
    """Words (3+ letters) the learner used more than once, most frequent first."""
    words = []
    for message in _user_messages(messages):
        text = re.sub(r"[^\w\s]", "", message.get("content", "").lower())
        words.extend(word for word in text.split() if len(word) > 2)

    counts = Counter(words)
    repeated = [(word, count) for word, count in counts.items() if count > 1]
    repeated.sort(key=lambda item: item[1], reverse=True)
    return [word for word, _ in repeated[:limit]]


def compute_learning_streak(conversations: List[Dict[str, Any]], today: date) -> int:
    """Consecutive days, ending today, on which at least one conversation was started."""
    days = {_day(conv.get("created_at", "")) for conv in conversations}
    streak = 0
    current = today
    for _ in range(30):
        if current.isoformat() not in days:
            break
        streak += 1
        current -= timedelta(days=1)
    return streak


def compute_recent_activity(
    conversations: List[Dict[str, Any]],
    messages: List[Dict[str, Any]],
    today: date,
) -> List[Dict[str, Any]]:
    """Sessions started and messages sent on each of the last 7 days, oldest first."""
    activity = []
    for offset in range(6, -1, -1):
        day = (today - timedelta(days=offset)).isoformat()
        activity.append({
            "date": day,
            "sessions": sum(1 for conv in conversations if _day(conv.get("created_at", "")) == day),
            "messages": sum(1 for msg in messages if _day(msg.get("created_at", "")) == day),
        })
    return activity


def find_common_grammar_errors(messages: List[Dict[str, Any]], limit: int = 5) -> List[str]:
    errors: List[str] = []
    for message in _user_messages(messages):
        content = message.get("content", "").lower()
        found = []
        if _LOWERCASE_I.search(content):
            found.append("Capitalization")
        if re.search(r"\bdont\b", content, re.IGNORECASE):
            found.append("Contractions")
        if _ME_AND.search(content):
            found.append("Pronoun usage")
        errors.extend(label for label in found if label not in errors)
    return errors[:limit]


def empty_analytics() -> Dict[str, Any]:
    return {
        "sessionsCompleted": 0,
        "pronunciationScore": 0,
        "grammarAccuracy": 0,
        "activeVocabulary": 0,
        "totalMessages": 0,
        "averageSessionLength": 0,
        "learningStreak": 0,
        "mostUsedWords": [],
        "commonGrammarErrors": [],
        "recentActivity": [],
    }


def compute_analytics(
    conversations: List[Dict[str, Any]],
    messages: List[Dict[str, Any]],
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Dashboard metrics; every metric is zero when the user has no conversations."""
    if not conversations:
        return empty_analytics()

    today = today or datetime.now(timezone.utc).date()
    sessions = len(conversations)
    vocabulary = extract_vocabulary(messages)

    return {
        "sessionsCompleted": sessions,
        "pronunciationScore": round_half_up(compute_pronunciation_score(messages, sessions) * 10) / 10,
        "grammarAccuracy": round_half_up(compute_grammar_accuracy(messages)),
        "activeVocabulary": len(vocabulary),
        "totalMessages": len(messages),
        "averageSessionLength": round_half_up(len(messages) / sessions * 10) / 10,
        "learningStreak": compute_learning_streak(conversations, today),
        "mostUsedWords": vocabulary[:10],
        "commonGrammarErrors": find_common_grammar_errors(messages),
        "recentActivity": compute_recent_activity(conversations, messages, today),
    }


class AnalyticsService:
    def __init__(self, store: ConversationStore):
        self.store = store

    def get_analytics(self, user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        conversations = self.store.list_conversations(user_id)
        messages = self.store.get_all_messages(user_id, conversations)
        return compute_analytics(conversations, messages, today)
