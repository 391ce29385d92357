"""
FEEDBACK SERVICE MODULE
=======================

Scores a learner's English in a practice conversation. The LLM is asked for a
strict JSON report (scores 1-10, strengths, grammar / vocabulary / fluency
analysis, next steps). When the model fails or its output can't be parsed, a
regex heuristic scores the user's text instead, so the UI always gets a report.

Two analysis types:
  - conversation: the whole transcript.
  - individual:   the latest user message, with up to two earlier user messages as context.

Whatever the source, the report is normalized before it is returned: missing
fields get defaults and scores are clamped to 1-10.
"""

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from outlet_assistant import prompts
from outlet_assistant.models import ChatMessage, Scenario, UserProfile
from outlet_assistant.services.llm_service import LLMService


logger = logging.getLogger("outlet_assistant")

# ==============================================================================
# HEURISTIC PATTERNS
# ==============================================================================

_GRAMMAR_SLIPS = re.compile(r"(i am|i is|i are|he have|she have|they has|i goes|he go|she go)", re.IGNORECASE)
_GREETING = re.compile(r"(hello|hi|hey|good morning|good afternoon|good evening)", re.IGNORECASE)
_POLITE = re.compile(r"(please|thank you|thanks|excuse me|sorry)", re.IGNORECASE)
_CONNECTIVES = re.compile(r"(however|therefore|furthermore|nevertheless|consequently)", re.IGNORECASE)
_PUNCTUATION = re.compile(r"[.!?]")
_CONTRACTIONS = re.compile(r"(don't|can't|won't|isn't|aren't|wasn't|weren't)", re.IGNORECASE)
_EMOTIONAL = re.compile(r"(feel|think|believe|hope|wish|sorry|happy|sad|excited)", re.IGNORECASE)

SCORE_FIELDS = ("overallScore", "professionalism", "tone", "clarity", "empathy")

REQUIRED_FIELD_DEFAULTS: Dict[str, Any] = {
    "overallScore": 6,
    "professionalism": 6,
    "tone": 6,
    "clarity": 6,
    "empathy": 6,
    "strengths": ["Good effort"],
    "areasForImprovement": ["Continue practicing"],
    "grammarAnalysis": {"commonErrors": [], "grammarScore": 6},
    "vocabularyAnalysis": {"vocabularyRange": "Basic", "vocabularyScore": 6, "suggestedWords": []},
    "pronunciationTips": ["Practice regularly"],
    "fluencyAssessment": {"fluencyScore": 6, "fluencyNotes": "Keep practicing"},
    "recommendations": ["Practice daily"],
    "nextSteps": ["Continue learning"],
    "encouragement": "Keep up the good work!",
}

# (section, score key) pairs clamped when present
NESTED_SCORES = (
    ("grammarAnalysis", "grammarScore"),
    ("vocabularyAnalysis", "vocabularyScore"),
    ("fluencyAssessment", "fluencyScore"),
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def heuristic_scores(text: str, individual: bool) -> Dict[str, Any]:
    """
    Score text with simple pattern checks. Returns the seven sub-scores plus the
    flags the fallback report uses to pick its wording.
    """
    word_count = len(text.split(" "))
    has_slips = bool(_GRAMMAR_SLIPS.search(text))
    has_greeting = bool(_GREETING.search(text))
    has_question = "?" in text
    has_polite = bool(_POLITE.search(text))
    has_connectives = bool(_CONNECTIVES.search(text))
    has_punctuation = bool(_PUNCTUATION.search(text))
    has_contractions = bool(_CONTRACTIONS.search(text))
    has_emotion = bool(_EMOTIONAL.search(text))

    long_enough = word_count > (5 if individual else 10)

    grammar = 4 if has_slips else (7 if has_punctuation else 6)
    vocabulary = 8 if has_connectives else (6 if long_enough else 5)
    fluency = 7 if has_contractions else 6
    professionalism = 8 if has_polite else (7 if has_greeting else 6)
    tone = professionalism
    clarity = 7 if (has_question or has_punctuation) else 6
    empathy = 8 if has_emotion else (7 if has_polite else 5)
    overall = round_half_up((grammar + vocabulary + fluency + professionalism + tone + clarity + empathy) / 7)

    return {
        "overall": overall,
        "grammar": grammar,
        "vocabulary": vocabulary,
        "fluency": fluency,
        "professionalism": professionalism,
        "tone": tone,
        "clarity": clarity,
        "empathy": empathy,
        "word_count": word_count,
        "has_slips": has_slips,
        "has_greeting": has_greeting,
    }


def fallback_feedback(text: str, individual: bool) -> Dict[str, Any]:
    """Build a complete feedback report from heuristic_scores() when the LLM can't be used."""
    s = heuristic_scores(text, individual)

    if individual:
        strengths = ["Good greeting etiquette", "Clear communication"] if s["has_greeting"] else ["Attempted communication"]
        improvements = ["Grammar accuracy", "Sentence structure"] if s["has_slips"] else ["Vocabulary expansion", "Grammar practice"]
        errors = ["Subject-verb agreement issues"] if s["has_slips"] else ["Basic grammar needs improvement"]
        vocabulary_range = "Basic" if s["word_count"] < 5 else "Developing"
        suggested = ["improve", "enhance", "develop", "practice", "learn"]
        tips = ["Practice vowel sounds", "Work on intonation", "Listen to native speakers"]
        fluency_notes = "Good effort, needs more practice"
        recommendations = ["Practice daily conversations", "Read English texts", "Listen to English podcasts"]
        next_steps = ["Start with basic grammar exercises", "Practice pronunciation daily"]
    else:
        strengths = (
            ["Good greeting etiquette", "Clear communication", "Engaged in conversation"]
            if s["has_greeting"] else ["Attempted communication", "Participated in conversation"]
        )
        improvements = (
            ["Grammar accuracy", "Sentence structure", "Subject-verb agreement"]
            if s["has_slips"] else ["Vocabulary expansion", "Grammar practice", "Sentence variety"]
        )
        errors = (
            ["Subject-verb agreement issues", "Tense consistency problems"]
            if s["has_slips"] else ["Basic grammar needs improvement", "Sentence structure could be enhanced"]
        )
        vocabulary_range = "Basic" if s["word_count"] < 10 else "Developing"
        suggested = ["improve", "enhance", "develop", "practice", "learn",
                     "communicate", "express", "converse", "discuss", "explain"]
        tips = ["Practice vowel sounds", "Work on intonation", "Listen to native speakers",
                "Record yourself speaking", "Practice stress patterns"]
        fluency_notes = "Good effort, needs more practice with natural speech patterns"
        recommendations = ["Practice daily conversations", "Read English texts", "Listen to English podcasts",
                           "Join conversation groups", "Practice with native speakers"]
        next_steps = ["Start with basic grammar exercises", "Practice pronunciation daily",
                      "Expand vocabulary", "Join conversation practice groups"]

    return {
        "overallScore": s["overall"],
        "professionalism": s["professionalism"],
        "tone": s["tone"],
        "clarity": s["clarity"],
        "empathy": s["empathy"],
        "strengths": strengths,
        "areasForImprovement": improvements,
        "grammarAnalysis": {"commonErrors": errors, "grammarScore": s["grammar"]},
        "vocabularyAnalysis": {
            "vocabularyRange": vocabulary_range,
            "vocabularyScore": s["vocabulary"],
            "suggestedWords": suggested,
        },
        "pronunciationTips": tips,
        "fluencyAssessment": {"fluencyScore": s["fluency"], "fluencyNotes": fluency_notes},
        "recommendations": recommendations,
        "nextSteps": next_steps,
        "encouragement": "Great effort! Keep practicing and you'll see improvement.",
    }


def parse_feedback_json(text: str) -> Dict[str, Any]:
    """
    Parse the model's report. Tries the whole text first, then the outermost {...}
    span (models like to wrap JSON in prose or code fences). Raises ValueError.
    """
    try:
        data = json.loads(text)
    except ValueError:
        match = re.search(r"\{[\s\S]*\}", text)
        if not match:
            raise ValueError("No valid JSON found in AI response")
        try:
            data = json.loads(match.group(0))
        except ValueError as e:
            raise ValueError("Failed to parse AI response") from e

    if not isinstance(data, dict):
        raise ValueError("AI response is not a JSON object")
    return data


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _clamp_score(value: Any) -> Any:
    if _is_number(value):
        return min(10, max(1, value))
    return value


def _is_blank(value: Any) -> bool:
    """Missing, null, empty string, zero or false count as not provided."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if _is_number(value):
        return value == 0
    return False


def normalize_feedback(feedback: Dict[str, Any]) -> Dict[str, Any]:
    """Fill missing fields with defaults and clamp every score into 1-10."""
    feedback = dict(feedback)

    missing = [field for field in REQUIRED_FIELD_DEFAULTS if _is_blank(feedback.get(field))]
    if missing:
        logger.warning("Feedback missing fields, using defaults: %s", missing)
        for field in missing:
            feedback[field] = json.loads(json.dumps(REQUIRED_FIELD_DEFAULTS[field]))

    for field in SCORE_FIELDS:
        feedback[field] = _clamp_score(feedback[field])

    for section, key in NESTED_SCORES:
        block = feedback.get(section)
        if isinstance(block, dict) and block.get(key):
            block = dict(block)
            block[key] = _clamp_score(block[key])
            feedback[section] = block

    return feedback


# ==============================================================================
# FEEDBACK SERVICE CLASS
# ==============================================================================

class FeedbackService:
    """Produces the feedback report for POST /api/feedback."""

    def __init__(self, llm_service: LLMService):
        self.llm = llm_service

    def generate_feedback(
        self,
        messages: List[ChatMessage],
        scenario: Optional[Scenario] = None,
        user_profile: Optional[UserProfile] = None,
        user_language: str = "english",
        analyze_individual: bool = False,
    ) -> Dict[str, Any]:
        """
        Analyze the conversation (or only its latest user message) and return
        {feedback, conversationStats, success}. Raises ValueError for an empty
        history or a history with no user messages.
        """
        if not messages:
            raise ValueError("No conversation history found")

        user_messages = [msg.content for msg in messages if msg.role == "user"]
        if not user_messages:
            raise ValueError("No user messages found in conversation")

        logger.info("Analyzing conversation with %s user messages", len(user_messages))

        if analyze_individual:
            latest = user_messages[-1]
            system_prompt = prompts.build_individual_feedback_prompt(
                latest, user_messages[-3:-1], scenario, user_profile, user_language
            )
            heuristic_text, max_tokens = latest, 1200
        else:
            system_prompt = prompts.build_conversation_feedback_prompt(
                messages, scenario, user_profile, user_language
            )
            heuristic_text, max_tokens = " ".join(user_messages), 1500

        try:
            raw = self.llm.generate(system_prompt, [], temperature=0.2, max_tokens=max_tokens)
            feedback = parse_feedback_json(raw)
        except Exception as e:
            logger.error("AI feedback failed, using heuristic feedback: %s", e)
            feedback = fallback_feedback(heuristic_text, individual=analyze_individual)

        return {
            "feedback": normalize_feedback(feedback),
            "conversationStats": {
                "totalMessages": len(messages),
                "userMessages": len(user_messages),
                "scenario": scenario.name if scenario and scenario.name else "General conversation",
                "analyzedAt": datetime.now(timezone.utc).isoformat(),
                "analysisType": "individual" if analyze_individual else "conversation",
            },
            "success": True,
        }
