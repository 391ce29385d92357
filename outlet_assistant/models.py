"""
DATA MODELS MODULE
==================

Pydantic models for API requests and responses. The browser client sends
camelCase keys (userProfile, userLanguage, analyzeIndividual, welcomeMessage);
every aliased field also accepts its snake_case name.

MODELS:
  ChatMessage          - One message in a conversation (role + content).
  Scenario             - Training scenario picked in the UI (name, mode, prompt).
  UserProfile          - Learner background, proficiency and goals.
  ChatRequest          - Body of every chat / voice chat endpoint.
  ChatResponse         - Text-only reply (outlet chat, Kannada tutor chat).
  VoiceChatResponse    - Text + base64 MP3 reply, optional tips and debug info.
  WelcomeRequest       - Body of POST /api/welcome-msg.
  FeedbackRequest      - Body of POST /api/feedback.
  SignupRequest        - Body of POST /api/auth/signup.
  ConversationCreate / ConversationUpdate / MessageCreate - conversation CRUD bodies.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from config import MAX_MESSAGE_LENGTH


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ==============================================================================
# CHAT MODELS
# ==============================================================================

class ChatMessage(BaseModel):
    """A single message. Order inside the list defines chronology."""
    role: str       # "user", "assistant" or "system"
    content: str = Field("", max_length=MAX_MESSAGE_LENGTH)


class Scenario(BaseModel):
    name: Optional[str] = None
    mode: Optional[str] = None
    specialization: Optional[str] = None
    prompt: Optional[str] = None


class UserProfile(BaseModel):
    background: Optional[str] = None
    proficiency: Optional[str] = None
    goals: Optional[str] = None


class ChatRequest(_CamelModel):
    """
    Request body for the chat and voice chat endpoints.

    - messages: the whole conversation so far; the last entry is the user's new message.
    - scenario / userProfile: optional context for the training and tutor modes.
    - userLanguage: the learner's preferred language ("kannada" by default).
    """
    messages: List[ChatMessage]
    scenario: Optional[Scenario] = None
    user_profile: Optional[UserProfile] = Field(None, alias="userProfile")
    user_language: str = Field("kannada", alias="userLanguage")


class ChatResponse(_CamelModel):
    text: str
    used_context: Optional[bool] = Field(None, alias="usedContext")


class VoiceChatResponse(_CamelModel):
    """
    Reply of the voice endpoints: the text, the spoken audio as base64 MP3, and
    for the tutor modes a few scenario tips plus debug details. error is set
    when the reply is the canned fallback instead of a model answer.
    """
    text: str
    audio: str
    original_text: Optional[str] = Field(None, alias="originalText")
    scenario_tips: Optional[List[str]] = Field(None, alias="scenarioTips")
    debug: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class WelcomeRequest(_CamelModel):
    welcome_message: Optional[str] = Field(None, alias="welcomeMessage")


class WelcomeResponse(BaseModel):
    audio: str


# ==============================================================================
# FEEDBACK MODELS
# ==============================================================================

class FeedbackRequest(_CamelModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    scenario: Optional[Scenario] = None
    user_profile: Optional[UserProfile] = Field(None, alias="userProfile")
    user_language: str = Field("english", alias="userLanguage")
    analyze_individual: bool = Field(False, alias="analyzeIndividual")


# ==============================================================================
# AUTH AND CONVERSATION MODELS
# ==============================================================================

class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ConversationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class ConversationUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class MessageCreate(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
