"""
OUTLET ASSISTANT MAIN API
=========================

This module defines the FastAPI application and all HTTP endpoints used by
the web client: the outlet assistant chat, the English / Kannada tutors (text
and voice), feedback reports, signup, saved conversations and analytics.

ENDPOINTS:
  GET  /                              - API name and list of endpoints.
  GET  /health                        - Which services are initialized.
  POST /api/chat                      - Outlet approach assistant (text).
  POST /api/kannada-chat              - Bilingual tutor with knowledge-base context (text).
  POST /api/voicechat                 - Sales / game training assistant (text + audio).
  POST /api/onboardingchat            - Distributor onboarding interview (text + audio).
  GET|POST /api/english-voicechat     - Pronunciation coach (status / text + audio).
  GET|POST /api/kannada-voicechat     - Dual voice Kannada / English tutor (status / text + audio).
  GET|POST /api/welcome-msg           - Speak the welcome message (status / audio).
  GET|POST /api/feedback              - Feedback report for a practice conversation.
  POST /api/auth/signup               - Create a confirmed account.
  GET|POST /api/conversations         - List / create the user's conversations.
  PATCH|DELETE /api/conversations/{id}           - Rename / delete a conversation.
  GET|POST /api/conversations/{id}/messages      - Read / append messages.
  GET  /api/analytics                 - Learning analytics for the signed-in user.

AUTH:
  Conversation and analytics routes need "Authorization: Bearer <supabase access token>".

STARTUP:
  The lifespan function indexes the knowledge base, then creates the LLM, TTS,
  tutor, feedback, conversation and analytics services.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from config import ALLOWED_ORIGINS, HOST, LOG_LEVEL, PORT
from outlet_assistant.models import (
    ChatRequest,
    ChatResponse,
    ConversationCreate,
    ConversationUpdate,
    FeedbackRequest,
    MessageCreate,
    SignupRequest,
    VoiceChatResponse,
    WelcomeRequest,
    WelcomeResponse,
)
from outlet_assistant.services.analytics_service import AnalyticsService
from outlet_assistant.services.conversation_store import (
    ConversationNotFound,
    ConversationStore,
    SignupError,
    create_supabase_client,
)
from outlet_assistant.services.feedback_service import FeedbackService
from outlet_assistant.services.llm_service import LLMService
from outlet_assistant.services.tts_service import TTSService
from outlet_assistant.services.tutor_service import TutorService
from outlet_assistant.services.vector_store import VectorStoreService


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("outlet_assistant")

# User-friendly message when the LLM provider rate limit is exceeded.
RATE_LIMIT_MESSAGE = (
    "You've reached the API limit for this assistant. "
    "Please try again in a little while."
)

LLM_KEY_MISSING = "LLM API key is not configured. Please set GROQ_API_KEY in your environment variables."
TTS_KEY_MISSING = "Google TTS API key is not configured. Please set GOOGLE_TTS_API_KEY in your environment variables."


def _is_rate_limit_error(exc: Exception) -> bool:
    """True if the exception is a provider rate limit (429 / tokens per day)."""
    msg = str(exc).lower()
    return "429" in msg or "rate limit" in msg or "tokens per day" in msg


def _classify_error(exc: Exception) -> str:
    """Short user-facing label for a failed voice request."""
    message = str(exc)
    if "API key" in message:
        return "API configuration error"
    if "TTS" in message:
        return "Text-to-speech service error"
    if "quota" in message:
        return "API quota exceeded"
    if "timeout" in message:
        return "Request timeout"
    return "Service temporarily unavailable"


# -----------------------------------------------------------------------------
# GLOBAL SERVICE REFERENCES
# -----------------------------------------------------------------------------
# Set during startup (lifespan) and used by the route handlers.
vector_store_service: Optional[VectorStoreService] = None
llm_service: Optional[LLMService] = None
tts_service: Optional[TTSService] = None
tutor_service: Optional[TutorService] = None
feedback_service: Optional[FeedbackService] = None
conversation_store: Optional[ConversationStore] = None
analytics_service: Optional[AnalyticsService] = None


# -------------------------------------------------------------------------
# LIFESPAN (STARTUP / SHUTDOWN)
# -------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build every service once at startup, in dependency order:
      1. VectorStoreService: FAISS index over database/knowledge_data/*.txt
      2. LLMService and TTSService: hosted model / speech clients
      3. TutorService and FeedbackService: chat, voice and feedback logic
      4. ConversationStore and AnalyticsService: only when Supabase is configured
    """
    global vector_store_service, llm_service, tts_service, tutor_service
    global feedback_service, conversation_store, analytics_service

    logger.info("=" * 60)
    logger.info("Outlet Assistant - Starting Up...")
    logger.info("=" * 60)

    try:
        logger.info("Initializing knowledge base...")
        vector_store_service = VectorStoreService()
        vector_store_service.create_vector_store()

        llm_service = LLMService()
        tts_service = TTSService()
        tutor_service = TutorService(llm_service, tts_service, vector_store_service)
        feedback_service = FeedbackService(llm_service)

        client = create_supabase_client()
        if client is not None:
            conversation_store = ConversationStore(client)
            analytics_service = AnalyticsService(conversation_store)

        logger.info("=" * 60)
        logger.info("Service Status:")
        logger.info("    - Knowledge base: %s", "Ready" if vector_store_service.has_knowledge else "Empty")
        logger.info("    - LLM: %s", "Ready" if llm_service.is_configured else "Missing key")
        logger.info("    - Text-to-speech: %s", "Ready" if tts_service.is_configured else "Missing key")
        logger.info("    - Conversations: %s", "Ready" if conversation_store else "Not configured")
        logger.info("=" * 60)
        logger.info("Docs: http://localhost:%s/docs", PORT)

        yield

        logger.info("Shutting down Outlet Assistant. Goodbye!")

    except Exception as e:
        logger.error("Fatal error during startup: %s", e, exc_info=True)
        raise


# -------------------------------------------------------------------------
# FASTAPI APP AND CORS
# -------------------------------------------------------------------------
app = FastAPI(
    title="Outlet Assistant API",
    description="Outlet training assistant and English / Kannada language tutor",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------------------------------------------------
# SERVICE GUARDS
# -------------------------------------------------------------------------

def _require_tutor() -> TutorService:
    if not tutor_service:
        raise HTTPException(status_code=503, detail="Tutor service not initialized")
    return tutor_service


def _require_llm_key():
    if not llm_service or not llm_service.is_configured:
        logger.error("GROQ_API_KEY is not configured")
        raise HTTPException(status_code=500, detail={"error": LLM_KEY_MISSING})


def _require_tts_key():
    if not tts_service or not tts_service.is_configured:
        logger.error("GOOGLE_TTS_API_KEY is not configured")
        raise HTTPException(status_code=500, detail={"error": TTS_KEY_MISSING})


def _require_store() -> ConversationStore:
    if not conversation_store:
        raise HTTPException(status_code=503, detail="Conversation storage not configured")
    return conversation_store


def get_current_user(authorization: Optional[str]):
    """Resolve 'Bearer <token>' to the Supabase user; 401 when missing, malformed or invalid."""
    store = _require_store()
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Malformed authorization header")

    user = store.get_user(parts[1])
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user


def _voice_error(e: Exception, what: str) -> HTTPException:
    """Log a failed voice request and build its 500 response ({error, details})."""
    if _is_rate_limit_error(e):
        logger.warning("Rate limit hit: %s", e)
        return HTTPException(status_code=429, detail=RATE_LIMIT_MESSAGE)
    logger.error("Error processing %s: %s", what, e, exc_info=True)
    return HTTPException(status_code=500, detail={"error": _classify_error(e), "details": str(e)})


# =========================================================================
# API ENDPOINTS
# =========================================================================

@app.get("/")
async def root():
    """Return the API name and a short description of each endpoint (for discovery)."""
    return {
        "message": "Outlet Assistant API",
        "endpoints": {
            "/api/chat": "Outlet approach assistant (text)",
            "/api/kannada-chat": "Bilingual Kannada / English tutor (text)",
            "/api/voicechat": "Outlet training assistant (voice)",
            "/api/onboardingchat": "Distributor onboarding interview (voice)",
            "/api/english-voicechat": "English pronunciation coach (voice)",
            "/api/kannada-voicechat": "Dual voice Kannada / English tutor (voice)",
            "/api/welcome-msg": "Spoken welcome message",
            "/api/feedback": "Conversation feedback report",
            "/api/auth/signup": "Create an account",
            "/api/conversations": "Saved conversations",
            "/api/analytics": "Learning analytics",
            "/health": "System health check",
        }
    }


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "vector_store": vector_store_service is not None,
        "llm_service": llm_service is not None,
        "tts_service": tts_service is not None,
        "tutor_service": tutor_service is not None,
        "feedback_service": feedback_service is not None,
        "conversation_store": conversation_store is not None,
    }


# -------------------------------------------------------------------------
# TEXT CHAT
# -------------------------------------------------------------------------

@app.post("/api/chat", response_model=ChatResponse, response_model_exclude_none=True)
def outlet_chat(request: ChatRequest):
    """
    Outlet approach assistant: strategies for pitching to retail outlets,
    competitor analysis and store visits.

    REQUEST BODY:
    {"messages": [{"role": "user", "content": "How do I pitch to a new bakery?"}]}

    RESPONSE:
    {"text": "Start by ..."}
    """
    service = _require_tutor()
    try:
        return service.outlet_chat(request.messages)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        if _is_rate_limit_error(e):
            logger.warning("Rate limit hit: %s", e)
            raise HTTPException(status_code=429, detail=RATE_LIMIT_MESSAGE)
        logger.error("Error processing chat: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error processing chat: {str(e)}")


@app.post("/api/kannada-chat", response_model=ChatResponse, response_model_exclude_none=True)
def kannada_chat(request: ChatRequest):
    """
    Bilingual tutor. Replies come as "ಕನ್ನಡ: ... English: ...". Knowledge-base
    chunks related to the message are added to the prompt when available.
    """
    service = _require_tutor()
    try:
        return service.kannada_chat(request.messages, request.user_language)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        if _is_rate_limit_error(e):
            logger.warning("Rate limit hit: %s", e)
            raise HTTPException(status_code=429, detail=RATE_LIMIT_MESSAGE)
        logger.error("Error processing Kannada chat: %s", e, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail={"error": "Service temporarily unavailable", "details": str(e)},
        )


# -------------------------------------------------------------------------
# VOICE CHAT
# -------------------------------------------------------------------------

@app.post("/api/voicechat", response_model=VoiceChatResponse, response_model_exclude_none=True)
def training_voice_chat(request: ChatRequest):
    """
    Outlet training assistant in the scenario's mode (sales or game). Returns the
    reply text and its en-GB speech as base64 MP3.
    """
    service = _require_tutor()
    try:
        return service.training_voice_chat(request.messages, request.scenario)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise _voice_error(e, "training voice chat")


@app.post("/api/onboardingchat", response_model=VoiceChatResponse, response_model_exclude_none=True)
def onboarding_voice_chat(request: ChatRequest):
    """Distributor onboarding interview: one question at a time, spoken reply."""
    service = _require_tutor()
    try:
        return service.onboarding_voice_chat(request.messages)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise _voice_error(e, "onboarding chat")


@app.get("/api/english-voicechat")
def english_voice_chat_status():
    return {
        "llmKey": bool(llm_service and llm_service.is_configured),
        "ttsKey": bool(tts_service and tts_service.is_configured),
        "message": "English pronunciation learning voice chat API status",
    }


@app.post("/api/english-voicechat", response_model=VoiceChatResponse, response_model_exclude_none=True)
def english_voice_chat(request: ChatRequest):
    """
    English pronunciation coach. Replies are short, English only, and spoken with a
    slower en-US voice. If the model is unavailable a spoken apology is returned
    with "error" set instead of failing the request.
    """
    service = _require_tutor()
    _require_llm_key()
    _require_tts_key()
    try:
        return service.english_voice_chat(request.messages, request.scenario, request.user_profile)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise _voice_error(e, "English voice chat")


@app.get("/api/kannada-voicechat")
def kannada_voice_chat_status():
    return {
        "llmKey": bool(llm_service and llm_service.is_configured),
        "ttsKey": bool(tts_service and tts_service.is_configured),
        "message": "Kannada voice chat API status",
    }


@app.post("/api/kannada-voicechat", response_model=VoiceChatResponse, response_model_exclude_none=True)
def kannada_voice_chat(request: ChatRequest):
    """
    Dual voice tutor. The reply's Kannada half is spoken with a Kannada voice and
    its English half with a clear en-US voice; both are concatenated into one MP3.

    RESPONSE:
    {
        "text": "ಕನ್ನಡ: ... English: ...",   (cleaned for speech)
        "originalText": "...",              (model output as written)
        "audio": "<base64 mp3>",
        "scenarioTips": ["..."],
        "debug": {"modelUsed": "...", "textLength": 120, "audioLength": 40000, "userLanguage": "kannada"}
    }
    """
    service = _require_tutor()
    _require_llm_key()
    _require_tts_key()
    try:
        return service.kannada_voice_chat(
            request.messages, request.scenario, request.user_profile, request.user_language
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise _voice_error(e, "Kannada voice chat")


@app.get("/api/welcome-msg")
def welcome_status():
    return {
        "ttsKey": bool(tts_service and tts_service.is_configured),
        "message": "Welcome message audio API status",
    }


@app.post("/api/welcome-msg", response_model=WelcomeResponse)
def welcome_message(request: WelcomeRequest):
    service = _require_tutor()
    _require_tts_key()
    if not request.welcome_message:
        raise HTTPException(status_code=400, detail="Invalid or missing welcomeMessage")
    try:
        return service.welcome_audio(request.welcome_message)
    except Exception as e:
        logger.error("Error generating welcome message audio: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to synthesize welcome message audio")


# -------------------------------------------------------------------------
# FEEDBACK
# -------------------------------------------------------------------------

@app.get("/api/feedback")
def feedback_status():
    return {
        "llmKey": bool(llm_service and llm_service.is_configured),
        "message": "Feedback API status",
    }


@app.post("/api/feedback")
def feedback(request: FeedbackRequest):
    """
    Feedback report for a practice conversation. With "analyzeIndividual": true
    only the latest user message is scored (earlier ones are context).

    RESPONSE:
    {"feedback": {...}, "conversationStats": {...}, "success": true}
    """
    if not feedback_service:
        raise HTTPException(status_code=503, detail="Feedback service not initialized")
    _require_llm_key()
    try:
        return feedback_service.generate_feedback(
            request.messages,
            scenario=request.scenario,
            user_profile=request.user_profile,
            user_language=request.user_language,
            analyze_individual=request.analyze_individual,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Feedback API error: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail={"error": str(e) or "Failed to generate feedback", "success": False})


# -------------------------------------------------------------------------
# AUTH
# -------------------------------------------------------------------------

@app.post("/api/auth/signup")
def signup(request: SignupRequest):
    """Create an already-confirmed account plus its profile row."""
    store = _require_store()
    if not request.email or not request.password:
        raise HTTPException(status_code=400, detail="Email and password are required")
    try:
        user = store.create_user(request.email, request.password)
    except SignupError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Signup error: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e) or "Internal server error")
    return {"message": "User created successfully", "user": {"id": user.id, "email": user.email}}


# -------------------------------------------------------------------------
# CONVERSATIONS
# -------------------------------------------------------------------------

@app.get("/api/conversations")
def list_conversations(authorization: Optional[str] = Header(None)):
    user = get_current_user(authorization)
    return _require_store().list_conversations(user.id)


@app.post("/api/conversations")
def create_conversation(body: ConversationCreate, authorization: Optional[str] = Header(None)):
    user = get_current_user(authorization)
    return _require_store().create_conversation(user.id, body.title)


@app.patch("/api/conversations/{conversation_id}")
def rename_conversation(
    conversation_id: str, body: ConversationUpdate, authorization: Optional[str] = Header(None)
):
    user = get_current_user(authorization)
    try:
        return _require_store().update_conversation_title(user.id, conversation_id, body.title)
    except ConversationNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.delete("/api/conversations/{conversation_id}")
def delete_conversation(conversation_id: str, authorization: Optional[str] = Header(None)):
    user = get_current_user(authorization)
    try:
        _require_store().delete_conversation(user.id, conversation_id)
    except ConversationNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True}


@app.get("/api/conversations/{conversation_id}/messages")
def get_messages(conversation_id: str, authorization: Optional[str] = Header(None)):
    user = get_current_user(authorization)
    try:
        return _require_store().get_messages(user.id, conversation_id)
    except ConversationNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/api/conversations/{conversation_id}/messages")
def save_message(conversation_id: str, body: MessageCreate, authorization: Optional[str] = Header(None)):
    user = get_current_user(authorization)
    try:
        return _require_store().save_message(user.id, conversation_id, body.role, body.content)
    except ConversationNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


# -------------------------------------------------------------------------
# ANALYTICS
# -------------------------------------------------------------------------

@app.get("/api/analytics")
def analytics(authorization: Optional[str] = Header(None)):
    user = get_current_user(authorization)
    if not analytics_service:
        raise HTTPException(status_code=503, detail="Analytics service not initialized")
    try:
        return analytics_service.get_analytics(user.id)
    except Exception as e:
        logger.error("Error fetching analytics: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching analytics: {str(e)}")


# -------------------------------------------------------------------------
# STANDALONE RUN (python -m outlet_assistant.main)
# -------------------------------------------------------------------------
def run():
    """Start the uvicorn server (same as run.py)."""
    uvicorn.run(
        "outlet_assistant.main:app",
        host=HOST,
        port=PORT,
        reload=True,
        log_level="info"
    )

if __name__ == "__main__":
    run()
