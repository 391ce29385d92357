"""
CONFIGURATION MODULE
====================

PURPOSE:
  Central place for all Outlet Assistant settings: API keys for the hosted
  services (Groq LLM, Google Text-to-Speech, Supabase), knowledge-base paths,
  embedding/retrieval settings and server options.

WHAT THIS FILE DOES:
  - Loads environment variables from .env (so API keys stay out of code).
  - Defines paths to database/knowledge_data and database/vector_store and
    creates them if they don't exist.
  - Exposes GROQ_API_KEYS / GROQ_MODEL for chat generation and feedback.
  - Exposes GOOGLE_TTS_API_KEY and the synthesize endpoint for voice replies.
  - Exposes SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY for auth and conversation storage.

USAGE:
  Import what you need: `from config import GROQ_API_KEYS, GOOGLE_TTS_API_KEY`
  Prompts live in outlet_assistant/prompts.py; this file only holds settings.
"""

import os
from pathlib import Path
from dotenv import load_dotenv


# -----------------------------------------------------------------------------
# ENVIRONMENT
# -----------------------------------------------------------------------------
# Load environment variables from .env file (if it exists).
load_dotenv()


# -----------------------------------------------------------------------------
# BASE PATH
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).parent

# ============================================================================
# DATABASE PATHS
# ============================================================================
# - knowledge_data: .txt files about the brand, products and outlet playbook.
#   They are indexed at startup and retrieved as context for the Kannada tutor.
# - vector_store: FAISS index files written after each build.

KNOWLEDGE_DATA_DIR = Path(os.getenv("KNOWLEDGE_DATA_DIR", str(BASE_DIR / "database" / "knowledge_data")))
VECTOR_STORE_DIR = Path(os.getenv("VECTOR_STORE_DIR", str(BASE_DIR / "database" / "vector_store")))

KNOWLEDGE_DATA_DIR.mkdir(parents=True, exist_ok=True)
VECTOR_STORE_DIR.mkdir(parents=True, exist_ok=True)

# ============================================================================
# GROQ API CONFIGURATION
# ============================================================================
# Set GROQ_API_KEY and optionally GROQ_API_KEY_2, GROQ_API_KEY_3, ... (no upper limit).
# Requests rotate through the keys; when one fails the next is tried.

def _load_groq_api_keys() -> list:
    """
    Read GROQ_API_KEY, then GROQ_API_KEY_2, GROQ_API_KEY_3, ... until a number
    has no value. Returns the non-empty keys in order (possibly empty).
    """
    keys = []
    first = os.getenv("GROQ_API_KEY", "").strip()
    if first:
        keys.append(first)
    i = 2
    while True:
        k = os.getenv(f"GROQ_API_KEY_{i}", "").strip()
        if not k:
            break
        keys.append(k)
        i += 1
    return keys


GROQ_API_KEYS = _load_groq_api_keys()
GROQ_API_KEY = GROQ_API_KEYS[0] if GROQ_API_KEYS else ""
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")

# ============================================================================
# GOOGLE TEXT-TO-SPEECH CONFIGURATION
# ============================================================================
# REST endpoint called with ?key=GOOGLE_TTS_API_KEY; returns base64 MP3 audio.

GOOGLE_TTS_API_KEY = os.getenv("GOOGLE_TTS_API_KEY", "").strip()
GOOGLE_TTS_ENDPOINT = os.getenv(
    "GOOGLE_TTS_ENDPOINT", "https://texttospeech.googleapis.com/v1/text:synthesize"
)
TTS_TIMEOUT_SECONDS = float(os.getenv("TTS_TIMEOUT_SECONDS", "15"))
TTS_MAX_RETRIES = int(os.getenv("TTS_MAX_RETRIES", "2"))

# ============================================================================
# SUPABASE CONFIGURATION
# ============================================================================
# The service role key is needed for admin signup (auto-confirmed users) and
# for server-side conversation storage. Keep it on the server only.

SUPABASE_URL = os.getenv("SUPABASE_URL", os.getenv("NEXT_PUBLIC_SUPABASE_URL", "")).strip()
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "").strip()

# ============================================================================
# EMBEDDING / RETRIEVAL CONFIGURATION
# ============================================================================
# Embeddings run locally (sentence-transformers). RETRIEVAL_TOP_K chunks are
# added to the tutor prompt when the knowledge base has a match.

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
CHUNK_SIZE = 1000
CHUNK_OVERLAP = 200
RETRIEVAL_TOP_K = 5

# Maximum length (characters) of a single chat message accepted by the API.
MAX_MESSAGE_LENGTH = 32_000

# ============================================================================
# SERVER
# ============================================================================

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# Comma separated list; "*" (the default) allows any origin.
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
