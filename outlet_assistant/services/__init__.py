"""
SERVICES PACKAGE
=================

Business logic lives here. The API layer (outlet_assistant.main) calls these
services; they don't handle HTTP.

MODULES:
    llm_service        - Groq chat models with round-robin API keys
    tts_service        - Google Text-to-Speech voice profiles and synthesis
    vector_store       - FAISS knowledge base for the Kannada tutor
    tutor_service      - Chat and voice modes (prompt, reply, speech, fallbacks)
    feedback_service   - LLM feedback report with heuristic fallback
    conversation_store - Supabase signup, conversations and messages
    analytics_service  - Learning analytics from saved conversations
"""
