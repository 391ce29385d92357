"""
OUTLET ASSISTANT APPLICATION PACKAGE
====================================

Backend for the outlet training assistant and the English / Kannada tutor.

  from outlet_assistant.main import app
  from outlet_assistant.models import ChatRequest
  from outlet_assistant.services.tutor_service import TutorService

FILE STRUCTURE:
  outlet_assistant/
    main.py       - FastAPI app and all HTTP endpoints (/api/chat, /api/feedback, ...).
    models.py     - Pydantic request / response models.
    prompts.py    - System prompts for every chat mode and the feedback report.
    services/     - LLM, text-to-speech, knowledge base, tutor, feedback, storage, analytics.
    utils/        - Retry with backoff and text helpers for voice / bilingual replies.
"""
