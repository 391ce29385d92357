"""
RUN SCRIPT - Start the Outlet Assistant server
==============================================

PURPOSE:
  Single entry point to start the backend used by the outlet training and
  language tutor web client.

WHAT IT DOES:
  - Imports the FastAPI app from outlet_assistant.main.
  - Runs it with uvicorn on HOST / PORT from config (default 0.0.0.0:8000).
  - reload=True restarts the server when Python files change (development).

USAGE:
  python run.py

  API docs: http://localhost:8000/docs

NOTE:
  Before running, set GROQ_API_KEY and GOOGLE_TTS_API_KEY in .env. Set
  SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY to enable signup, saved
  conversations and analytics.
"""

import uvicorn

from config import HOST, PORT

# ------------------------------------------------------------------------------
# ENTRY POINT
# ------------------------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "outlet_assistant.main:app",
        host=HOST,
        port=PORT,
        reload=True
    )
