"""
UTILITIES PACKAGE
=================

Helpers used by the services (no HTTP, no business logic):

  retry           - with_retry(fn): calls fn(); on failure retries with exponential backoff (TTS requests).
  text_processing - Cleaning replies for speech, splitting "ಕನ್ನಡ: / English:" replies, language detection.
"""
