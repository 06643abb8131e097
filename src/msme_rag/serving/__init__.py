"""
Serving — FastAPI application exposing ingestion and chat.

The two wire entry points (``/process-pdf`` and ``/chatbot-query``) keep
the contract of the upload and chat clients; the remaining routes manage
documents and sessions.
"""
