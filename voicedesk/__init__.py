"""
VoiceDesk - Voice-Driven Helpdesk Assistant
===========================================
Hold a button, speak, and get a spoken answer to a civic service query.

Features:
- Push-to-talk capture with a single clip per gesture
- Whisper transcription gateway with code-mixed script detection
- Scenario matching with AI delegation fallback
- Script-aware voice selection for spoken replies

Tech Stack:
- FastAPI (transcription gateway)
- Groq Whisper (STT) and Groq chat completions (generation)
- edge-tts (TTS)
- sounddevice / soundfile (capture)
"""

__version__ = "1.0.0"
__author__ = "VoiceDesk Team"
