"""Services module initialization."""

from voicedesk.services.stt import TranscriptionGateway
from voicedesk.services.llm import LLMService

__all__ = [
    "TranscriptionGateway",
    "LLMService"
]
