"""Core module initialization."""

from voicedesk.core.exceptions import (
    VoiceDeskException,
    CaptureException,
    TranscriptionException,
    GenerationException,
    DelegationException
)
from voicedesk.core.scenarios import ScenarioCatalog, ScenarioEntry, ExplanationRecord
from voicedesk.core.resolver import IntentResolver, Resolution
from voicedesk.core.session import SessionState, ConversationTurn

__all__ = [
    "VoiceDeskException",
    "CaptureException",
    "TranscriptionException",
    "GenerationException",
    "DelegationException",
    "ScenarioCatalog",
    "ScenarioEntry",
    "ExplanationRecord",
    "IntentResolver",
    "Resolution",
    "SessionState",
    "ConversationTurn"
]
