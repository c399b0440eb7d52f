"""
Session state for the voice console.
Holds the single active conversation turn and the controller flags.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List
from uuid import uuid4

from voicedesk.core.scenarios import ExplanationRecord


@dataclass
class ConversationTurn:
    """
    One listen → transcribe → resolve → speak cycle.

    A new gesture replaces the turn outright; nothing carries over.
    """
    turn_id: str = field(default_factory=lambda: uuid4().hex[:12])
    started_at: datetime = field(default_factory=datetime.now)

    transcript: str = ""
    reply: str = ""
    explanation: Optional[ExplanationRecord] = None
    reply_source: Optional[str] = None  # "scenario", "delegate", "fallback"
    error: Optional[str] = None

    # Transcription metadata
    detected_language: str = ""
    detected_languages: List[str] = field(default_factory=list)
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert turn to dictionary."""
        return {
            "turn_id": self.turn_id,
            "started_at": self.started_at.isoformat(),
            "transcript": self.transcript,
            "reply": self.reply,
            "explanation": self.explanation.to_dict() if self.explanation else None,
            "reply_source": self.reply_source,
            "error": self.error,
            "detected_language": self.detected_language,
            "detected_languages": list(self.detected_languages),
            "duration": self.duration,
        }


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session handed to the view layer."""
    is_recording: bool
    is_loading: bool
    is_playing: bool
    selected_language: str
    turn: Dict[str, Any]

    @property
    def status_text(self) -> str:
        if self.is_recording:
            return "Listening... Release to process"
        if self.is_loading:
            return "Analyzing Audio..."
        return "Hold to Speak"


@dataclass
class SessionState:
    """The single mutable struct owned by the session controller."""
    selected_language: str = "auto"
    is_recording: bool = False
    is_loading: bool = False
    is_playing: bool = False
    turn: ConversationTurn = field(default_factory=ConversationTurn)

    def new_turn(self) -> ConversationTurn:
        """Discard the current turn and start a clean one."""
        self.turn = ConversationTurn()
        return self.turn

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            is_recording=self.is_recording,
            is_loading=self.is_loading,
            is_playing=self.is_playing,
            selected_language=self.selected_language,
            turn=self.turn.to_dict(),
        )
