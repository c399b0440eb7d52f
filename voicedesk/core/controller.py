"""
Session Controller for the voice console.
Drives the capture → transcribe → resolve → speak cycle and owns its state.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Protocol

from voicedesk.core.exceptions import CaptureException, VoiceDeskException
from voicedesk.core.resolver import IntentResolver
from voicedesk.core.session import SessionState, SessionSnapshot, ConversationTurn
from voicedesk.services.capture import AudioSource, AudioClip, CaptureProfile, CaptureSession
from voicedesk.services.stt import TranscriptionResult
from voicedesk.services.tts import SpeechOutputSelector, SpeechOutput

logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot], None]


class Transcriber(Protocol):
    """Turns a captured clip into text (the gateway client in production)."""

    async def transcribe(self, clip: AudioClip, language: Optional[str] = ...) -> TranscriptionResult:
        ...


class SessionController:
    """
    Push-to-talk state machine.

    Every gesture starts a clean turn. While a turn is being processed a new
    press cancels that processing and its playback; the superseded turn never
    writes into the new one. Capture and transcription errors end the turn
    with a visible error. Resolution and speech never do.
    """

    def __init__(
        self,
        audio_source: AudioSource,
        transcriber: Transcriber,
        resolver: IntentResolver,
        speech_output: SpeechOutput,
        profile: Optional[CaptureProfile] = None,
        state: Optional[SessionState] = None
    ):
        self.audio_source = audio_source
        self.transcriber = transcriber
        self.resolver = resolver
        self.profile = profile or CaptureProfile()
        self.state = state or SessionState()
        self.speaker = SpeechOutputSelector(speech_output, on_state_change=self._on_playback)

        self._capture: Optional[CaptureSession] = None
        self._pending: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

    # =========================
    # View binding
    # =========================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a view callback; returns an unsubscribe function."""
        self._listeners.append(listener)
        listener(self.state.snapshot())

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self):
        snapshot = self.state.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Session listener failed: {e}")

    def _on_playback(self, playing: bool):
        self.state.is_playing = playing
        self._notify()

    @property
    def turn(self) -> ConversationTurn:
        return self.state.turn

    # =========================
    # Gestures
    # =========================

    def set_language(self, code: str):
        self.state.selected_language = code or "auto"
        self._notify()

    async def start_recording(self):
        """Press: begin a new turn and open the microphone."""
        if self.state.is_recording:
            return

        self._supersede()
        turn = self.state.new_turn()
        self._notify()

        try:
            self._capture = await self.audio_source.begin(self.profile)
        except CaptureException as e:
            logger.error(f"Recording Error: {e.message}")
            turn.error = e.message
            self._notify()
            return

        self.state.is_recording = True
        self._notify()

    async def stop_recording(self):
        """Release: close the microphone and process the clip."""
        if not self.state.is_recording or self._capture is None:
            return

        capture = self._capture
        self._capture = None
        turn = self.state.turn

        try:
            clip = await self.audio_source.end(capture)
        except Exception as e:
            logger.error(f"Recording Error: {e}")
            turn.error = f"Recording failed: {e}"
            return
        finally:
            self.state.is_recording = False
            self._notify()

        task = asyncio.create_task(self._process(clip, turn))
        self._pending = task
        # asyncio.wait does not raise when the task is cancelled by a newer gesture
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            error = task.exception()
            logger.error(f"Turn {turn.turn_id} failed: {error}")
            if self._is_current(turn):
                turn.error = f"Processing error: {error}"
                self._notify()

    def reset(self):
        """Drop the current turn, pending work and playback."""
        self._supersede()
        self.state.new_turn()
        self._notify()

    async def close(self):
        self._supersede()
        if self._capture is not None:
            capture = self._capture
            self._capture = None
            self.state.is_recording = False
            try:
                await self.audio_source.end(capture)
            except Exception as e:
                logger.warning(f"Discarding capture on close failed: {e}")

    def _supersede(self):
        """Force any in-flight turn to a terminal state."""
        self.speaker.cancel()
        if self._pending is not None and not self._pending.done():
            logger.info("Superseding in-flight turn")
            self._pending.cancel()
        self._pending = None
        if self.state.is_loading:
            self.state.is_loading = False

    # =========================
    # Pipeline
    # =========================

    def _is_current(self, turn: ConversationTurn) -> bool:
        return self.state.turn is turn

    async def _process(self, clip: AudioClip, turn: ConversationTurn):
        start_time = time.time()
        self.state.is_loading = True
        self._notify()

        try:
            try:
                result = await self.transcriber.transcribe(clip, self.state.selected_language)
            except VoiceDeskException as e:
                logger.error(f"Transcription error [{e.error_code}]: {e.message}")
                if self._is_current(turn):
                    turn.error = f"Processing error: {_user_message(e)}"
                return

            if not self._is_current(turn):
                return

            turn.transcript = result.text
            turn.detected_language = result.language
            turn.detected_languages = list(result.detected_languages)
            turn.duration = result.duration or 0.0
            self._notify()

            resolution = await self.resolver.resolve(result.text)
            if not self._is_current(turn):
                return

            turn.reply = resolution.reply
            turn.explanation = resolution.explanation
            turn.reply_source = resolution.source
            logger.info(
                f"Turn {turn.turn_id} resolved via {resolution.source} "
                f"in {(time.time() - start_time) * 1000:.0f}ms"
            )
        finally:
            if self._is_current(turn):
                self.state.is_loading = False
                self._notify()

        await self.speaker.speak(turn.reply)


def _user_message(error: VoiceDeskException) -> str:
    """Message shown to the user; opaque upstream failures stay generic."""
    if error.error_code == "TRANSCRIPTION_FAILED":
        return "Transcription failed"
    return error.message
