"""
Text-to-Speech output for spoken replies.
Script-aware voice selection and single-flight playback.
"""

import asyncio
import io
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from voicedesk.core.scripts import contains_malayalam, contains_devanagari

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Voice:
    """A synthesis voice offered by the platform."""
    name: str
    lang: str  # BCP 47 locale, e.g. "hi-IN"


def _locale_matches(voice: Voice, prefix: str) -> bool:
    lang = (voice.lang or "").lower().replace("_", "-")
    return lang == prefix or lang.startswith(prefix + "-")


def select_voice(text: str, voices: Sequence[Voice]) -> Optional[Voice]:
    """
    Pick a voice for ``text`` based on the scripts it contains.

    Malayalam script → ml voice, Devanagari → hi voice, otherwise (or when
    no such voice exists) en-IN, then any English voice. None means the
    platform default.
    """
    candidates: List[str] = []
    if contains_malayalam(text):
        candidates.append("ml")
    elif contains_devanagari(text):
        candidates.append("hi")
    candidates.extend(["en-in", "en"])

    for prefix in candidates:
        for voice in voices:
            if _locale_matches(voice, prefix):
                return voice
    return None


class SpeechOutput(ABC):
    """Platform speech synthesis capability."""

    @abstractmethod
    async def voices(self) -> List[Voice]:
        """Voices available for synthesis."""

    @abstractmethod
    async def play(self, text: str, voice: Optional[Voice]) -> None:
        """Synthesize and play ``text``; returns when playback finishes."""

    @abstractmethod
    def stop(self) -> None:
        """Stop any audio currently playing."""


class EdgeSpeechOutput(SpeechOutput):
    """
    Speech through Microsoft Edge online voices (edge-tts).

    MP3 from edge-tts is decoded with pydub and played with sounddevice.
    Decoding runs in a worker thread that outlives task cancellation, so
    every ``play`` takes a playback generation and ``stop`` bumps it; a
    worker whose generation is stale never starts the device.
    """

    def __init__(self):
        self._voices: Optional[List[Voice]] = None
        self._lock = threading.Lock()
        self._generation = 0

    async def voices(self) -> List[Voice]:
        if self._voices is None:
            import edge_tts

            raw = await edge_tts.list_voices()
            self._voices = [Voice(name=v["ShortName"], lang=v["Locale"]) for v in raw]
            logger.info(f"Loaded {len(self._voices)} edge-tts voices")
        return self._voices

    async def play(self, text: str, voice: Optional[Voice]) -> None:
        import edge_tts

        with self._lock:
            generation = self._generation

        if voice is not None:
            communicate = edge_tts.Communicate(text, voice.name)
        else:
            communicate = edge_tts.Communicate(text)

        audio_data = b""
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                audio_data += chunk["data"]

        if not audio_data:
            logger.warning("edge-tts returned no audio")
            return

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._play_mp3, audio_data, generation)

    def _play_mp3(self, audio_data: bytes, generation: int) -> bool:
        """Decode and play, blocking until done or stopped (runs in thread pool)."""
        samples, frame_rate = self._decode(audio_data)

        with self._lock:
            if generation != self._generation:
                logger.debug("Playback superseded during decode")
                return False
            self._start(samples, frame_rate)

        self._wait()
        return True

    def _decode(self, audio_data: bytes):
        import numpy as np
        from pydub import AudioSegment

        segment = AudioSegment.from_file(io.BytesIO(audio_data), format="mp3")
        samples = np.array(segment.get_array_of_samples(), dtype=np.int16)
        if segment.channels > 1:
            samples = samples.reshape(-1, segment.channels)
        return samples, segment.frame_rate

    def _start(self, samples, frame_rate: int):
        import sounddevice as sd

        sd.play(samples, frame_rate)

    def _wait(self):
        import sounddevice as sd

        sd.wait()

    def _halt(self):
        try:
            import sounddevice as sd

            sd.stop()
        except OSError as e:
            logger.debug(f"Nothing to stop: {e}")

    def stop(self) -> None:
        with self._lock:
            self._generation += 1
            self._halt()


class SpeechOutputSelector:
    """
    Speaks replies one at a time.

    ``speak`` stops whatever is playing before starting. Playback state is
    reported through ``on_state_change`` (True when synthesis starts, False
    on completion, cancellation or error). Synthesis failures are logged and
    never raised.
    """

    def __init__(
        self,
        output: SpeechOutput,
        on_state_change: Optional[Callable[[bool], None]] = None
    ):
        self.output = output
        self.on_state_change = on_state_change
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self.is_playing = False

    def _set_playing(self, playing: bool, generation: int):
        # A superseded utterance must not flip the state of the current one
        if generation != self._generation:
            return
        if self.is_playing == playing:
            return
        self.is_playing = playing
        if self.on_state_change is not None:
            self.on_state_change(playing)

    def cancel(self):
        """Stop current playback and report idle."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.output.stop()
        if self.is_playing:
            self.is_playing = False
            if self.on_state_change is not None:
                self.on_state_change(False)

    async def speak(self, text: str) -> Optional[asyncio.Task]:
        """Start speaking ``text`` in the background; returns the playback task."""
        self.cancel()
        if not text or not text.strip():
            return None

        generation = self._generation
        self._task = asyncio.create_task(self._run(text, generation))
        return self._task

    async def _run(self, text: str, generation: int):
        try:
            voices = await self.output.voices()
            voice = select_voice(text, voices)
            logger.debug(f"Speaking with voice: {voice.name if voice else 'platform default'}")

            self._set_playing(True, generation)
            await self.output.play(text, voice)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"TTS Error: {e}")
        finally:
            self._set_playing(False, generation)

    async def wait(self):
        """Wait for the current utterance to finish."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})
