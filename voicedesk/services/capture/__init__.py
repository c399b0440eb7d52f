"""
Audio capture for push-to-talk gestures.
One capture session per press-and-hold, encoded into a single uploadable clip.
"""

import asyncio
import io
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional

from voicedesk.config import get_settings
from voicedesk.core.exceptions import (
    CaptureException,
    PermissionDenied,
    DeviceUnavailable
)

logger = logging.getLogger(__name__)
settings = get_settings()

OPUS_MIME_TYPE = "audio/ogg;codecs=opus"
WAV_MIME_TYPE = "audio/wav"


@dataclass(frozen=True)
class CaptureProfile:
    """Requested input stream profile."""
    sample_rate: int = 16000
    channels: int = 1
    echo_cancellation: bool = True

    @classmethod
    def from_settings(cls) -> "CaptureProfile":
        return cls(
            sample_rate=settings.AUDIO_SAMPLE_RATE,
            channels=settings.AUDIO_CHANNELS,
            echo_cancellation=settings.AUDIO_ECHO_CANCELLATION
        )


@dataclass
class CaptureSession:
    """Live state of one recording, from press to release."""
    stream: Any
    codec: str
    profile: CaptureProfile
    chunks: List[bytes] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)

    def add_chunk(self, data: bytes):
        if data:
            self.chunks.append(data)

    @property
    def byte_count(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)

    @property
    def elapsed_seconds(self) -> float:
        return time.time() - self.started_at


@dataclass(frozen=True)
class AudioClip:
    """Encoded audio produced by a finished capture session."""
    data: bytes
    mime_type: str
    file_name: str

    @property
    def size(self) -> int:
        return len(self.data)


class AudioSource(ABC):
    """Platform microphone capability."""

    @abstractmethod
    async def begin(self, profile: CaptureProfile) -> CaptureSession:
        """
        Acquire the input stream and start recording.

        Raises:
            PermissionDenied: the platform refused access
            DeviceUnavailable: no usable input device
        """

    @abstractmethod
    async def end(self, session: CaptureSession) -> AudioClip:
        """Stop recording and encode the clip. Always releases the stream."""


class SoundDeviceAudioSource(AudioSource):
    """
    Microphone capture through PortAudio (sounddevice).

    Records 16-bit PCM and encodes it with libsndfile (soundfile): Opus in an
    Ogg container when the installed libsndfile supports it, WAV otherwise.
    """

    def __init__(self, device: Optional[Any] = None):
        self._device = device
        self._codec: Optional[str] = None

    def negotiate_codec(self) -> str:
        """Prefer Opus-in-Ogg, fall back to WAV."""
        if self._codec is None:
            try:
                import soundfile as sf
            except OSError as e:
                # libsndfile shared library missing
                raise DeviceUnavailable(str(e))

            if "OPUS" in sf.available_subtypes("OGG"):
                self._codec = OPUS_MIME_TYPE
            else:
                self._codec = WAV_MIME_TYPE
            logger.info(f"Capture codec negotiated: {self._codec}")
        return self._codec

    async def begin(self, profile: CaptureProfile) -> CaptureSession:
        try:
            import sounddevice as sd
        except OSError as e:
            # PortAudio shared library missing
            raise DeviceUnavailable(str(e))

        if profile.echo_cancellation:
            logger.debug("Echo cancellation requested; PortAudio captures the raw signal")

        session = CaptureSession(
            stream=None,
            codec=self.negotiate_codec(),
            profile=profile
        )

        def _callback(indata, frames, time_info, status):
            if status:
                logger.debug(f"Capture status: {status}")
            session.add_chunk(bytes(indata))

        try:
            stream = sd.RawInputStream(
                samplerate=profile.sample_rate,
                channels=profile.channels,
                dtype="int16",
                device=self._device,
                callback=_callback
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            # ValueError: no device matches the requested spec
            raise _map_device_error(e)

        session.stream = stream
        logger.info(f"Capture started at {profile.sample_rate}Hz, {profile.channels} channel(s)")
        return session

    async def end(self, session: CaptureSession) -> AudioClip:
        stream = session.stream
        try:
            if stream is not None:
                stream.stop()
            loop = asyncio.get_event_loop()
            data = await loop.run_in_executor(None, self._encode, session)
        finally:
            if stream is not None:
                stream.close()
            session.stream = None

        extension = "ogg" if session.codec == OPUS_MIME_TYPE else "wav"
        clip = AudioClip(data=data, mime_type=session.codec, file_name=f"recording.{extension}")
        logger.info(
            f"Capture finished: {session.byte_count} PCM bytes -> {clip.size} encoded bytes "
            f"in {session.elapsed_seconds:.1f}s"
        )
        return clip

    def _encode(self, session: CaptureSession) -> bytes:
        """Encode captured PCM into the negotiated container (runs in thread pool)."""
        import numpy as np
        import soundfile as sf

        pcm = np.frombuffer(b"".join(session.chunks), dtype=np.int16)
        if session.profile.channels > 1:
            pcm = pcm.reshape(-1, session.profile.channels)

        buffer = io.BytesIO()
        if session.codec == OPUS_MIME_TYPE:
            sf.write(buffer, pcm, session.profile.sample_rate, format="OGG", subtype="OPUS")
        else:
            sf.write(buffer, pcm, session.profile.sample_rate, format="WAV", subtype="PCM_16")
        return buffer.getvalue()


def _map_device_error(error: Exception) -> CaptureException:
    """Translate a PortAudio failure into the capture error taxonomy."""
    text = str(error)
    lowered = text.lower()
    if "permission" in lowered or "denied" in lowered or "not allowed" in lowered:
        return PermissionDenied(text)
    return DeviceUnavailable(text)
