"""Shared fakes and fixtures."""
import asyncio
from types import SimpleNamespace
from typing import Any, List, Optional

import pytest

from voicedesk.core.scenarios import ScenarioCatalog
from voicedesk.services.capture import AudioSource, AudioClip, CaptureProfile, CaptureSession
from voicedesk.services.stt import TranscriptionResult
from voicedesk.services.tts import SpeechOutput, Voice


WHISPER_RESPONSE = {
    "text": " There's a power outage near my house ",
    "language": "english",
    "duration": 2.4,
    "segments": [
        {"text": " There's a power outage", "start": 0.0, "end": 1.3},
        {"text": " near my house ", "start": 1.3, "end": 2.4},
    ],
}


class FakeTranscriptions:
    """Stands in for ``AsyncGroq().audio.transcriptions``."""

    def __init__(self, response: Any = None, error: Optional[Exception] = None):
        self.response = WHISPER_RESPONSE if response is None else response
        self.error = error
        self.calls: List[dict] = []

    async def create(self, **kwargs):
        name, content = kwargs.get("file", (None, b""))
        if hasattr(content, "read"):
            kwargs["file"] = (name, content.read())
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class FakeGroq:
    def __init__(self, response: Any = None, error: Optional[Exception] = None):
        self.audio = SimpleNamespace(transcriptions=FakeTranscriptions(response, error))
        self.closed = False

    @property
    def transcriptions(self) -> FakeTranscriptions:
        return self.audio.transcriptions

    async def close(self):
        self.closed = True


class FakeAudioSource(AudioSource):
    def __init__(self, begin_error: Optional[Exception] = None, end_error: Optional[Exception] = None):
        self.begin_error = begin_error
        self.end_error = end_error
        self.opened = 0
        self.released = 0

    async def begin(self, profile: CaptureProfile) -> CaptureSession:
        if self.begin_error is not None:
            raise self.begin_error
        self.opened += 1
        return CaptureSession(stream=object(), codec="audio/wav", profile=profile)

    async def end(self, session: CaptureSession) -> AudioClip:
        self.released += 1
        session.stream = None
        if self.end_error is not None:
            raise self.end_error
        return AudioClip(data=b"RIFF0000WAVE", mime_type="audio/wav", file_name="recording.wav")


class FakeTranscriber:
    def __init__(self, text: str = "There's a power outage near my house", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[tuple] = []
        self.entered = asyncio.Event()
        self.gate: Optional[asyncio.Event] = None

    async def transcribe(self, clip: AudioClip, language: Optional[str] = "auto") -> TranscriptionResult:
        self.calls.append((clip, language))
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return TranscriptionResult(
            text=self.text,
            language="english",
            detected_languages=["English"],
            duration=2.4,
        )


class FakeSpeechOutput(SpeechOutput):
    def __init__(self, voices: Optional[List[Voice]] = None, error: Optional[Exception] = None):
        self._voices = voices if voices is not None else [
            Voice("en-US-AriaNeural", "en-US"),
            Voice("en-IN-NeerjaNeural", "en-IN"),
            Voice("hi-IN-SwaraNeural", "hi-IN"),
        ]
        self.error = error
        self.spoken: List[tuple] = []
        self.stop_calls = 0
        self.cancelled = False
        self.started = asyncio.Event()
        self.gate: Optional[asyncio.Event] = None

    async def voices(self) -> List[Voice]:
        return self._voices

    async def play(self, text: str, voice: Optional[Voice]) -> None:
        self.spoken.append((text, voice))
        self.started.set()
        if self.error is not None:
            raise self.error
        if self.gate is not None:
            try:
                await self.gate.wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise

    def stop(self) -> None:
        self.stop_calls += 1


class FakeDelegate:
    def __init__(self, reply: str = "", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def catalog():
    return ScenarioCatalog.default()


@pytest.fixture
def fake_groq():
    return FakeGroq()
