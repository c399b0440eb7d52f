import builtins
import io
import sys
import types

import numpy as np
import pytest
import soundfile as sf

from voicedesk.core.exceptions import PermissionDenied, DeviceUnavailable
from voicedesk.services.capture import (
    CaptureProfile,
    CaptureSession,
    SoundDeviceAudioSource,
    WAV_MIME_TYPE,
    OPUS_MIME_TYPE,
    _map_device_error,
)
from voicedesk.core.controller import SessionController
from voicedesk.core.resolver import IntentResolver

from tests.conftest import FakeTranscriber, FakeSpeechOutput


class FakeStream:
    def __init__(self):
        self.stopped = False
        self.closed = False

    def stop(self):
        self.stopped = True

    def close(self):
        self.closed = True


def _pcm(samples=1600):
    tone = (np.sin(np.linspace(0, 40 * np.pi, samples)) * 8000).astype(np.int16)
    return tone.tobytes()


def test_profile_defaults():
    profile = CaptureProfile()
    assert profile.sample_rate == 16000
    assert profile.channels == 1
    assert profile.echo_cancellation is True


def test_session_ignores_empty_chunks():
    session = CaptureSession(stream=None, codec=WAV_MIME_TYPE, profile=CaptureProfile())
    session.add_chunk(b"")
    session.add_chunk(b"\x01\x00")
    assert session.chunks == [b"\x01\x00"]
    assert session.byte_count == 2


def test_codec_negotiation_is_stable():
    source = SoundDeviceAudioSource()
    codec = source.negotiate_codec()
    assert codec in (OPUS_MIME_TYPE, WAV_MIME_TYPE)
    assert source.negotiate_codec() == codec


@pytest.mark.asyncio
async def test_end_encodes_wav_and_releases_stream():
    stream = FakeStream()
    session = CaptureSession(stream=stream, codec=WAV_MIME_TYPE, profile=CaptureProfile())
    session.add_chunk(_pcm())

    clip = await SoundDeviceAudioSource().end(session)

    assert stream.stopped and stream.closed
    assert session.stream is None
    assert clip.mime_type == "audio/wav"
    assert clip.file_name == "recording.wav"
    data, rate = sf.read(io.BytesIO(clip.data), dtype="int16")
    assert rate == 16000
    assert len(data) == 1600


@pytest.mark.asyncio
async def test_end_releases_stream_when_encoding_fails(monkeypatch):
    stream = FakeStream()
    session = CaptureSession(stream=stream, codec=WAV_MIME_TYPE, profile=CaptureProfile())
    source = SoundDeviceAudioSource()

    def _broken(_session):
        raise RuntimeError("encoder crashed")

    monkeypatch.setattr(source, "_encode", _broken)
    with pytest.raises(RuntimeError):
        await source.end(session)
    assert stream.closed is True


@pytest.mark.parametrize("text,expected", [
    ("Error opening InputStream: Permission denied", PermissionDenied),
    ("Access not allowed by the system", PermissionDenied),
    ("Error querying device -1", DeviceUnavailable),
    ("Invalid sample rate", DeviceUnavailable),
])
def test_device_error_mapping(text, expected):
    assert isinstance(_map_device_error(RuntimeError(text)), expected)


@pytest.fixture
def broken_soundfile(monkeypatch):
    real_import = builtins.__import__

    def _import(name, *args, **kwargs):
        if name == "soundfile":
            raise OSError("sndfile library not found")
        return real_import(name, *args, **kwargs)

    monkeypatch.setattr(builtins, "__import__", _import)


@pytest.fixture
def fake_sounddevice(monkeypatch):
    module = types.ModuleType("sounddevice")

    class PortAudioError(Exception):
        pass

    class RawInputStream:
        def __init__(self, device=None, **kwargs):
            if device is not None:
                raise ValueError(f"No input device matching {device!r}")
            self.started = False

        def start(self):
            self.started = True

    module.PortAudioError = PortAudioError
    module.RawInputStream = RawInputStream
    monkeypatch.setitem(sys.modules, "sounddevice", module)
    return module


def test_missing_libsndfile_is_device_unavailable(broken_soundfile):
    with pytest.raises(DeviceUnavailable) as exc_info:
        SoundDeviceAudioSource().negotiate_codec()
    assert "sndfile library not found" in exc_info.value.message


@pytest.mark.asyncio
async def test_unknown_device_is_device_unavailable(fake_sounddevice):
    source = SoundDeviceAudioSource(device="usb headset")
    source._codec = WAV_MIME_TYPE

    with pytest.raises(DeviceUnavailable) as exc_info:
        await source.begin(CaptureProfile())
    assert "usb headset" in exc_info.value.message


@pytest.mark.asyncio
async def test_begin_opens_stream(fake_sounddevice):
    source = SoundDeviceAudioSource()
    source._codec = WAV_MIME_TYPE

    session = await source.begin(CaptureProfile())

    assert session.stream.started is True
    assert session.codec == WAV_MIME_TYPE


@pytest.mark.asyncio
async def test_missing_codec_library_becomes_turn_error(fake_sounddevice, broken_soundfile, catalog):
    controller = SessionController(
        audio_source=SoundDeviceAudioSource(),
        transcriber=FakeTranscriber(),
        resolver=IntentResolver(catalog),
        speech_output=FakeSpeechOutput(),
    )

    await controller.start_recording()

    assert controller.state.is_recording is False
    assert controller.turn.error == "Microphone unavailable: sndfile library not found"
