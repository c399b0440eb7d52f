import asyncio

import pytest

from voicedesk.core.controller import SessionController
from voicedesk.core.exceptions import (
    PermissionDenied,
    DeviceUnavailable,
    PayloadTooLarge,
    TranscriptionFailed,
)
from voicedesk.core.resolver import IntentResolver, GENERAL_FALLBACK_REPLY, SOURCE_SCENARIO

from tests.conftest import FakeAudioSource, FakeTranscriber, FakeSpeechOutput, FakeDelegate


def _controller(catalog, source=None, transcriber=None, speech=None, delegate=None):
    return SessionController(
        audio_source=source or FakeAudioSource(),
        transcriber=transcriber or FakeTranscriber(),
        resolver=IntentResolver(catalog, delegate),
        speech_output=speech or FakeSpeechOutput(),
    )


@pytest.mark.asyncio
async def test_full_turn(catalog):
    source = FakeAudioSource()
    transcriber = FakeTranscriber()
    speech = FakeSpeechOutput()
    controller = _controller(catalog, source, transcriber, speech)
    snapshots = []
    controller.subscribe(snapshots.append)

    await controller.start_recording()
    assert controller.state.is_recording is True
    assert snapshots[-1].status_text == "Listening... Release to process"

    await controller.stop_recording()
    await controller.speaker.wait()

    turn = controller.turn
    assert turn.transcript == "There's a power outage near my house"
    assert turn.reply.startswith("Power outage reported in your area.")
    assert turn.explanation.confidence == 95
    assert turn.reply_source == SOURCE_SCENARIO
    assert turn.detected_languages == ["English"]
    assert turn.error is None

    assert source.opened == 1 and source.released == 1
    assert speech.spoken[0][0] == turn.reply
    assert speech.spoken[0][1].lang == "en-IN"

    assert controller.state.is_recording is False
    assert controller.state.is_loading is False
    assert controller.state.is_playing is False
    assert any(s.is_loading for s in snapshots)
    assert any(s.is_playing for s in snapshots)
    assert snapshots[-1].status_text == "Hold to Speak"


@pytest.mark.asyncio
async def test_language_hint_is_forwarded(catalog):
    transcriber = FakeTranscriber()
    controller = _controller(catalog, transcriber=transcriber)
    controller.set_language("ml")

    await controller.start_recording()
    await controller.stop_recording()

    assert transcriber.calls[0][1] == "ml"
    assert controller.state.selected_language == "ml"


@pytest.mark.asyncio
async def test_start_is_idempotent_while_recording(catalog):
    source = FakeAudioSource()
    controller = _controller(catalog, source)

    await controller.start_recording()
    turn = controller.turn
    await controller.start_recording()

    assert source.opened == 1
    assert controller.turn is turn
    await controller.close()


@pytest.mark.asyncio
async def test_stop_without_recording_is_ignored(catalog):
    transcriber = FakeTranscriber()
    controller = _controller(catalog, transcriber=transcriber)
    await controller.stop_recording()
    assert transcriber.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("error,message", [
    (PermissionDenied("Permission denied"), "Microphone access denied: Permission denied"),
    (DeviceUnavailable("No input device"), "Microphone unavailable: No input device"),
])
async def test_capture_failure_ends_turn_with_error(catalog, error, message):
    transcriber = FakeTranscriber()
    controller = _controller(catalog, FakeAudioSource(begin_error=error), transcriber)

    await controller.start_recording()

    assert controller.state.is_recording is False
    assert controller.turn.error == message
    await controller.stop_recording()
    assert transcriber.calls == []


@pytest.mark.asyncio
async def test_stream_released_when_encoding_fails(catalog):
    source = FakeAudioSource(end_error=RuntimeError("encoder crashed"))
    transcriber = FakeTranscriber()
    controller = _controller(catalog, source, transcriber)

    await controller.start_recording()
    await controller.stop_recording()

    assert source.released == 1
    assert controller.state.is_recording is False
    assert controller.turn.error == "Recording failed: encoder crashed"
    assert transcriber.calls == []


@pytest.mark.asyncio
async def test_gateway_error_stops_before_resolution(catalog):
    delegate = FakeDelegate(reply="unused")
    speech = FakeSpeechOutput()
    transcriber = FakeTranscriber(error=PayloadTooLarge(26214401, 26214400))
    controller = _controller(catalog, transcriber=transcriber, speech=speech, delegate=delegate)

    await controller.start_recording()
    await controller.stop_recording()

    assert controller.turn.error == "Processing error: File exceeds 25MB limit"
    assert controller.turn.reply == ""
    assert controller.state.is_loading is False
    assert delegate.prompts == []
    assert speech.spoken == []


@pytest.mark.asyncio
async def test_opaque_upstream_failure_shows_generic_message(catalog):
    transcriber = FakeTranscriber(error=TranscriptionFailed("socket hang up at 10.0.0.4"))
    controller = _controller(catalog, transcriber=transcriber)

    await controller.start_recording()
    await controller.stop_recording()

    assert controller.turn.error == "Processing error: Transcription failed"


@pytest.mark.asyncio
async def test_empty_transcript_uses_general_fallback(catalog):
    speech = FakeSpeechOutput()
    controller = _controller(catalog, transcriber=FakeTranscriber(text=""), speech=speech)

    await controller.start_recording()
    await controller.stop_recording()
    await controller.speaker.wait()

    assert controller.turn.reply == GENERAL_FALLBACK_REPLY
    assert speech.spoken[0][0] == GENERAL_FALLBACK_REPLY


@pytest.mark.asyncio
async def test_new_gesture_stops_playback(catalog):
    speech = FakeSpeechOutput()
    speech.gate = asyncio.Event()
    source = FakeAudioSource()
    controller = _controller(catalog, source, speech=speech)

    await controller.start_recording()
    await controller.stop_recording()
    await speech.started.wait()
    assert controller.state.is_playing is True
    old_turn = controller.turn
    playback = controller.speaker._task

    await controller.start_recording()

    assert controller.state.is_playing is False
    assert controller.state.is_recording is True
    assert controller.turn is not old_turn
    assert controller.turn.transcript == ""
    await asyncio.wait({playback})
    assert playback.cancelled()
    assert speech.cancelled is True
    await controller.close()
    assert source.released == 2


@pytest.mark.asyncio
async def test_new_gesture_supersedes_pending_transcription(catalog):
    transcriber = FakeTranscriber()
    transcriber.gate = asyncio.Event()
    speech = FakeSpeechOutput()
    controller = _controller(catalog, transcriber=transcriber, speech=speech)

    await controller.start_recording()
    old_turn = controller.turn
    pending = asyncio.create_task(controller.stop_recording())
    await transcriber.entered.wait()
    assert controller.state.is_loading is True

    await controller.start_recording()
    await pending

    # the superseded turn never writes its result anywhere
    transcriber.gate.set()
    await asyncio.sleep(0)
    assert old_turn.transcript == ""
    assert controller.turn is not old_turn
    assert controller.turn.transcript == ""
    assert controller.turn.error is None
    assert controller.state.is_loading is False
    assert speech.spoken == []
    await controller.close()


@pytest.mark.asyncio
async def test_reset_clears_turn(catalog):
    controller = _controller(catalog)
    await controller.start_recording()
    await controller.stop_recording()
    await controller.speaker.wait()
    assert controller.turn.reply

    controller.reset()

    assert controller.turn.reply == ""
    assert controller.turn.transcript == ""
    assert controller.turn.explanation is None


@pytest.mark.asyncio
async def test_unsubscribe_stops_notifications(catalog):
    controller = _controller(catalog)
    snapshots = []
    unsubscribe = controller.subscribe(snapshots.append)
    assert len(snapshots) == 1

    unsubscribe()
    controller.set_language("hi")
    assert len(snapshots) == 1
