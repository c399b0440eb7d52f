"""
Voice Console.
Terminal push-to-talk front-end for the session controller.

Press Enter to start speaking and Enter again to stop. Other commands:
    l <code>   set the language hint (auto, en, hi, ta, ml, kn, te)
    r          reset the current turn
    q          quit
"""

import argparse
import asyncio
import logging
from typing import Optional

from voicedesk.config import get_settings, SELECTABLE_LANGUAGES
from voicedesk.core.controller import SessionController
from voicedesk.core.resolver import IntentResolver
from voicedesk.core.scenarios import load_catalog
from voicedesk.core.session import SessionSnapshot
from voicedesk.services.capture import SoundDeviceAudioSource, CaptureProfile
from voicedesk.services.clients import TranscriptionClient, HttpIntentDelegate
from voicedesk.services.tts import EdgeSpeechOutput

logger = logging.getLogger(__name__)
settings = get_settings()

LANGUAGE_CODES = [lang["code"] for lang in SELECTABLE_LANGUAGES]


class ConsoleView:
    """Prints what changed between snapshots."""

    def __init__(self):
        self._last: Optional[SessionSnapshot] = None

    def render(self, snapshot: SessionSnapshot):
        last = self._last
        self._last = snapshot
        turn = snapshot.turn

        if last is None or last.status_text != snapshot.status_text:
            print(f"[{snapshot.status_text}]")
        if turn["error"] and (last is None or last.turn["error"] != turn["error"]):
            print(f"⚠️  {turn['error']}")
        if turn["transcript"] and (last is None or last.turn["transcript"] != turn["transcript"]):
            scripts = ", ".join(turn["detected_languages"]) or "unknown"
            print(f"🗣️  You said: {turn['transcript']}  ({turn['detected_language']}; {scripts})")
        if turn["reply"] and (last is None or last.turn["reply"] != turn["reply"]):
            print(f"🤖 Response: {turn['reply']}")
            explanation = turn["explanation"]
            if explanation:
                print(
                    f"   ↳ {explanation['agent']} | {explanation['rule_engine']} | "
                    f"confidence {explanation['confidence']}% | {explanation['decision']}"
                )
        if last is not None and last.is_playing != snapshot.is_playing:
            print("🔊 Speaking..." if snapshot.is_playing else "🔇 Done speaking")


def build_controller(gateway_url: str, generate_url: Optional[str], language: str) -> SessionController:
    catalog = load_catalog(settings.SCENARIOS_PATH)
    delegate = HttpIntentDelegate(generate_url) if generate_url else None

    controller = SessionController(
        audio_source=SoundDeviceAudioSource(),
        transcriber=TranscriptionClient(gateway_url),
        resolver=IntentResolver(catalog, delegate),
        speech_output=EdgeSpeechOutput(),
        profile=CaptureProfile.from_settings()
    )
    controller.set_language(language)
    return controller


async def run_console(controller: SessionController):
    view = ConsoleView()
    controller.subscribe(view.render)
    loop = asyncio.get_event_loop()
    pending: Optional[asyncio.Task] = None

    print(__doc__)
    while True:
        command = (await loop.run_in_executor(None, input)).strip()

        if command == "q":
            break
        if command == "r":
            controller.reset()
            continue
        if command.startswith("l"):
            code = command[1:].strip() or "auto"
            if code not in LANGUAGE_CODES:
                print(f"Unknown language '{code}'. Choose from: {', '.join(LANGUAGE_CODES)}")
                continue
            controller.set_language(code)
            print(f"Language hint: {code}")
            continue

        if controller.state.is_recording:
            # Processing runs in the background so the next press can supersede it
            pending = asyncio.create_task(controller.stop_recording())
        else:
            await controller.start_recording()

    await controller.close()
    if pending is not None and not pending.done():
        pending.cancel()
    await controller.transcriber.close()
    if controller.resolver.delegate is not None:
        await controller.resolver.delegate.close()


def main():
    parser = argparse.ArgumentParser(description="VoiceDesk push-to-talk console")
    parser.add_argument("--gateway", default=settings.GATEWAY_URL, help="Transcription gateway base URL")
    parser.add_argument("--generate", default=settings.GENERATE_URL, help="Intent delegation URL")
    parser.add_argument("--language", default=settings.DEFAULT_LANGUAGE, choices=LANGUAGE_CODES)
    parser.add_argument("--log-level", default=settings.LOG_LEVEL)
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    controller = build_controller(args.gateway, args.generate, args.language)
    try:
        asyncio.run(run_console(controller))
    except KeyboardInterrupt:
        print("\nBye!")


if __name__ == "__main__":
    main()
