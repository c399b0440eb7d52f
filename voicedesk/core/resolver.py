"""
Intent resolution for transcribed utterances.
Local scenario match first, AI delegation second, fixed fallbacks last.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from voicedesk.core.exceptions import MalformedDelegateResponse
from voicedesk.core.scenarios import ScenarioCatalog, ExplanationRecord

logger = logging.getLogger(__name__)

GENERAL_FALLBACK_REPLY = "I understand your query. Connecting you to an agent..."
DELEGATE_OFFLINE_REPLY = "I heard you, but my AI brain is currently offline."
DELEGATE_EMPTY_REPLY = "I processed that request."

SOURCE_SCENARIO = "scenario"
SOURCE_DELEGATE = "delegate"
SOURCE_FALLBACK = "fallback"


class IntentDelegate(Protocol):
    """Anything that can turn a free-form prompt into a reply."""

    async def generate(self, prompt: str) -> str:
        ...


@dataclass(frozen=True)
class Resolution:
    """Reply chosen for a transcript."""
    reply: str
    explanation: Optional[ExplanationRecord] = None
    source: str = SOURCE_FALLBACK
    scenario: Optional[str] = None


class IntentResolver:
    """
    Maps a transcript to a reply. Never raises.

    Resolution order:
    1. Empty transcript -> general fallback
    2. First scenario trigger contained in the lower-cased transcript
    3. Delegate's reply
    4. Fixed fallback when delegation is unavailable or fails
    """

    def __init__(
        self,
        catalog: ScenarioCatalog,
        delegate: Optional[IntentDelegate] = None
    ):
        self.catalog = catalog
        self.delegate = delegate

    async def resolve(self, transcript: str) -> Resolution:
        text = (transcript or "").strip()
        if not text:
            return Resolution(reply=GENERAL_FALLBACK_REPLY, source=SOURCE_FALLBACK)

        entry = self.catalog.match(text)
        if entry is not None:
            logger.info(f"Scenario matched: '{entry.trigger}'")
            return Resolution(
                reply=entry.primary_reply,
                explanation=entry.explanation,
                source=SOURCE_SCENARIO,
                scenario=entry.trigger
            )

        if self.delegate is None:
            return Resolution(reply=GENERAL_FALLBACK_REPLY, source=SOURCE_FALLBACK)

        return await self._delegate(text)

    async def _delegate(self, text: str) -> Resolution:
        try:
            reply = await self.delegate.generate(text)
        except MalformedDelegateResponse as e:
            logger.warning(f"Delegate returned no reply: {e}")
            return Resolution(reply=DELEGATE_EMPTY_REPLY, source=SOURCE_FALLBACK)
        except Exception as e:
            logger.error(f"Intent delegation failed: {e}")
            return Resolution(reply=DELEGATE_OFFLINE_REPLY, source=SOURCE_FALLBACK)

        if not isinstance(reply, str) or not reply.strip():
            return Resolution(reply=DELEGATE_EMPTY_REPLY, source=SOURCE_FALLBACK)
        return Resolution(reply=reply.strip(), source=SOURCE_DELEGATE)
