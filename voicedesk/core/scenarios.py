"""
Scenario catalog for the intent resolver.
Static trigger → reply table with its explanation records.
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExplanationRecord:
    """Why a local scenario produced the reply it did."""
    input: str
    agent: str
    rule_engine: str
    confidence: int  # 0-100
    decision: str
    human_verification: str

    def __post_init__(self):
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"confidence must be within 0-100, got {self.confidence}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScenarioEntry:
    """One known service scenario."""
    trigger: str
    replies: Tuple[str, ...]
    explanation: ExplanationRecord

    def __post_init__(self):
        if not self.replies:
            raise ValueError(f"scenario '{self.trigger}' has no replies")
        if self.trigger != self.trigger.lower():
            raise ValueError(f"trigger must be lowercase: '{self.trigger}'")

    @property
    def primary_reply(self) -> str:
        return self.replies[0]


class ScenarioCatalog:
    """
    Ordered, read-only collection of scenarios.

    Order matters: the resolver takes the first trigger contained in the
    transcript, so earlier entries win over later, more specific ones.
    """

    def __init__(self, entries: List[ScenarioEntry]):
        triggers = [entry.trigger for entry in entries]
        if len(set(triggers)) != len(triggers):
            raise ValueError(f"duplicate scenario triggers: {triggers}")
        self._entries: Tuple[ScenarioEntry, ...] = tuple(entries)

    def __iter__(self) -> Iterator[ScenarioEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def triggers(self) -> List[str]:
        return [entry.trigger for entry in self._entries]

    def match(self, text: str) -> Optional[ScenarioEntry]:
        """Return the first entry whose trigger occurs in ``text`` (case-insensitive)."""
        lowered = (text or "").lower()
        for entry in self._entries:
            if entry.trigger in lowered:
                return entry
        return None

    @classmethod
    def from_dicts(cls, raw: List[Dict[str, Any]]) -> "ScenarioCatalog":
        entries = []
        for item in raw:
            explanation = item["explanation"]
            entries.append(ScenarioEntry(
                trigger=item["trigger"],
                replies=tuple(item["replies"]),
                explanation=ExplanationRecord(
                    input=explanation["input"],
                    agent=explanation["agent"],
                    rule_engine=explanation["rule_engine"],
                    confidence=int(explanation["confidence"]),
                    decision=explanation["decision"],
                    human_verification=explanation["human_verification"],
                )
            ))
        return cls(entries)

    @classmethod
    def from_file(cls, path: Path) -> "ScenarioCatalog":
        """Load a catalog from a JSON list of scenario objects."""
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        catalog = cls.from_dicts(raw)
        logger.info(f"Loaded {len(catalog)} scenarios from {path}")
        return catalog

    @classmethod
    def default(cls) -> "ScenarioCatalog":
        return cls.from_dicts(DEFAULT_SCENARIOS)


def load_catalog(path: Optional[Path] = None) -> ScenarioCatalog:
    """Load the catalog once at startup: from ``path`` if given, else the built-ins."""
    if path is not None:
        return ScenarioCatalog.from_file(path)
    return ScenarioCatalog.default()


DEFAULT_SCENARIOS = [
    {
        "trigger": "power outage",
        "replies": [
            "Power outage reported in your area. Technician has been dispatched and will "
            "arrive within 24 hours. For immediate assistance, please contact the emergency "
            "helpline at 1912.",
            "We've registered your power outage report. Estimated restoration time is 6-8 hours.",
        ],
        "explanation": {
            "input": "Power outage in our area",
            "agent": "Utility Management Agent",
            "rule_engine": "Emergency Response Protocol v2.1 - Priority 1",
            "confidence": 95,
            "decision": "Dispatch technician within 24 hours, send SMS confirmation",
            "human_verification": "Auto-verified by system.",
        },
    },
    {
        "trigger": "water tank",
        "replies": [
            "Water tank level critical. Refill scheduled for tomorrow morning between 6-8 AM. "
            "You'll receive an SMS confirmation shortly.",
        ],
        "explanation": {
            "input": "Water tank is almost empty",
            "agent": "Water Resource Management Agent",
            "rule_engine": "Water Distribution Algorithm v3.0 - Critical Level",
            "confidence": 92,
            "decision": "Schedule emergency refill",
            "human_verification": "Auto-verified.",
        },
    },
]
