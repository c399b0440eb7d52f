import json

import pytest

from voicedesk.core.scenarios import (
    ExplanationRecord,
    ScenarioEntry,
    ScenarioCatalog,
    load_catalog,
)


def _explanation(confidence=90):
    return ExplanationRecord(
        input="x",
        agent="Test Agent",
        rule_engine="Rules v1",
        confidence=confidence,
        decision="Do it",
        human_verification="Auto-verified.",
    )


def test_default_catalog_order(catalog):
    assert catalog.triggers == ["power outage", "water tank"]
    assert len(catalog) == 2


def test_match_is_case_insensitive_substring(catalog):
    entry = catalog.match("There's a POWER OUTAGE near my house")
    assert entry is not None
    assert entry.trigger == "power outage"


def test_first_trigger_wins(catalog):
    entry = catalog.match("water tank is empty and there is a power outage")
    assert entry.trigger == "power outage"


def test_no_match(catalog):
    assert catalog.match("How do I apply for a ration card?") is None
    assert catalog.match("") is None


def test_water_tank_explanation(catalog):
    entry = catalog.match("the water tank is almost empty")
    assert entry.explanation.confidence == 92
    assert entry.explanation.agent == "Water Resource Management Agent"
    assert entry.primary_reply.startswith("Water tank level critical.")


def test_confidence_must_be_a_percentage():
    with pytest.raises(ValueError):
        _explanation(confidence=101)
    with pytest.raises(ValueError):
        _explanation(confidence=-1)


def test_entry_requires_reply_and_lowercase_trigger():
    with pytest.raises(ValueError):
        ScenarioEntry(trigger="gas leak", replies=(), explanation=_explanation())
    with pytest.raises(ValueError):
        ScenarioEntry(trigger="Gas Leak", replies=("ok",), explanation=_explanation())


def test_duplicate_triggers_rejected():
    entry = ScenarioEntry(trigger="gas leak", replies=("ok",), explanation=_explanation())
    with pytest.raises(ValueError):
        ScenarioCatalog([entry, entry])


def test_load_catalog_from_file(tmp_path):
    path = tmp_path / "scenarios.json"
    path.write_text(json.dumps([
        {
            "trigger": "street light",
            "replies": ["Street light complaint registered."],
            "explanation": {
                "input": "Street light not working",
                "agent": "Municipal Agent",
                "rule_engine": "Maintenance Queue v1",
                "confidence": 80,
                "decision": "Queue repair",
                "human_verification": "Pending.",
            },
        }
    ]), encoding="utf-8")

    catalog = load_catalog(path)
    assert catalog.triggers == ["street light"]
    assert catalog.match("The street light is broken").explanation.confidence == 80


def test_load_catalog_defaults_without_path():
    assert load_catalog().triggers == ["power outage", "water tank"]


def test_explanation_to_dict(catalog):
    data = catalog.match("power outage").explanation.to_dict()
    assert data["confidence"] == 95
    assert set(data) == {"input", "agent", "rule_engine", "confidence", "decision", "human_verification"}
