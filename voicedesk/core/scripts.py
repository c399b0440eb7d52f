"""
Unicode script detection.

Whisper reports a single primary language, but helpdesk callers often mix
scripts in one utterance (Hindi with English, say). These helpers report which
writing systems actually appear in a piece of text.
"""

from typing import List

# (label, first code point, last code point) in reporting order
SCRIPT_RANGES = [
    ("Hindi", 0x0900, 0x097F),
    ("Tamil", 0x0B80, 0x0BFF),
    ("Telugu", 0x0C00, 0x0C7F),
    ("Malayalam", 0x0D00, 0x0D7F),
    ("Kannada", 0x0C80, 0x0CFF),
    ("Bengali / Assamese", 0x0980, 0x09FF),
    ("Gujarati", 0x0A80, 0x0AFF),
    ("Punjabi", 0x0A00, 0x0A7F),
    ("Odia", 0x0B00, 0x0B7F),
    ("Urdu", 0x0600, 0x06FF),
]

MALAYALAM_RANGE = (0x0D00, 0x0D7F)
DEVANAGARI_RANGE = (0x0900, 0x097F)


def _in_range(text: str, first: int, last: int) -> bool:
    return any(first <= ord(c) <= last for c in text)


def _has_latin(text: str) -> bool:
    return any("a" <= c <= "z" or "A" <= c <= "Z" for c in text)


def detect_languages_in_text(text: str) -> List[str]:
    """
    Return the labels of every script present in ``text``.

    Each label appears at most once. Text with no recognised script
    (digits, punctuation, empty) yields an empty list.
    """
    if not text:
        return []

    languages = [label for label, first, last in SCRIPT_RANGES if _in_range(text, first, last)]
    if _has_latin(text):
        languages.append("English")
    return languages


def contains_malayalam(text: str) -> bool:
    return _in_range(text or "", *MALAYALAM_RANGE)


def contains_devanagari(text: str) -> bool:
    return _in_range(text or "", *DEVANAGARI_RANGE)
