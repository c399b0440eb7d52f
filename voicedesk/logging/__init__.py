"""Markdown execution logging."""

from voicedesk.logging.turn_logger import TurnLogger

__all__ = ["TurnLogger"]
