"""
Turn Logger for Markdown Execution Logs.
Human-readable record of what the gateway heard and answered.
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class TurnLogger:
    """
    Markdown logger for gateway activity.

    Documents:
    - System events (startup, shutdown)
    - Transcriptions with detected scripts
    - Generated replies
    - Errors

    Entries are queued and written by a background task once ``start`` has
    been awaited; before that (or after ``close``) they are written inline.
    """

    def __init__(self, log_path: str = "logs/turn_log.md"):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

        self._queue: asyncio.Queue = asyncio.Queue()
        self._writer_task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self):
        """Start the background log writer."""
        if self._writer_task is None:
            self._running = True
            self._writer_task = asyncio.create_task(self._write_loop())

    async def _write_loop(self):
        """Background loop to write logs asynchronously."""
        while self._running:
            entry = await self._queue.get()
            try:
                self._write_entry(entry)
            except OSError as e:
                logger.error(f"Failed to write log: {e}")

    def _write_entry(self, entry: str):
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(entry)
            f.write("\n")

    async def _log(self, entry: str):
        """Add a log entry to the queue."""
        if self._running and self._writer_task:
            await self._queue.put(entry)
            return
        try:
            self._write_entry(entry)
        except OSError as e:
            logger.error(f"Failed to write log: {e}")

    # =========================
    # Public Logging Methods
    # =========================

    async def log_transcription(
        self,
        file_name: str,
        file_size: int,
        text: str,
        language: str,
        detected_languages: List[str],
        auto_detected: bool,
        latency_ms: Optional[float] = None
    ):
        """Log a transcription result."""
        timestamp = datetime.now().strftime("%H:%M:%S")
        scripts = ", ".join(detected_languages) if detected_languages else "none"
        mode = "auto-detected" if auto_detected else "hinted"

        entry = f"""### 🎤 Transcription | {timestamp}

**File:** `{file_name}` ({file_size} bytes)
**Transcript:** "{text}"
**Language:** {language} ({mode})
**Scripts:** {scripts}
{f'**STT Latency:** {latency_ms:.0f}ms' if latency_ms else ''}
"""
        await self._log(entry)

    async def log_generation(
        self,
        prompt: str,
        response: str,
        tokens_used: Optional[int] = None,
        latency_ms: Optional[float] = None
    ):
        """Log a generated reply."""
        timestamp = datetime.now().strftime("%H:%M:%S")

        display_response = response
        if len(response) > 500:
            display_response = response[:500] + "..."

        entry = f"""### 🤖 Generated Reply | {timestamp}

**Prompt:** "{prompt}"

> {display_response}

{f'**Tokens Used:** {tokens_used}' if tokens_used else ''}
{f'**LLM Latency:** {latency_ms:.0f}ms' if latency_ms else ''}
"""
        await self._log(entry)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Log an error."""
        timestamp = datetime.now().strftime("%H:%M:%S")

        entry = f"""### ❌ Error | {timestamp}

**Type:** `{error_type}`
**Message:** {error_message}
"""
        if details:
            entry += f"""
```json
{json.dumps(details, indent=2, ensure_ascii=False, default=str)}
```
"""
        await self._log(entry)

    async def log_system_event(
        self,
        event: str,
        details: Dict[str, Any]
    ):
        """Log a system event."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        details_str = ""
        for key, value in details.items():
            details_str += f"- **{key}:** {value}\n"

        entry = f"""### ⚙️ System Event | {timestamp}

**Event:** {event}

{details_str}
---
"""
        await self._log(entry)

    async def close(self):
        """Close the logger and flush pending entries."""
        self._running = False

        if self._writer_task:
            self._writer_task.cancel()
            try:
                await self._writer_task
            except asyncio.CancelledError:
                pass
            self._writer_task = None

        while not self._queue.empty():
            entry = self._queue.get_nowait()
            try:
                self._write_entry(entry)
            except OSError as e:
                logger.error(f"Failed to write log: {e}")

        logger.info("Turn logger closed")
