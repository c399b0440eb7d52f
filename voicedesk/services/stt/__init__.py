"""
Transcription Gateway using Groq Whisper.
Validates uploads, normalizes the language hint, and post-processes results.
"""

import logging
import os
import tempfile
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from voicedesk.config import (
    get_settings,
    SUPPORTED_LANGUAGES,
    CONTEXT_PROMPTS,
    ALLOWED_AUDIO_TYPES,
    SUPPORTED_FORMATS
)
from voicedesk.core.exceptions import (
    TranscriptionException,
    MissingAudio,
    UnsupportedFormat,
    PayloadTooLarge,
    RateLimited,
    QuotaExhausted,
    ServiceMisconfigured,
    TranscriptionFailed
)
from voicedesk.core.scripts import detect_languages_in_text

logger = logging.getLogger(__name__)
settings = get_settings()

AUTO_LANGUAGE = "auto"


@dataclass(frozen=True)
class AudioUpload:
    """An uploaded audio file as received by the gateway."""
    data: Optional[bytes]
    content_type: Optional[str]
    file_name: str = "recording.webm"

    @property
    def size(self) -> int:
        return len(self.data) if self.data else 0


@dataclass(frozen=True)
class TranscriptSegment:
    """A timed span of the transcript."""
    text: str
    start: float
    end: float

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "start": self.start, "end": self.end}


@dataclass(frozen=True)
class TranscriptionResult:
    """Result from speech-to-text transcription."""
    text: str
    language: str
    detected_languages: List[str] = field(default_factory=list)
    duration: Optional[float] = None
    segments: List[TranscriptSegment] = field(default_factory=list)
    file_name: str = ""
    file_size: int = 0
    auto_detected: bool = True
    processing_time_ms: Optional[float] = None

    def to_response(self) -> Dict[str, Any]:
        """Wire format of a successful ``POST /transcribe``."""
        return {
            "success": True,
            "transcript": self.text,
            "language": self.language,
            "detectedLanguages": list(self.detected_languages),
            "duration": self.duration,
            "segments": [segment.to_dict() for segment in self.segments],
            "metadata": {
                "fileName": self.file_name,
                "fileSize": self.file_size,
                "autoDetected": self.auto_detected,
            },
        }

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "TranscriptionResult":
        """Inverse of ``to_response``, used by the console client."""
        metadata = data.get("metadata") or {}
        return cls(
            text=data.get("transcript") or "",
            language=data.get("language") or "unknown",
            detected_languages=list(data.get("detectedLanguages") or []),
            duration=data.get("duration"),
            segments=[
                TranscriptSegment(
                    text=s.get("text", ""),
                    start=float(s.get("start", 0.0)),
                    end=float(s.get("end", 0.0))
                )
                for s in data.get("segments") or []
            ],
            file_name=metadata.get("fileName", ""),
            file_size=int(metadata.get("fileSize", 0)),
            auto_detected=bool(metadata.get("autoDetected", True)),
        )


def normalize_mime_type(content_type: Optional[str]) -> str:
    """``"Audio/WebM; codecs=opus"`` -> ``"audio/webm"``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def normalize_language(language: Optional[str]) -> Optional[str]:
    """
    Turn a user language hint into an explicit Whisper language directive.

    Returns None (let the engine auto-detect) for ``"auto"``, empty, or
    unsupported hints. ``"hi-IN"`` and ``"HI"`` both become ``"hi"``.
    """
    if not language or language.strip().lower() == AUTO_LANGUAGE:
        return None
    code = language.strip().lower()[:2]
    return code if code in SUPPORTED_LANGUAGES else None


def get_context_prompt(language: Optional[str]) -> str:
    """Helpdesk vocabulary in the directive language, English by default."""
    return CONTEXT_PROMPTS.get(language or "en", CONTEXT_PROMPTS["en"])


class TranscriptionGateway:
    """
    Server-side boundary in front of the Whisper transcription API.

    Validation happens before any network call:
    1. payload present
    2. MIME type on the allow-list
    3. size within the provider limit
    """

    def __init__(self, client: Optional[Any] = None):
        self._client = client
        self._model = settings.STT_MODEL_ID
        self._max_bytes = settings.MAX_UPLOAD_BYTES
        self._allowed_types = list(ALLOWED_AUDIO_TYPES)

    def _get_client(self):
        """Create the Groq client on first use so a missing key fails per call."""
        if self._client is None:
            if not settings.GROQ_API_KEY:
                raise ServiceMisconfigured("Transcription API key is not configured")

            from groq import AsyncGroq

            self._client = AsyncGroq(
                api_key=settings.GROQ_API_KEY,
                timeout=settings.STT_TIMEOUT_SECONDS
            )
        return self._client

    def validate(self, upload: Optional[AudioUpload]) -> str:
        """Check the upload and return its normalized MIME type."""
        if upload is None or upload.data is None:
            raise MissingAudio()
        if not upload.data:
            raise MissingAudio("Audio file is empty")

        mime_type = normalize_mime_type(upload.content_type)
        if mime_type not in self._allowed_types:
            raise UnsupportedFormat(upload.content_type, self._allowed_types)

        if upload.size > self._max_bytes:
            raise PayloadTooLarge(upload.size, self._max_bytes)

        return mime_type

    async def transcribe(
        self,
        upload: Optional[AudioUpload],
        language_hint: Optional[str] = AUTO_LANGUAGE
    ) -> TranscriptionResult:
        """
        Transcribe an uploaded clip.

        Args:
            upload: The uploaded audio
            language_hint: ISO 639-1 code or "auto"

        Returns:
            TranscriptionResult with text, language metadata and segments
        """
        self.validate(upload)

        whisper_language = normalize_language(language_hint)
        start_time = time.time()

        try:
            response = await self._call_whisper(upload, whisper_language)
        except TranscriptionException:
            raise
        except Exception as e:
            raise _map_provider_error(e)

        text = (_field(response, "text") or "").strip()
        result = TranscriptionResult(
            text=text,
            language=_field(response, "language") or whisper_language or "unknown",
            detected_languages=detect_languages_in_text(text),
            duration=_field(response, "duration"),
            segments=_parse_segments(_field(response, "segments")),
            file_name=upload.file_name,
            file_size=upload.size,
            auto_detected=whisper_language is None,
            processing_time_ms=(time.time() - start_time) * 1000
        )

        logger.info(
            f"Transcribed {upload.size} bytes in {result.processing_time_ms:.0f}ms "
            f"(language={result.language}, scripts={result.detected_languages})"
        )
        return result

    async def _call_whisper(self, upload: AudioUpload, language: Optional[str]):
        """Stage the upload in a temp file and send it to Whisper."""
        client = self._get_client()

        suffix = os.path.splitext(upload.file_name)[1] or ".webm"
        staged = tempfile.NamedTemporaryFile(suffix=suffix, delete=False)

        try:
            with staged:
                staged.write(upload.data)

            kwargs = {
                "model": self._model,
                "response_format": "verbose_json",
                "prompt": get_context_prompt(language),
                "temperature": 0,
            }
            if language:
                kwargs["language"] = language

            with open(staged.name, "rb") as audio_file:
                return await client.audio.transcriptions.create(
                    file=(upload.file_name, audio_file),
                    **kwargs
                )
        finally:
            os.unlink(staged.name)

    def status(self) -> Dict[str, Any]:
        """Informational payload for ``GET /transcribe``."""
        return {
            "status": "ok",
            "service": "Whisper Transcription API",
            "model": self._model,
            "configured": bool(settings.GROQ_API_KEY),
            "supportedLanguages": SUPPORTED_LANGUAGES,
            "features": [
                "Auto language detection",
                "Code-mixed speech support",
                "Word-level timestamps",
                "High accuracy transcription",
            ],
            "limits": {
                "maxFileSize": f"{self._max_bytes // (1024 * 1024)}MB",
                "maxFileSizeBytes": self._max_bytes,
                "supportedFormats": SUPPORTED_FORMATS,
                "allowedMimeTypes": self._allowed_types,
            },
        }

    async def cleanup(self):
        """Cleanup resources."""
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None
        logger.info("Transcription gateway cleaned up")


def _field(obj: Any, name: str) -> Any:
    """Read a response field from either an SDK object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _parse_segments(raw: Optional[List[Any]]) -> List[TranscriptSegment]:
    segments = []
    for item in raw or []:
        segments.append(TranscriptSegment(
            text=(_field(item, "text") or "").strip(),
            start=float(_field(item, "start") or 0.0),
            end=float(_field(item, "end") or 0.0)
        ))
    return segments


def _provider_code(error: Exception) -> Tuple[Optional[str], str]:
    """Pull the provider error code and message out of an SDK exception body."""
    body = getattr(error, "body", None)
    code = None
    message = getattr(error, "message", None) or str(error)
    if isinstance(body, dict):
        detail = body.get("error", body)
        if isinstance(detail, dict):
            code = detail.get("code") or detail.get("type")
            message = detail.get("message") or message
    return code, message


def _map_provider_error(error: Exception) -> TranscriptionException:
    """Translate a Groq SDK failure into the gateway error taxonomy."""
    import groq

    code, message = _provider_code(error)
    logger.error(f"Whisper API error: {message}")

    if isinstance(error, groq.RateLimitError):
        if code == "insufficient_quota":
            return QuotaExhausted(message)
        retry_after = None
        headers = getattr(getattr(error, "response", None), "headers", None)
        if headers and headers.get("retry-after"):
            try:
                retry_after = float(headers["retry-after"])
            except ValueError:
                retry_after = None
        return RateLimited(retry_after)

    if isinstance(error, (groq.AuthenticationError, groq.PermissionDeniedError)):
        return ServiceMisconfigured("Invalid API Key")

    return TranscriptionFailed(message)
