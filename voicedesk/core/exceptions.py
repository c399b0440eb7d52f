"""
Core exceptions for VoiceDesk.
Custom exception classes for structured error handling.
"""

from typing import Optional, Dict, Any


class VoiceDeskException(Exception):
    """Base exception for VoiceDesk errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "VOICEDESK_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# =========================
# Capture Exceptions
# =========================

class CaptureException(VoiceDeskException):
    """Base exception for microphone capture errors. Terminal for the turn."""

    def __init__(
        self,
        message: str,
        error_code: str = "CAPTURE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=500,
            details=details
        )


class PermissionDenied(CaptureException):
    """Raised when the platform refuses microphone access."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Microphone access denied: {reason}",
            error_code="PERMISSION_DENIED",
            details={"reason": reason}
        )


class DeviceUnavailable(CaptureException):
    """Raised when no usable input device can be opened."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Microphone unavailable: {reason}",
            error_code="DEVICE_UNAVAILABLE",
            details={"reason": reason}
        )


# =========================
# Transcription Exceptions
# =========================

class TranscriptionException(VoiceDeskException):
    """Base exception for transcription gateway errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "TRANSCRIPTION_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
            details=details
        )


class MissingAudio(TranscriptionException):
    """Raised when the upload carries no audio payload."""

    def __init__(self, message: str = "No audio file provided"):
        super().__init__(
            message=message,
            error_code="MISSING_AUDIO",
            status_code=400
        )


class UnsupportedFormat(TranscriptionException):
    """Raised when the upload MIME type is not on the allow-list."""

    def __init__(self, content_type: Optional[str], allowed: Optional[list] = None):
        super().__init__(
            message=f"Invalid file type: {content_type}",
            error_code="UNSUPPORTED_FORMAT",
            status_code=400,
            details={"content_type": content_type, "allowed_types": allowed or []}
        )


class PayloadTooLarge(TranscriptionException):
    """Raised when the upload exceeds the provider size limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            message=f"File exceeds {limit // (1024 * 1024)}MB limit",
            error_code="PAYLOAD_TOO_LARGE",
            status_code=400,
            details={"file_size": size, "max_file_size": limit}
        )


class RateLimited(TranscriptionException):
    """Raised when the provider rate limit is hit. Retry after a delay."""

    def __init__(self, retry_after: Optional[float] = None):
        super().__init__(
            message="Rate limit exceeded",
            error_code="RATE_LIMITED",
            status_code=429,
            details={"retry_after_seconds": retry_after}
        )


class QuotaExhausted(TranscriptionException):
    """Raised when the provider account has run out of quota."""

    def __init__(self, provider_message: str = ""):
        super().__init__(
            message="Transcription quota exhausted",
            error_code="QUOTA_EXHAUSTED",
            status_code=503,
            details={"provider_message": provider_message}
        )


class ServiceMisconfigured(TranscriptionException):
    """Raised for missing or rejected credentials. Operator-fixable only."""

    def __init__(self, reason: str = "Invalid API Key"):
        super().__init__(
            message=reason,
            error_code="SERVICE_MISCONFIGURED",
            status_code=500
        )


class TranscriptionFailed(TranscriptionException):
    """Raised for any other upstream failure."""

    def __init__(self, provider_message: Optional[str] = None):
        super().__init__(
            message=provider_message or "Transcription failed",
            error_code="TRANSCRIPTION_FAILED",
            status_code=500,
            details={"provider_message": provider_message}
        )


# =========================
# Generation Exceptions
# =========================

class GenerationException(VoiceDeskException):
    """Raised when the text generation route cannot produce a reply."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="GENERATION_ERROR",
            status_code=500,
            details=details
        )


# =========================
# Delegation Exceptions
# =========================

class DelegationException(VoiceDeskException):
    """Raised when the intent delegation endpoint fails. Absorbed by the resolver."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="DELEGATION_ERROR",
            status_code=502,
            details=details
        )


class MalformedDelegateResponse(DelegationException):
    """Raised when the delegate answers without a usable reply."""

    def __init__(self, payload: Any):
        super().__init__(
            message="Delegate response has no 'response' text",
            details={"payload": repr(payload)[:200]}
        )
