"""
HTTP clients used by the voice console.
Talks to the transcription gateway and the intent delegation endpoint.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from voicedesk.config import get_settings
from voicedesk.core.exceptions import (
    TranscriptionException,
    MissingAudio,
    UnsupportedFormat,
    PayloadTooLarge,
    RateLimited,
    QuotaExhausted,
    ServiceMisconfigured,
    TranscriptionFailed,
    DelegationException,
    MalformedDelegateResponse
)
from voicedesk.services.capture import AudioClip
from voicedesk.services.stt import TranscriptionResult, AUTO_LANGUAGE

logger = logging.getLogger(__name__)
settings = get_settings()


class TranscriptionClient:
    """Uploads capture clips to ``POST /transcribe``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None
    ):
        self._base_url = (base_url or settings.GATEWAY_URL).rstrip("/")
        self._timeout = timeout or settings.STT_TIMEOUT_SECONDS
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def transcribe(
        self,
        clip: AudioClip,
        language: Optional[str] = AUTO_LANGUAGE
    ) -> TranscriptionResult:
        """Send one clip; raise the gateway's error class on failure."""
        client = self._get_client()
        files = {"audio": (clip.file_name, clip.data, clip.mime_type)}
        data = {}
        if language and language != AUTO_LANGUAGE:
            data["language"] = language

        try:
            response = await client.post(
                f"{self._base_url}/transcribe",
                files=files,
                data=data
            )
        except httpx.HTTPError as e:
            logger.error(f"Gateway request failed: {e}")
            raise TranscriptionFailed(f"Gateway unreachable: {e}")

        if response.status_code != 200:
            raise error_from_response(response)

        try:
            return TranscriptionResult.from_response(response.json())
        except ValueError as e:
            raise TranscriptionFailed(f"Malformed gateway response: {e}")

    async def close(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


def error_from_response(response: httpx.Response) -> TranscriptionException:
    """Rebuild the gateway's exception from an error response."""
    try:
        body: Dict[str, Any] = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    code = body.get("error_code")
    message = body.get("error") or f"Gateway returned HTTP {response.status_code}"
    details = body.get("details") or {}

    if code == "MISSING_AUDIO":
        return MissingAudio(message)
    if code == "UNSUPPORTED_FORMAT":
        return UnsupportedFormat(details.get("content_type"), details.get("allowed_types"))
    if code == "PAYLOAD_TOO_LARGE":
        return PayloadTooLarge(
            int(details.get("file_size", 0)),
            int(details.get("max_file_size", settings.MAX_UPLOAD_BYTES))
        )
    if code == "RATE_LIMITED" or response.status_code == 429:
        return RateLimited(details.get("retry_after_seconds"))
    if code == "QUOTA_EXHAUSTED" or response.status_code == 503:
        return QuotaExhausted(details.get("provider_message", ""))
    if code == "SERVICE_MISCONFIGURED":
        return ServiceMisconfigured(message)
    return TranscriptionFailed(message)


class HttpIntentDelegate:
    """
    Delegates unmatched transcripts to a text generation endpoint.

    Contract: ``POST {"prompt": ...}`` → ``{"response": ...}``.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None
    ):
        self._url = url or settings.GENERATE_URL
        self._timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def generate(self, prompt: str) -> str:
        try:
            response = await self._get_client().post(self._url, json={"prompt": prompt})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DelegationException(str(e)) from e

        reply = data.get("response") if isinstance(data, dict) else None
        if not isinstance(reply, str) or not reply.strip():
            raise MalformedDelegateResponse(data)
        return reply.strip()

    async def close(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
