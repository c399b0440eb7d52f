"""
LLM Service using Groq API.
Backs the generation route the intent resolver delegates to.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, List, Dict, Any

from voicedesk.config import get_settings
from voicedesk.core.exceptions import GenerationException

logger = logging.getLogger(__name__)
settings = get_settings()

SYSTEM_PROMPT = """You are a helpful voice helpdesk assistant for citizen services in India
(electricity, water supply, welfare schemes, farming, education).

CRITICAL INSTRUCTIONS:
1. ALWAYS respond in the SAME language and script as the user's message
2. Be concise - your reply is read aloud, keep it under 3 sentences
3. Never invent reference numbers, schedules or phone numbers
4. If the request needs a human, say you are connecting them to an agent
"""


@dataclass
class LLMResponse:
    """Response from LLM completion."""
    content: str
    finish_reason: Optional[str] = None
    usage: Optional[Dict[str, int]] = None
    processing_time_ms: Optional[float] = None


class LLMService:
    """
    Text generation through Groq chat completions.

    The client is created lazily so that a missing API key only fails the
    request that needs it.
    """

    def __init__(self, client: Optional[Any] = None):
        self._client = client
        self._model = settings.LLM_MODEL_ID

    def _get_client(self):
        if self._client is None:
            if not settings.GROQ_API_KEY:
                raise GenerationException(
                    "Generation API key is not configured",
                    details={"error_type": "misconfigured"}
                )

            from groq import AsyncGroq

            self._client = AsyncGroq(api_key=settings.GROQ_API_KEY)
        return self._client

    def build_messages(self, prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt}
        ]

    async def complete(
        self,
        prompt: str,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        """
        Generate a reply for a single user prompt.

        Args:
            prompt: The raw transcript
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with the reply text
        """
        client = self._get_client()
        start_time = time.time()

        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self._model,
                    messages=self.build_messages(prompt),
                    temperature=temperature,
                    max_tokens=max_tokens or settings.LLM_MAX_TOKENS
                ),
                timeout=settings.LLM_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            raise GenerationException(
                f"LLM processing timed out after {settings.LLM_TIMEOUT_SECONDS} seconds",
                details={"timeout_seconds": settings.LLM_TIMEOUT_SECONDS}
            )
        except Exception as e:
            logger.error(f"LLM API error: {e}")
            raise GenerationException(f"LLM API error: {e}", details={"api_error": str(e)})

        choice = response.choices[0]
        usage = None
        if getattr(response, "usage", None) is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens
            }

        return LLMResponse(
            content=(choice.message.content or "").strip(),
            finish_reason=choice.finish_reason,
            usage=usage,
            processing_time_ms=(time.time() - start_time) * 1000
        )

    async def cleanup(self):
        """Cleanup resources."""
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None
        logger.info("LLM service cleaned up")
