"""
Generation Endpoint.
Answers prompts the intent resolver could not match to a scenario.
"""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

router = APIRouter()


class GenerateRequest(BaseModel):
    """Request model for a delegated prompt."""
    prompt: str = Field(..., min_length=1)


class GenerateResponse(BaseModel):
    """Response model for a delegated prompt."""
    response: str


@router.post("/generate", response_model=GenerateResponse)
async def generate(request: Request, body: GenerateRequest):
    """Generate a short spoken-style reply for ``prompt``."""
    llm_service = request.app.state.llm_service
    turn_logger = request.app.state.turn_logger

    result = await llm_service.complete(body.prompt)

    await turn_logger.log_generation(
        body.prompt,
        result.content,
        result.usage.get("total_tokens") if result.usage else None,
        result.processing_time_ms
    )
    return GenerateResponse(response=result.content)
