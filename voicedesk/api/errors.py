"""
Exception handlers.
Render VoiceDesk errors as ``{"error": ..., "error_code": ..., "details": ...}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from voicedesk.config import get_settings
from voicedesk.core.exceptions import VoiceDeskException

logger = logging.getLogger(__name__)
settings = get_settings()


async def voicedesk_exception_handler(request: Request, exc: VoiceDeskException):
    """Handle custom VoiceDesk exceptions."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message} {exc.details}")
    else:
        logger.info(f"{exc.error_code}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "error_code": exc.error_code,
            "details": exc.details
        }
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred",
            "error_code": "INTERNAL_ERROR",
            "details": {"exception": str(exc)} if settings.DEBUG else {}
        }
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(VoiceDeskException, voicedesk_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
