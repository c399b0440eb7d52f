"""
Transcription Endpoints.
Multipart audio upload in, normalized transcript out.
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile

from voicedesk.config import get_settings
from voicedesk.core.exceptions import TranscriptionException
from voicedesk.services.stt import AudioUpload, AUTO_LANGUAGE

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()


@router.post("/transcribe")
async def transcribe(
    request: Request,
    audio: Optional[UploadFile] = File(default=None),
    language: Optional[str] = Form(default=AUTO_LANGUAGE)
):
    """
    Transcribe an uploaded audio clip.

    Form fields:
    - audio: the clip (webm, wav, mp3, mp4/m4a, ogg; up to 25MB)
    - language: ISO 639-1 hint or "auto" (default)

    Returns the transcript, the engine's language, the scripts present in the
    text, duration, segments and upload metadata.
    """
    gateway = request.app.state.transcription_gateway
    turn_logger = request.app.state.turn_logger

    upload = None
    if audio is not None:
        upload = AudioUpload(
            data=await audio.read(),
            content_type=audio.content_type,
            file_name=audio.filename or "recording.webm"
        )

    try:
        result = await gateway.transcribe(upload, language or AUTO_LANGUAGE)
    except TranscriptionException as e:
        await turn_logger.log_error(e.error_code, e.message, e.details)
        raise

    await turn_logger.log_transcription(
        result.file_name,
        result.file_size,
        result.text,
        result.language,
        result.detected_languages,
        result.auto_detected,
        result.processing_time_ms
    )
    return result.to_response()


@router.get("/transcribe")
async def transcribe_status(request: Request):
    """Describe supported languages, features and upload limits."""
    return request.app.state.transcription_gateway.status()
