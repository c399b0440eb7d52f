"""
FastAPI Application Entry Point
===============================
Transcription gateway with lifecycle management, middleware, and route mounting.
"""

from contextlib import asynccontextmanager
from datetime import datetime
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from voicedesk.config import get_settings
from voicedesk.api.errors import register_exception_handlers
from voicedesk.api.routes import transcribe, generate, health
from voicedesk.services.stt import TranscriptionGateway
from voicedesk.services.llm import LLMService
from voicedesk.logging.turn_logger import TurnLogger

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info("Starting VoiceDesk Gateway")
    logger.info("=" * 60)

    # ==================
    # STARTUP
    # ==================

    logger.info("Initializing turn logger...")
    app.state.turn_logger = TurnLogger(str(settings.TURN_LOG_PATH))
    await app.state.turn_logger.start()
    await app.state.turn_logger.log_system_event("Application starting", {
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT
    })

    logger.info("Initializing transcription gateway...")
    app.state.transcription_gateway = TranscriptionGateway()

    logger.info("Initializing LLM service...")
    app.state.llm_service = LLMService()

    if not settings.GROQ_API_KEY:
        logger.warning("GROQ_API_KEY is not set; transcription and generation calls will fail")

    logger.info("=" * 60)
    logger.info("VoiceDesk Gateway Ready!")
    logger.info(f"Server: http://{settings.HOST}:{settings.PORT}")
    logger.info(f"Docs: http://{settings.HOST}:{settings.PORT}/docs")
    logger.info("=" * 60)

    yield  # Application runs here

    # ==================
    # SHUTDOWN
    # ==================

    logger.info("Shutting down VoiceDesk Gateway...")

    await app.state.turn_logger.log_system_event("Application shutting down", {})

    await app.state.transcription_gateway.cleanup()
    await app.state.llm_service.cleanup()
    await app.state.turn_logger.close()

    logger.info("Shutdown complete.")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## VoiceDesk Transcription Gateway

    Server side of a push-to-talk helpdesk assistant.

    ### Features:
    - Whisper transcription with optional language hint
    - Script detection for code-mixed speech
    - Word-level segments
    - Text generation for unmatched queries

    ### Pipeline:
    ```
    Audio → /transcribe (Whisper) → scenario match or /generate (LLM) → TTS
    ```
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# ==================
# MIDDLEWARE
# ==================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_timing_header(request: Request, call_next):
    """Add request timing information to response headers."""
    start_time = datetime.now()
    response = await call_next(request)
    process_time = (datetime.now() - start_time).total_seconds() * 1000
    response.headers["X-Process-Time-Ms"] = f"{process_time:.2f}"
    logger.debug(f"{request.method} {request.url.path} -> {response.status_code}")
    return response


# ==================
# EXCEPTION HANDLERS
# ==================

register_exception_handlers(app)

# ==================
# ROUTES
# ==================

app.include_router(health.router, tags=["Health"])
app.include_router(transcribe.router, tags=["Transcription"])
app.include_router(generate.router, tags=["Generation"])


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }


def run():
    """Console entry point: serve the gateway with uvicorn."""
    import uvicorn

    uvicorn.run("voicedesk.main:app", host=settings.HOST, port=settings.PORT)
