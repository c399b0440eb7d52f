"""
Configuration management for VoiceDesk.
Loads settings from environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # =========================
    # Application Settings
    # =========================
    APP_NAME: str = "VoiceDesk"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Environment name")

    # =========================
    # API Keys
    # =========================
    # A missing key surfaces at call time, never at startup
    GROQ_API_KEY: Optional[str] = Field(default=None, description="Groq API key for STT and LLM")

    # =========================
    # Server Settings
    # =========================
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")
    CORS_ORIGINS: List[str] = Field(default=["*"], description="Allowed CORS origins")

    # =========================
    # Model Settings
    # =========================
    STT_MODEL_ID: str = Field(
        default="whisper-large-v3",
        description="Groq Whisper model used for transcription"
    )
    LLM_MODEL_ID: str = Field(
        default="llama-3.1-8b-instant",
        description="Groq LLM model used for the generation route"
    )
    LLM_MAX_TOKENS: int = Field(default=256, description="Maximum tokens for generated replies")

    # =========================
    # Upload Settings
    # =========================
    MAX_UPLOAD_BYTES: int = Field(
        default=25 * 1024 * 1024,
        description="Maximum audio upload size (provider hard limit)"
    )

    # =========================
    # Audio Settings
    # =========================
    AUDIO_SAMPLE_RATE: int = Field(default=16000, description="Capture sample rate in Hz")
    AUDIO_CHANNELS: int = Field(default=1, description="Number of capture channels")
    AUDIO_ECHO_CANCELLATION: bool = Field(default=True, description="Request echo cancellation")

    # =========================
    # Latency Settings
    # =========================
    STT_TIMEOUT_SECONDS: float = Field(default=30.0, description="Transcription call timeout")
    LLM_TIMEOUT_SECONDS: float = Field(default=10.0, description="Generation call timeout")

    # =========================
    # Client Settings
    # =========================
    GATEWAY_URL: str = Field(
        default="http://localhost:8000",
        description="Base URL of the transcription gateway"
    )
    GENERATE_URL: Optional[str] = Field(
        default="http://localhost:8000/generate",
        description="Intent delegation endpoint; unset disables delegation"
    )
    DEFAULT_LANGUAGE: str = Field(default="auto", description="Default language hint")
    SCENARIOS_PATH: Optional[Path] = Field(
        default=None,
        description="Optional JSON file overriding the built-in scenario table"
    )

    # =========================
    # Logging Settings
    # =========================
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    TURN_LOG_PATH: Path = Field(
        default=Path("./logs/turn_log.md"),
        description="Path to the markdown turn log"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Languages the transcription engine accepts as an explicit directive
SUPPORTED_LANGUAGES = {
    "en": "English",
    "hi": "Hindi",
    "ta": "Tamil",
    "te": "Telugu",
    "ml": "Malayalam",
    "kn": "Kannada",
    "bn": "Bengali",
    "gu": "Gujarati",
    "mr": "Marathi",
    "pa": "Punjabi",
    "ur": "Urdu",
    "or": "Odia",
    "as": "Assamese",
}

# Languages offered to the user as a hint (the console picker)
SELECTABLE_LANGUAGES = [
    {"code": "auto", "name": "Auto Detect", "native": "Auto"},
    {"code": "en", "name": "English", "native": "English"},
    {"code": "hi", "name": "Hindi", "native": "हिंदी"},
    {"code": "ta", "name": "Tamil", "native": "தமிழ்"},
    {"code": "ml", "name": "Malayalam", "native": "മലയാളം"},
    {"code": "kn", "name": "Kannada", "native": "ಕನ್ನಡ"},
    {"code": "te", "name": "Telugu", "native": "తెలుగు"},
]

# Helpdesk vocabulary used to prime transcription, per language
CONTEXT_PROMPTS = {
    "hi": "सरकारी सेवाएं, बिजली कटौती, पानी की टंकी, कल्याण योजनाएं, खेती, शिक्षा",
    "ta": "அரசு சேவைகள், மின்வெட்டு, தண்ணீர் தொட்டி, நலத்திட்டங்கள், விவசாயம், கல்வி",
    "te": "ప్రభుత్వ సేవలు, విద్యుత్ కోత, నీటి ట్యాంక్, సంక్షేమ పథకాలు, వ్యవసాయం, విద్య",
    "ml": "സർക്കാർ സേവനങ്ങൾ, വൈദ്യുതി മുടക്കം, വെള്ള ടാങ്ക്, ക്ഷേമ പദ്ധതികൾ, കൃഷി, വിദ്യാഭ്യാസം",
    "kn": "ಸರ್ಕಾರಿ ಸೇವೆಗಳು, ವಿದ್ಯುತ್ ಕಡಿತ, ನೀರಿನ ಟ್ಯಾಂಕ್, ಕಲ್ಯಾಣ ಯೋಜನೆಗಳು, ಕೃಷಿ, ಶಿಕ್ಷಣ",
    "bn": "সরকারি সেবা, বিদ্যুৎ বিভ্রাট, জলের ট্যাংক, কল্যাণ প্রকল্প, কৃষি, শিক্ষা",
    "gu": "સરકારી સેવાઓ, વીજ કાપ, પાણીની ટાંકી, કલ્યાણ યોજનાઓ, ખેતી, શિક્ષણ",
    "mr": "सरकारी सेवा, वीज खंडित, पाण्याची टाकी, कल्याण योजना, शेती, शिक्षण",
    "pa": "ਸਰਕਾਰੀ ਸੇਵਾਵਾਂ, ਬਿਜਲੀ ਕਟੌਤੀ, ਪਾਣੀ ਦੀ ਟੈਂਕੀ, ਭਲਾਈ ਯੋਜਨਾਵਾਂ, ਖੇਤੀ, ਸਿੱਖਿਆ",
    "ur": "سرکاری خدمات، بجلی کی بندش، پانی کا ٹینک، فلاحی اسکیمیں، زراعت، تعلیم",
    "or": "ସରକାରୀ ସେବା, ବିଦ୍ୟୁତ କଟୋତି, ପାଣି ଟାଙ୍କି, କଲ୍ୟାଣ ଯୋଜନା, କୃଷି, ଶିକ୍ଷା",
    "as": "চৰকাৰী সেৱা, বিদ্যুৎ বিভ্ৰাট, পানীৰ টেংকী, কল্যাণ যোজনা, কৃষি, শিক্ষা",
    "en": "Government services, power outage, water tank, welfare schemes, farming, education",
}

# Upload MIME types accepted by the gateway (parameters are stripped first)
ALLOWED_AUDIO_TYPES = [
    "audio/webm",
    "audio/wav",
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/ogg",
    "audio/x-m4a",
]

# Human-readable format names for the status probe
SUPPORTED_FORMATS = ["webm", "wav", "mp3", "m4a", "mp4", "ogg"]
