"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default) == "1"


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the app factory and provider builders.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str
    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str
    port: int
    cors_origins: tuple[str, ...]

    # ------------------------------------------------------------------
    # LLM configuration
    # ------------------------------------------------------------------

    llm_provider: str
    openai_api_key: str | None
    groq_api_key: str | None
    intent_model: str
    response_model: str
    response_max_tokens: int

    # ------------------------------------------------------------------
    # ASR
    # ------------------------------------------------------------------

    asr_provider: str
    asr_model: str
    asr_language: str | None
    audio_input_format: str

    # ------------------------------------------------------------------
    # TTS
    # ------------------------------------------------------------------

    tts_provider: str
    tts_model: str
    tts_voice: str
    tts_format: str
    elevenlabs_api_key: str | None
    elevenlabs_voice_id: str | None
    elevenlabs_model_id: str | None

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    flight_db_path: str

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Provider keys are optional here; builders that need them fail
        loudly at startup.
        """
        origins = os.environ.get("CORS_ORIGINS", "*")
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            enable_json_logs=_env_bool("ENABLE_JSON_LOGS", "1"),

            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "8080")),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),

            llm_provider=os.environ.get("LLM_PROVIDER", "openai"),
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            groq_api_key=os.environ.get("GROQ_API_KEY"),
            intent_model=os.environ.get("INTENT_MODEL", "gpt-4o-mini"),
            response_model=os.environ.get("RESPONSE_MODEL", "gpt-4o-mini"),
            response_max_tokens=int(os.environ.get("RESPONSE_MAX_TOKENS", "200")),

            asr_provider=os.environ.get("ASR_PROVIDER", "openai"),
            asr_model=os.environ.get("ASR_MODEL", "whisper-1"),
            asr_language=os.environ.get("ASR_LANGUAGE", "en") or None,
            audio_input_format=os.environ.get("AUDIO_INPUT_FORMAT", "webm"),

            tts_provider=os.environ.get("TTS_PROVIDER", "openai"),
            tts_model=os.environ.get("TTS_MODEL", "tts-1"),
            tts_voice=os.environ.get("TTS_VOICE", "nova"),
            tts_format=os.environ.get("TTS_FORMAT", "mp3"),
            elevenlabs_api_key=os.environ.get("ELEVENLABS_API_KEY"),
            elevenlabs_voice_id=os.environ.get("ELEVENLABS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM"),
            elevenlabs_model_id=os.environ.get("ELEVENLABS_MODEL_ID", "eleven_turbo_v2"),

            flight_db_path=os.environ.get("FLIGHT_DB_PATH", "flights.db"),
        )
