"""
Capability builders.

Maps AppConfig provider selections onto concrete adapters. Called once per
process by the app factory; the resulting objects are shared read-only by
every connection.
"""

from __future__ import annotations

from openai import AsyncOpenAI

from adapters.asr.base import Transcriber
from adapters.asr.openai_transcriber import OpenAITranscriber
from adapters.llm.intent import OpenAIIntentExtractor
from adapters.llm.streaming import StreamingResponseGenerator
from adapters.tts.base import SpeechSynthesizer
from adapters.tts.elevenlabs_adapter import ElevenLabsSpeechSynthesizer
from adapters.tts.openai_tts import OpenAISpeechSynthesizer
from config import AppConfig


GROQ_BASE_URL = "https://api.groq.com/openai/v1"


def build_llm_client(config: AppConfig) -> AsyncOpenAI:
    """Build an LLM client with the provider selected by environment variables."""
    if config.llm_provider.lower() == "groq":
        if not config.groq_api_key:
            raise RuntimeError("GROQ_API_KEY environment variable not set")
        return AsyncOpenAI(
            api_key=config.groq_api_key,
            base_url=GROQ_BASE_URL,
        )

    return build_openai_client(config)


def build_openai_client(config: AppConfig) -> AsyncOpenAI:
    """Client for OpenAI-hosted transcription and speech."""
    if not config.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable not set")
    return AsyncOpenAI(api_key=config.openai_api_key)


def build_transcriber(config: AppConfig, openai_client: AsyncOpenAI | None = None) -> Transcriber:
    provider = config.asr_provider.lower()

    if provider == "local":
        # faster-whisper pulls in ctranslate2; only import it when selected
        from adapters.asr.whisper_adapter import LocalWhisperTranscriber  # pylint: disable=import-outside-toplevel

        return LocalWhisperTranscriber(
            model=config.asr_model,
            language=config.asr_language,
            input_format=config.audio_input_format,
        )

    if provider == "openai":
        return OpenAITranscriber(
            client=openai_client or build_openai_client(config),
            model=config.asr_model,
            language=config.asr_language,
            input_format=config.audio_input_format,
        )

    raise ValueError(f"unknown ASR_PROVIDER: {config.asr_provider!r}")


def build_intent_extractor(config: AppConfig, llm_client: AsyncOpenAI) -> OpenAIIntentExtractor:
    return OpenAIIntentExtractor(client=llm_client, model=config.intent_model)


def build_response_generator(config: AppConfig, llm_client: AsyncOpenAI) -> StreamingResponseGenerator:
    return StreamingResponseGenerator(
        client=llm_client,
        model=config.response_model,
        provider=config.llm_provider.lower(),
        max_tokens=config.response_max_tokens,
    )


def build_synthesizer(config: AppConfig, openai_client: AsyncOpenAI | None = None) -> SpeechSynthesizer:
    provider = config.tts_provider.lower()

    if provider == "elevenlabs":
        kwargs: dict[str, str] = {}
        if config.elevenlabs_voice_id:
            kwargs["voice_id"] = config.elevenlabs_voice_id
        if config.elevenlabs_model_id:
            kwargs["model_id"] = config.elevenlabs_model_id
        return ElevenLabsSpeechSynthesizer(api_key=config.elevenlabs_api_key, **kwargs)

    if provider == "openai":
        return OpenAISpeechSynthesizer(
            client=openai_client or build_openai_client(config),
            model=config.tts_model,
            voice=config.tts_voice,
            response_format=config.tts_format,
        )

    raise ValueError(f"unknown TTS_PROVIDER: {config.tts_provider!r}")
