"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (provider clients, flight database,
  streaming orchestrator, session table)
- Register routes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.factory import (
    build_intent_extractor,
    build_llm_client,
    build_openai_client,
    build_response_generator,
    build_synthesizer,
    build_transcriber,
)
from config import AppConfig
from db.flight_db import FlightDatabase
from observability.logger import configure_logging
from orchestrator.pipeline import StreamingOrchestrator
from server.routes import register_routes
from session.registry import SessionTable


def create_app(
    config: AppConfig | None = None,
    *,
    database: FlightDatabase | None = None,
    orchestrator: StreamingOrchestrator | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with injected database / orchestrator
    - Environment-specific setup
    - ASGI server compatibility

    Provider clients are created ONCE per process and shared read-only by
    every connection.
    """
    config = config or AppConfig.load_from_env()
    configure_logging(level=config.log_level, json_lines=config.enable_json_logs)

    database = database or FlightDatabase(config.flight_db_path)
    if orchestrator is None:
        orchestrator = build_orchestrator(config, database)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await database.initialize()
        yield
        await database.close()

    app = FastAPI(title="Voice Flight Assistant API", lifespan=lifespan)

    app.state.config = config
    app.state.database = database
    app.state.orchestrator = orchestrator
    app.state.sessions = SessionTable()

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins) or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app


def build_orchestrator(config: AppConfig, database: FlightDatabase) -> StreamingOrchestrator:
    """Wire the provider adapters selected by config into one orchestrator."""
    llm_client = build_llm_client(config)

    needs_openai = config.asr_provider.lower() == "openai" or config.tts_provider.lower() == "openai"
    openai_client = build_openai_client(config) if needs_openai else None

    return StreamingOrchestrator(
        transcriber=build_transcriber(config, openai_client),
        intent_extractor=build_intent_extractor(config, llm_client),
        data_source=database,
        responder=build_response_generator(config, llm_client),
        synthesizer=build_synthesizer(config, openai_client),
    )
