"""
Route registration for the voice flight assistant API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from adapters.errors import QueryError
from db.flight_db import FlightDatabase
from observability.logger import log_event
from session.gateway import SessionGateway


class QueryRequest(BaseModel):
    """Body of POST /api/query."""
    sql: str | None = None


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _query_failed(event_type: str, error: str, exc: QueryError) -> HTTPException:
    log_event({
        "ts_ms": _now_ms(),
        "event_type": event_type,
        "level": "ERROR",
        "message": str(exc),
    })
    return HTTPException(status_code=500, detail={"error": error, "details": str(exc)})


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/tables")
    async def list_tables() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        db: FlightDatabase = app.state.database
        try:
            return {"tables": await db.list_tables()}
        except QueryError as exc:
            raise _query_failed("HTTP_TABLES_FAILED", "Failed to fetch tables", exc) from exc

    @app.post("/api/query")
    async def run_query(body: QueryRequest) -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        if not body.sql:
            raise HTTPException(status_code=400, detail={"error": "SQL query required"})

        db: FlightDatabase = app.state.database
        try:
            return {"result": await db.query(body.sql)}
        except QueryError as exc:
            raise _query_failed("HTTP_QUERY_FAILED", "Query failed", exc) from exc

    @app.get("/api/flight/{flight_number}")
    async def flight_by_number(flight_number: str) -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        db: FlightDatabase = app.state.database
        try:
            return {"result": await db.get_flight_by_number(flight_number)}
        except QueryError as exc:
            raise _query_failed("HTTP_FLIGHT_LOOKUP_FAILED", "Flight lookup failed", exc) from exc

    @app.get("/api/flights/route")
    async def flights_by_route( # pyright: ignore[reportUnusedFunction]
        origin: str | None = None,
        destination: str | None = None,
    ) -> dict[str, Any]:
        db: FlightDatabase = app.state.database
        try:
            return {"result": await db.search_flights_by_route(origin, destination)}
        except QueryError as exc:
            raise _query_failed("HTTP_FLIGHT_SEARCH_FAILED", "Flight search failed", exc) from exc

    # ------------------------------------------------------------------
    # WebSocket
    # ------------------------------------------------------------------

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = SessionGateway(
            orchestrator=app.state.orchestrator,
            sessions=app.state.sessions,
        )

        try:
            await gateway.on_ws_connect(ws.send_text)

            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(code=msg.get("code", 1000))

                if msg.get("text") is not None:
                    await gateway.on_json_message(msg["text"])

                elif msg.get("bytes") is not None:
                    # Envelopes are JSON; a binary frame is treated as UTF-8 JSON text
                    await gateway.on_json_message(msg["bytes"])

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_FATAL_ERROR",
                "level": "ERROR",
                "session_id": gateway.session.session_id if gateway.session else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await gateway.on_ws_disconnect(reason="server_error")
