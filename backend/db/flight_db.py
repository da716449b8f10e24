"""
SQLite flight database.

Responsibilities:
- Open the flight database read-only (or an empty in-memory database
  when the file is missing)
- Execute model-generated SQL and the fixed lookups behind the HTTP API
- Translate driver failures into QueryError

Non-responsibilities:
- No query planning or validation of model-generated SQL
- No schema management

Schema (as shipped with the dataset):
- flights(flight_number, flight_status, scheduled_departure, actual_departure,
  scheduled_arrival, actual_arrival, aircraft_type, passenger_count,
  captain_name, cabin_lead_name, origin_airport_code,
  destination_airport_code, gate_id)
- airports(airport_code, airport_name, city_name)
- gates(gate_id, gate_number, terminal)
"""

from __future__ import annotations

import os
import time
from typing import Any, Mapping

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from adapters.errors import QueryError
from db.base import DataSource
from observability.logger import log_event


_FLIGHT_COLUMNS = """
    f.flight_number,
    f.flight_status,
    f.scheduled_departure,
    f.actual_departure,
    f.scheduled_arrival,
    f.actual_arrival,
    f.aircraft_type,
    f.passenger_count,
    f.captain_name,
    f.cabin_lead_name,
    origin.airport_name AS origin_name,
    origin.city_name AS origin_city,
    dest.airport_name AS destination_name,
    dest.city_name AS destination_city,
    g.gate_number,
    g.terminal
"""

_ROUTE_COLUMNS = """
    f.flight_number,
    f.flight_status,
    f.scheduled_departure,
    f.scheduled_arrival,
    f.aircraft_type,
    origin.airport_name AS origin_name,
    origin.city_name AS origin_city,
    dest.airport_name AS destination_name,
    dest.city_name AS destination_city,
    g.gate_number,
    g.terminal
"""

_FLIGHT_JOINS = """
    FROM flights f
    LEFT JOIN airports origin ON f.origin_airport_code = origin.airport_code
    LEFT JOIN airports dest ON f.destination_airport_code = dest.airport_code
    LEFT JOIN gates g ON f.gate_id = g.gate_id
"""


class FlightDatabase(DataSource):
    """
    Async SQLite access via SQLAlchemy + aiosqlite.

    One instance per process, shared read-only by every connection.
    """

    def __init__(self, path: str | None) -> None:
        self._path = path
        self._engine: AsyncEngine | None = None
        self._in_memory = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Create the engine.

        A missing file is not an error: the server still runs, every
        query simply finds no tables.
        """
        if self._engine is not None:
            return

        if self._path and os.path.exists(self._path):
            url = f"sqlite+aiosqlite:///file:{os.path.abspath(self._path)}?mode=ro&uri=true"
            self._engine = create_async_engine(url)
            self._in_memory = False
        else:
            log_event({
                "ts_ms": int(time.time() * 1000),
                "event_type": "DB_FILE_MISSING",
                "level": "WARNING",
                "path": self._path,
            })
            # One shared connection, otherwise every checkout sees a fresh empty DB
            self._engine = create_async_engine(
                "sqlite+aiosqlite://",
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            self._in_memory = True

        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "DB_INITIALIZED",
            "path": self._path,
            "in_memory": self._in_memory,
        })

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    @property
    def in_memory(self) -> bool:
        return self._in_memory

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def query(
        self,
        sql: str,
        params: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Run one statement.

        Without params the SQL goes to the driver untouched, so a `:name`
        inside a string literal is not read as a bind parameter. With
        params it is compiled through text() and binds by name.
        """
        if self._engine is None:
            raise QueryError("Database not initialized")

        try:
            async with self._engine.begin() as conn:
                if params is None:
                    result = await conn.exec_driver_sql(sql)
                else:
                    result = await conn.execute(text(sql), dict(params))
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings()]
        except SQLAlchemyError as exc:
            raise QueryError(str(exc)) from exc

    async def list_tables(self) -> list[dict[str, Any]]:
        return await self.query("SELECT name FROM sqlite_master WHERE type='table'")

    async def get_flight_by_number(self, flight_number: str) -> list[dict[str, Any]]:
        """Partial match: "123" finds "UA123"."""
        sql = f"SELECT {_FLIGHT_COLUMNS} {_FLIGHT_JOINS} WHERE f.flight_number LIKE :pattern"
        return await self.query(sql, {"pattern": f"%{flight_number}%"})

    async def search_flights_by_route(
        self,
        origin: str | None = None,
        destination: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Filter on city name, airport code or airport name for each end.

        Either side may be omitted; with neither, every flight is returned.
        """
        sql = f"SELECT {_ROUTE_COLUMNS} {_FLIGHT_JOINS} WHERE 1=1"
        params: dict[str, Any] = {}

        if origin:
            sql += (
                " AND (origin.city_name LIKE :origin"
                " OR origin.airport_code LIKE :origin"
                " OR origin.airport_name LIKE :origin)"
            )
            params["origin"] = f"%{origin}%"

        if destination:
            sql += (
                " AND (dest.city_name LIKE :destination"
                " OR dest.airport_code LIKE :destination"
                " OR dest.airport_name LIKE :destination)"
            )
            params["destination"] = f"%{destination}%"

        sql += " ORDER BY f.scheduled_departure"
        return await self.query(sql, params)
