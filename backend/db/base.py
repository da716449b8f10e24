"""
Data-source capability contract.

The orchestrator only ever needs `query(sql) -> rows`. Rows are plain
dicts (column name -> value) so they serialize straight into the
query_result event.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping


class DataSource(ABC):
    """Read access to the flight data."""

    @abstractmethod
    async def query(
        self,
        sql: str,
        params: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute one statement and return its rows.

        Raises:
            QueryError on any failure. The orchestrator substitutes [] for
            any exception, wrapped or not.
        """
        raise NotImplementedError
