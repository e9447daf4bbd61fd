"""Database engine registry opening connections for iterator sources."""

from __future__ import annotations

import sqlite3
from threading import Lock
from typing import Any, Callable, Dict, Protocol
from urllib.parse import quote

from ..errors import DatabaseConnectionError


class Connection(Protocol):
    """Subset of the DB-API connection interface used by the iterator."""

    def execute(self, sql: str, *args: Any) -> Any: ...

    def close(self) -> None: ...


Opener = Callable[[str], Connection]

GEOJSON_QUERY = "SELECT id, body FROM geojson"


def open_sqlite(dsn: str) -> sqlite3.Connection:
    """Open a SQLite database read-only.

    Plain paths are turned into ``file:`` URIs so that a missing database
    fails instead of being created empty.
    """

    target = dsn if dsn.startswith("file:") else f"file:{quote(dsn)}?mode=ro"
    return sqlite3.connect(target, uri=True, check_same_thread=False)


class DatabaseEngines:
    """Map engine names (``sqlite3``, ...) to connection openers."""

    def __init__(self) -> None:
        self._openers: Dict[str, Opener] = {}
        self._lock = Lock()

    def register(self, name: str, opener: Opener) -> None:
        with self._lock:
            if name in self._openers:
                raise ValueError(f"Database engine already registered: {name}")
            self._openers[name] = opener

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._openers)

    def open(self, name: str, dsn: str) -> Connection:
        with self._lock:
            opener = self._openers.get(name)
        if opener is None:
            raise DatabaseConnectionError(f"Unsupported database engine '{name}'", uri=dsn)
        try:
            return opener(dsn)
        except Exception as exc:  # noqa: BLE001
            raise DatabaseConnectionError(
                f"Failed to open database connection for '{dsn}', {exc}", uri=dsn
            ) from exc


def default_engines() -> DatabaseEngines:
    engines = DatabaseEngines()
    engines.register("sqlite3", open_sqlite)
    engines.register("sqlite", open_sqlite)
    return engines


__all__ = ["GEOJSON_QUERY", "Connection", "DatabaseEngines", "Opener", "default_engines", "open_sqlite"]
