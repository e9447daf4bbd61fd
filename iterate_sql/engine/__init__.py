"""Engine components: database engines → throttle gate → row workers."""

from .database import GEOJSON_QUERY, DatabaseEngines, default_engines, open_sqlite
from .throttle import ThrottleGate
from .worker import CancelScope, Row, RowOutcome, build_stream, process_row

__all__ = [
    "GEOJSON_QUERY",
    "CancelScope",
    "DatabaseEngines",
    "Row",
    "RowOutcome",
    "ThrottleGate",
    "build_stream",
    "default_engines",
    "open_sqlite",
    "process_row",
]
