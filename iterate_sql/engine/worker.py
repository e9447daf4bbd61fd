"""Per-row work: build a rewindable stream, apply filters, hand back a record."""

from __future__ import annotations

import io
from dataclasses import dataclass
from threading import Event
from typing import Literal

from ..errors import FilterEvaluationError, IterateError, StreamConstructionError
from ..filters import QueryFilters
from ..logging_conf import get_logger
from ..record import STDIN, Record, new_record
from .throttle import ThrottleGate

OutcomeStatus = Literal["record", "filtered", "cancelled", "failed"]


class CancelScope:
    """Cancellation flag for one call, also tripped by an optional parent event."""

    def __init__(self, parent: Event | None = None) -> None:
        self.parent = parent
        self._event = Event()

    def set(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set() or (self.parent is not None and self.parent.is_set())


@dataclass(slots=True)
class Row:
    id: int
    body: str | bytes


@dataclass(slots=True)
class RowOutcome:
    """Result of processing one row; carries the record or the error, never both."""

    status: OutcomeStatus
    row_id: int
    record: Record | None = None
    error: IterateError | None = None

    @property
    def is_reportable(self) -> bool:
        return self.record is not None or self.error is not None


def build_stream(body: str | bytes) -> io.BytesIO:
    if isinstance(body, str):
        data = body.encode("utf-8")
    elif isinstance(body, (bytes, bytearray, memoryview)):
        data = bytes(body)
    else:
        raise TypeError(f"Unsupported body type {type(body).__name__}")
    return io.BytesIO(data)


def process_row(
    row: Row,
    filters: QueryFilters | None,
    cancel: CancelScope | Event,
    gate: ThrottleGate,
    uri: str,
) -> RowOutcome:
    """Process a single row while holding a gate slot; always frees the slot."""

    logger = get_logger(uri=uri, id=row.id)
    try:
        if cancel.is_set():
            return RowOutcome(status="cancelled", row_id=row.id)

        # The body is read from memory, not a file, hence the STDIN marker.
        try:
            stream = build_stream(row.body)
        except (TypeError, UnicodeEncodeError) as exc:
            logger.error("stream_construction_failed", error=str(exc))
            return RowOutcome(
                status="failed",
                row_id=row.id,
                error=StreamConstructionError(
                    f"Failed to create stream for record '{row.id}' with '{uri}', {exc}",
                    uri=uri,
                    row_id=row.id,
                ),
            )

        if filters is not None:
            try:
                accepted = filters.accept(stream)
            except FilterEvaluationError as exc:
                stream.close()
                logger.error("filter_failed", error=str(exc))
                return RowOutcome(
                    status="failed",
                    row_id=row.id,
                    error=FilterEvaluationError(
                        f"Failed to apply query filters to record '{row.id}' with '{uri}', {exc.message}",
                        uri=uri,
                        row_id=row.id,
                    ),
                )
            if not accepted:
                stream.close()
                logger.debug("row_filtered")
                return RowOutcome(status="filtered", row_id=row.id)

        return RowOutcome(status="record", row_id=row.id, record=new_record(STDIN, stream))
    finally:
        gate.release()


__all__ = ["CancelScope", "OutcomeStatus", "Row", "RowOutcome", "build_stream", "process_row"]
