"""SQL iterator producing records from the ``geojson`` table of one or more databases."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from threading import Event, Lock
from typing import Any, Callable, Dict, Generator, Iterator, Sequence

import structlog

from .config import IteratorOptions, parse_iterator_uri
from .engine import (
    GEOJSON_QUERY,
    CancelScope,
    DatabaseEngines,
    Row,
    RowOutcome,
    ThrottleGate,
    default_engines,
    process_row,
)
from .engine.database import Connection
from .errors import DatabaseConnectionError, IterateError, QueryError, RowScanError
from .logging_conf import get_logger
from .record import Record

RecordPair = tuple[Record | None, IterateError | None]
WalkCallback = Callable[[Record | None, IterateError | None], bool]


def _coerce_row(raw: Any, uri: str) -> Row:
    try:
        row_id, body = raw
    except (TypeError, ValueError) as exc:
        raise RowScanError(f"Failed to scan row with '{uri}', expected (id, body), {exc}", uri=uri) from exc
    if isinstance(row_id, bool):
        raise RowScanError(f"Failed to scan row with '{uri}', invalid id {row_id!r}", uri=uri)
    try:
        row_id = int(row_id)
    except (TypeError, ValueError) as exc:
        raise RowScanError(f"Failed to scan row with '{uri}', invalid id {row_id!r}", uri=uri) from exc
    if not isinstance(body, (str, bytes)):
        raise RowScanError(
            f"Failed to scan row '{row_id}' with '{uri}', body is {type(body).__name__}",
            uri=uri,
            row_id=row_id,
        )
    return Row(id=row_id, body=body)


class SQLIterator:
    """Iterate GeoJSON documents stored in ``database/sql``-style ``geojson`` tables.

    Built from a URI of the form ``sql://{engine}?{params}`` where ``{engine}``
    names a registered database engine and ``{params}`` may be:

    * ``include`` zero or more ``path=regex`` rules that must match for a
      document to be emitted.
    * ``exclude`` zero or more ``path=regex`` rules that prevent a document
      from being emitted when they match.
    * ``include_mode`` / ``exclude_mode`` ``ALL`` (default) or ``ANY``.
    * ``processes`` the maximum number of rows processed at the same time
      (default: the number of CPUs).

    Each call to :meth:`iterate` returns a one-shot generator of
    ``(record, error)`` pairs. Records arrive in completion order, not table
    order, and the consumer owns (and must close) every record it receives.
    Closing the generator, e.g. by breaking out of a ``for`` loop, stops the
    scan.
    """

    def __init__(self, options: IteratorOptions, engines: DatabaseEngines | None = None) -> None:
        self.options = options
        self.engine = options.engine
        self.filters = options.build_filters()
        self.gate = ThrottleGate(options.processes)
        # Seconds between cancellation checks while the scan loop waits on a full gate
        self.poll_interval = 0.05
        self.engines = engines or default_engines()
        self.logger = get_logger(component="sql_iterator", engine=self.engine)
        self._lock = Lock()
        self._seen = 0
        self._active_calls = 0

    @classmethod
    def from_uri(cls, uri: str, engines: DatabaseEngines | None = None) -> "SQLIterator":
        return cls(parse_iterator_uri(uri), engines=engines)

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------
    def seen(self) -> int:
        """Total number of rows scanned by every call so far."""

        with self._lock:
            return self._seen

    def is_iterating(self) -> bool:
        with self._lock:
            return self._active_calls > 0

    def close(self) -> None:
        """Nothing to release; connections are scoped to a single call."""

    def _increment_seen(self) -> None:
        with self._lock:
            self._seen += 1

    def _enter_call(self) -> None:
        with self._lock:
            self._active_calls += 1

    def _exit_call(self) -> None:
        with self._lock:
            self._active_calls -= 1

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------
    def iterate(self, *uris: str, cancel: Event | None = None) -> Generator[RecordPair, None, None]:
        """Return a lazy sequence of ``(record, error)`` pairs for ``uris``.

        ``cancel`` is an optional caller-owned event; once set no further rows
        are scanned and workers that have not started yet skip their row.
        """

        return self._iterate(uris, cancel)

    def walk(self, callback: WalkCallback, *uris: str, cancel: Event | None = None) -> None:
        """Push pairs to ``callback`` until it returns ``False`` or rows run out."""

        sequence = self.iterate(*uris, cancel=cancel)
        try:
            for record, error in sequence:
                if not callback(record, error):
                    break
        finally:
            sequence.close()

    def _iterate(self, uris: Sequence[str], parent: Event | None) -> Generator[RecordPair, None, None]:
        scope = CancelScope(parent)
        pending: Dict[Future[RowOutcome], int] = {}
        executor = ThreadPoolExecutor(max_workers=self.options.processes, thread_name_prefix="iterate-sql")
        self._enter_call()
        try:
            for uri in uris:
                if scope.is_set():
                    break
                logger = self.logger.bind(uri=uri)
                try:
                    conn = self.engines.open(self.engine, uri)
                except DatabaseConnectionError as exc:
                    logger.error("connection_failed", error=str(exc))
                    yield None, exc
                    return
                try:
                    logger.debug("scan_started")
                    yield from self._scan(conn, uri, scope, executor, pending, logger)
                    logger.debug("scan_finished", seen=self.seen())
                finally:
                    conn.close()
        finally:
            scope.set()
            self._abandon(pending)
            executor.shutdown(wait=False, cancel_futures=True)
            self._exit_call()

    def _scan(
        self,
        conn: Connection,
        uri: str,
        scope: CancelScope,
        executor: ThreadPoolExecutor,
        pending: Dict[Future[RowOutcome], int],
        logger: structlog.stdlib.BoundLogger,
    ) -> Generator[RecordPair, None, None]:
        try:
            cursor = conn.execute(GEOJSON_QUERY)
        except Exception as exc:  # noqa: BLE001
            logger.error("query_failed", error=str(exc))
            error = QueryError(f"Failed to query 'geojson' table with '{uri}', {exc}", uri=uri)
            error.__cause__ = exc
            yield None, error
            return

        rows: Iterator[Any] = iter(cursor)
        while not scope.is_set():
            try:
                raw = next(rows)
            except StopIteration:
                break
            except Exception as exc:  # noqa: BLE001
                logger.error("cursor_failed", error=str(exc))
                error = QueryError(f"Failed to iterate through rows with '{uri}', {exc}", uri=uri)
                error.__cause__ = exc
                yield None, error
                break

            try:
                row = _coerce_row(raw, uri)
            except RowScanError as exc:
                logger.error("row_scan_failed", error=str(exc))
                yield None, exc
                continue

            self._increment_seen()
            if not self.gate.acquire(scope, self.poll_interval):
                break
            try:
                future = executor.submit(process_row, row, self.filters, scope, self.gate, uri)
            except RuntimeError:
                self.gate.release()
                raise
            pending[future] = row.id
            yield from self._drain(pending, uri, block=False)

        # Every launched worker reports before this source counts as exhausted.
        yield from self._drain(pending, uri, block=True)

    def _drain(
        self, pending: Dict[Future[RowOutcome], int], uri: str, *, block: bool
    ) -> Generator[RecordPair, None, None]:
        if block:
            completed: Iterator[Future[RowOutcome]] = as_completed(list(pending))
        else:
            completed = iter([future for future in list(pending) if future.done()])
        for future in completed:
            row_id = pending.pop(future)
            outcome = self._outcome(future, uri, row_id)
            if outcome.is_reportable:
                yield outcome.record, outcome.error

    def _outcome(self, future: Future[RowOutcome], uri: str, row_id: int) -> RowOutcome:
        exc = future.exception()
        if exc is None:
            return future.result()
        self.logger.error("row_worker_crashed", uri=uri, id=row_id, error=str(exc))
        error = IterateError(f"Failed to process record '{row_id}' with '{uri}', {exc}", uri=uri, row_id=row_id)
        error.__cause__ = exc
        return RowOutcome(status="failed", row_id=row_id, error=error)

    def _abandon(self, pending: Dict[Future[RowOutcome], int]) -> None:
        """Release resources of workers whose results nobody will read."""

        def _discard(future: Future[RowOutcome]) -> None:
            if future.cancelled():
                # Never ran, so the worker did not free its slot.
                self.gate.release()
                return
            if future.exception() is None:
                outcome = future.result()
                if outcome.record is not None:
                    outcome.record.close()

        for future in list(pending):
            future.add_done_callback(_discard)
        if pending:
            self.logger.debug("abandoned_workers", count=len(pending))
        pending.clear()


def new_sql_iterator(uri: str) -> SQLIterator:
    return SQLIterator.from_uri(uri)


__all__ = ["RecordPair", "SQLIterator", "WalkCallback", "new_sql_iterator"]
