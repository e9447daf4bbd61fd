"""Record type handed from row workers to consumers."""

from __future__ import annotations

import io
from dataclasses import dataclass

# Path marker for bodies read from memory rather than from a file on disk.
STDIN = "STDIN"


@dataclass(slots=True)
class Record:
    """A single document: a source marker plus an owned, rewindable stream.

    The consumer owns ``body`` once the record has been yielded and must
    close it, either explicitly or by using the record as a context manager.
    """

    path: str
    body: io.BufferedIOBase

    def read(self) -> bytes:
        """Return the full body and leave the stream rewound to the start."""

        self.body.seek(0)
        data = self.body.read()
        self.body.seek(0)
        return data

    def close(self) -> None:
        self.body.close()

    @property
    def closed(self) -> bool:
        return self.body.closed

    def __enter__(self) -> "Record":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def new_record(path: str, body: io.BufferedIOBase) -> Record:
    return Record(path=path, body=body)


__all__ = ["STDIN", "Record", "new_record"]
