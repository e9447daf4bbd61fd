"""Scheme → iterator constructor registry."""

from __future__ import annotations

from threading import Lock
from typing import Callable, Dict, Protocol
from urllib.parse import urlsplit

from .config import ITERATOR_SCHEME
from .errors import ConfigurationError
from .iterator import SQLIterator


class DocumentIterator(Protocol):
    def iterate(self, *uris: str, **kwargs): ...

    def walk(self, callback, *uris: str, **kwargs) -> None: ...

    def seen(self) -> int: ...

    def is_iterating(self) -> bool: ...

    def close(self) -> None: ...


IteratorConstructor = Callable[[str], DocumentIterator]


class IteratorRegistry:
    """Explicit registry of iterator constructors keyed by URI scheme."""

    def __init__(self) -> None:
        self._constructors: Dict[str, IteratorConstructor] = {}
        self._lock = Lock()

    def register(self, scheme: str, constructor: IteratorConstructor) -> None:
        key = scheme.lower()
        with self._lock:
            if key in self._constructors:
                raise ValueError(f"Iterator scheme already registered: {scheme}")
            self._constructors[key] = constructor

    def schemes(self) -> list[str]:
        with self._lock:
            return sorted(self._constructors)

    def new_iterator(self, uri: str) -> DocumentIterator:
        scheme = urlsplit(uri).scheme.lower()
        with self._lock:
            constructor = self._constructors.get(scheme)
        if constructor is None:
            raise ConfigurationError(f"Unknown iterator scheme '{scheme}' in '{uri}'", uri=uri)
        return constructor(uri)


def default_registry() -> IteratorRegistry:
    registry = IteratorRegistry()
    registry.register(ITERATOR_SCHEME, SQLIterator.from_uri)
    return registry


def new_iterator(uri: str) -> DocumentIterator:
    return default_registry().new_iterator(uri)


__all__ = ["DocumentIterator", "IteratorConstructor", "IteratorRegistry", "default_registry", "new_iterator"]
