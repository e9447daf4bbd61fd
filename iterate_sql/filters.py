"""Include/exclude query filters evaluated against JSON document bodies.

A rule is written as ``{path}={regex}``, for example
``properties.sfomuseum:uri=2019``. The path is a dot separated list of keys
(``\\.`` escapes a literal dot, integer segments index into lists) and the
regular expression is tested with :func:`re.search` against every value found
at that path.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Any, Iterable, Sequence

from .errors import ConfigurationError, FilterEvaluationError


class QueryMode(str, Enum):
    """How the rules of a query set combine."""

    ALL = "ALL"
    ANY = "ANY"

    @classmethod
    def parse(cls, value: str | None) -> "QueryMode":
        if value in (None, ""):
            return cls.ALL
        try:
            return cls(value.upper())
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid query mode '{value}', expected one of {[m.value for m in cls]}"
            ) from exc


_MISSING = object()


def _split_path(path: str) -> list[str]:
    segments: list[str] = []
    current: list[str] = []
    escaped = False
    for ch in path:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == ".":
            segments.append("".join(current))
            current = []
        else:
            current.append(ch)
    segments.append("".join(current))
    return segments


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


@dataclass(frozen=True, slots=True)
class Query:
    """A single ``path=regex`` rule."""

    path: str
    pattern: re.Pattern[str]
    segments: tuple[str, ...] = field(default=(), compare=False)

    @classmethod
    def parse(cls, rule: str) -> "Query":
        path, sep, expression = rule.partition("=")
        if not sep:
            raise ConfigurationError(f"Invalid query '{rule}', expected '{{path}}={{regex}}'")
        if not path:
            raise ConfigurationError(f"Invalid query '{rule}', path is empty")
        try:
            pattern = re.compile(expression)
        except re.error as exc:
            raise ConfigurationError(f"Invalid regular expression in query '{rule}', {exc}") from exc
        return cls(path=path, pattern=pattern, segments=tuple(_split_path(path)))

    def lookup(self, document: Any) -> Any:
        node = document
        for segment in self.segments:
            if isinstance(node, dict):
                if segment not in node:
                    return _MISSING
                node = node[segment]
            elif isinstance(node, list) and segment.lstrip("-").isdigit():
                index = int(segment)
                if not -len(node) <= index < len(node):
                    return _MISSING
                node = node[index]
            else:
                return _MISSING
        return node

    def matches(self, document: Any) -> bool:
        value = self.lookup(document)
        if value is _MISSING:
            return False
        values = value if isinstance(value, list) else [value]
        if not values:
            return False
        return all(self.pattern.search(_stringify(item)) for item in values)


@dataclass(frozen=True, slots=True)
class QuerySet:
    queries: tuple[Query, ...]
    mode: QueryMode = QueryMode.ALL

    @classmethod
    def from_rules(cls, rules: Iterable[str], mode: QueryMode | str | None = None) -> "QuerySet":
        if not isinstance(mode, QueryMode):
            mode = QueryMode.parse(mode)
        return cls(queries=tuple(Query.parse(rule) for rule in rules), mode=mode)

    def matches(self, document: Any) -> bool:
        if not self.queries:
            return False
        results = (query.matches(document) for query in self.queries)
        if self.mode is QueryMode.ANY:
            return any(results)
        return all(results)


class QueryFilters:
    """Accept or reject document streams using include and exclude query sets."""

    def __init__(self, include: QuerySet | None = None, exclude: QuerySet | None = None) -> None:
        self.include = include if include and include.queries else None
        self.exclude = exclude if exclude and exclude.queries else None

    @classmethod
    def from_rules(
        cls,
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
        include_mode: QueryMode | str | None = None,
        exclude_mode: QueryMode | str | None = None,
    ) -> "QueryFilters | None":
        """Build filters from rule strings; return ``None`` when there are no rules."""

        if not include and not exclude:
            return None
        return cls(
            include=QuerySet.from_rules(include, include_mode),
            exclude=QuerySet.from_rules(exclude, exclude_mode),
        )

    def accept(self, stream: IO[bytes]) -> bool:
        """Return whether the document in ``stream`` passes the filters.

        The stream is always rewound to its start before returning. A body that
        is not valid JSON raises :class:`FilterEvaluationError` whenever any rule
        is configured, exclude-only filters included; it is never passed through
        as a non-match.
        """

        try:
            stream.seek(0)
            raw = stream.read()
        except (OSError, ValueError) as exc:
            raise FilterEvaluationError(f"Failed to read document for filtering, {exc}") from exc
        finally:
            if not stream.closed:
                stream.seek(0)
        try:
            document = json.loads(raw)
        except ValueError as exc:
            raise FilterEvaluationError(f"Failed to decode document as JSON, {exc}") from exc

        if self.include is not None and not self.include.matches(document):
            return False
        if self.exclude is not None and self.exclude.matches(document):
            return False
        return True


__all__ = ["Query", "QueryFilters", "QueryMode", "QuerySet"]
