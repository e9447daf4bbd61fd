"""Turn iterator URIs into validated :class:`IteratorOptions`."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

from pydantic import ValidationError

from ..errors import ConfigurationError
from .models import IteratorOptions

ITERATOR_SCHEME = "sql"


def _first(params: dict[str, list[str]], key: str) -> str | None:
    values = params.get(key)
    return values[0] if values else None


def parse_iterator_uri(uri: str) -> IteratorOptions:
    """Parse ``sql://{engine}?{params}`` into iterator options.

    Raises :class:`ConfigurationError` for malformed URIs, bad ``processes``
    values and invalid include/exclude rules.
    """

    try:
        parts = urlsplit(uri)
        params = parse_qs(parts.query, keep_blank_values=True)
    except ValueError as exc:
        raise ConfigurationError(f"Failed to parse URI, {exc}", uri=uri) from exc

    if not parts.scheme:
        raise ConfigurationError(f"URI '{uri}' has no scheme", uri=uri)
    if not parts.netloc:
        raise ConfigurationError(f"URI '{uri}' does not name a database engine", uri=uri)

    payload: dict[str, object] = {
        "engine": parts.netloc,
        "include": tuple(rule for rule in params.get("include", []) if rule),
        "exclude": tuple(rule for rule in params.get("exclude", []) if rule),
    }
    for key in ("processes", "include_mode", "exclude_mode"):
        value = _first(params, key)
        if value not in (None, ""):
            payload[key] = value

    try:
        return IteratorOptions.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid iterator URI '{uri}', {exc}", uri=uri) from exc


__all__ = ["ITERATOR_SCHEME", "parse_iterator_uri"]
