"""Configuration package exports."""

from .loader import ITERATOR_SCHEME, parse_iterator_uri
from .models import IteratorOptions, default_processes

__all__ = [
    "ITERATOR_SCHEME",
    "IteratorOptions",
    "default_processes",
    "parse_iterator_uri",
]
