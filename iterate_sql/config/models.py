"""Pydantic models describing iterator configuration."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..filters import QueryFilters, QueryMode


def default_processes() -> int:
    return os.cpu_count() or 1


class IteratorOptions(BaseModel):
    """Options carried by an ``sql://{engine}?{params}`` iterator URI."""

    model_config = ConfigDict(frozen=True)

    engine: str
    processes: int = Field(default_factory=default_processes, gt=0)
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    include_mode: QueryMode = QueryMode.ALL
    exclude_mode: QueryMode = QueryMode.ALL

    @field_validator("engine")
    @classmethod
    def _validate_engine(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("engine cannot be empty")
        return value

    @field_validator("processes", mode="before")
    @classmethod
    def _coerce_processes(cls, value: Any) -> Any:
        if value in (None, ""):
            return default_processes()
        if isinstance(value, str):
            try:
                return int(value.strip(), 10)
            except ValueError as exc:
                raise ValueError(f"processes must be an integer, got '{value}'") from exc
        return value

    @field_validator("include_mode", "exclude_mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: Any) -> QueryMode:
        if isinstance(value, QueryMode):
            return value
        return QueryMode.parse(value)

    @model_validator(mode="after")
    def _validate_rules(self) -> "IteratorOptions":
        # Compiling the rules surfaces bad paths and regular expressions early.
        self.build_filters()
        return self

    def build_filters(self) -> QueryFilters | None:
        return QueryFilters.from_rules(
            include=self.include,
            exclude=self.exclude,
            include_mode=self.include_mode,
            exclude_mode=self.exclude_mode,
        )


__all__ = ["IteratorOptions", "default_processes"]
