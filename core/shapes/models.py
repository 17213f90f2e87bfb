"""Data models for record shapes: field kinds, field specs and shape options."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator

# Annotation marking an integer field as unsigned.
Unsigned = NonNegativeInt

DEFAULT_TIMESTAMP_FORMAT = "%m-%d-%Y_%I:%M%p"


class ValueKind(str, Enum):
    """Closed set of field kinds a template placeholder can fill."""

    STRING = "string"
    SIGNED_INT = "int"
    UNSIGNED_INT = "uint"
    FLOAT = "float"
    TIMESTAMP = "timestamp"
    DURATION = "duration"


@dataclass(frozen=True)
class FieldSpec:
    """One eligible field of a registered record shape."""

    index: int
    name: str
    kind: ValueKind


def local_zone() -> tzinfo:
    """Return the local time zone of the running process."""

    return cast(tzinfo, datetime.now().astimezone().tzinfo)


class ShapeOptions(BaseModel):
    """Per-shape parsing options supplied at registration time."""

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    timestamp_format: str = Field(default=DEFAULT_TIMESTAMP_FORMAT, min_length=1)
    timestamp_zone: tzinfo = Field(default_factory=local_zone)

    @field_validator("timestamp_format")
    @classmethod
    def _reject_whitespace(cls, value: str) -> str:
        if any(char.isspace() for char in value):
            raise ValueError("timestamp format can't contain any spaces")
        return value

    @field_validator("timestamp_zone", mode="before")
    @classmethod
    def _resolve_zone(cls, value: object) -> object:
        if value is None:
            raise ValueError("timestamp zone can't be None")
        if isinstance(value, str):
            try:
                return ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"unknown time zone: {value}") from exc
        return value
