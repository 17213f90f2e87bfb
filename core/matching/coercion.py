"""Conversion of extracted substrings into typed record fields.

Parsing is best effort: a value that does not parse leaves its field at the
zero value and is reported as a ``coercion_failed`` warning event.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, tzinfo
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from core.shapes.models import FieldSpec, ValueKind
from core.utils.log_events import log_event

if TYPE_CHECKING:
    from core.shapes.registry import RecordShape

logger = logging.getLogger("shapefill.coercion")

_SIGNED_RE = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_RE = re.compile(r"[0-9]+")
_DURATION_UNIT = r"(?:ns|us|µs|μs|ms|s|m|h)"
_DURATION_NUMBER = r"(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)"
_DURATION_RE = re.compile(rf"(?P<sign>[-+]?)(?P<parts>(?:{_DURATION_NUMBER}{_DURATION_UNIT})+)")
_DURATION_PART_RE = re.compile(rf"(?P<number>{_DURATION_NUMBER})(?P<unit>{_DURATION_UNIT})")

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_UINT64_MAX = 2**64 - 1

_MICROSECONDS_PER_UNIT = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),
    "μs": Decimal(1),
    "ms": Decimal(1_000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}


def coerce(mapping: Mapping[FieldSpec, str], shape: RecordShape) -> Any:
    """Build a fresh record of ``shape`` from extracted field substrings."""

    parsers: dict[ValueKind, Callable[[str], Any]] = {
        ValueKind.STRING: str,
        ValueKind.SIGNED_INT: parse_signed,
        ValueKind.UNSIGNED_INT: parse_unsigned,
        ValueKind.FLOAT: parse_float,
        ValueKind.TIMESTAMP: lambda value: parse_timestamp(
            value, shape.timestamp_format, shape.timestamp_zone
        ),
        ValueKind.DURATION: parse_duration,
    }

    parsed: dict[int, Any] = {}
    for spec, raw_value in mapping.items():
        try:
            parsed[spec.index] = parsers[spec.kind](raw_value)
        except (ValueError, OverflowError) as exc:
            log_event(
                logger,
                logging.WARNING,
                "coercion_failed",
                shape=shape.name,
                field=spec.name,
                kind=spec.kind.value,
                value=raw_value,
                reason=str(exc),
            )
    return shape.factory.new(parsed)


def parse_signed(value: str) -> int:
    """Parse a base-10 signed 64-bit integer."""

    if not _SIGNED_RE.fullmatch(value):
        raise ValueError(f"invalid signed integer: {value!r}")
    parsed = int(value)
    if not _INT64_MIN <= parsed <= _INT64_MAX:
        raise ValueError(f"signed integer out of range: {value!r}")
    return parsed


def parse_unsigned(value: str) -> int:
    """Parse a base-10 unsigned 64-bit integer; signs are rejected."""

    if not _UNSIGNED_RE.fullmatch(value):
        raise ValueError(f"invalid unsigned integer: {value!r}")
    parsed = int(value)
    if parsed > _UINT64_MAX:
        raise ValueError(f"unsigned integer out of range: {value!r}")
    return parsed


def parse_float(value: str) -> float:
    if "_" in value or value != value.strip():
        raise ValueError(f"invalid float: {value!r}")
    return float(value)


def parse_timestamp(value: str, timestamp_format: str, zone: tzinfo) -> datetime:
    """Parse ``value`` with ``timestamp_format``; naive results get ``zone``."""

    parsed = datetime.strptime(value, timestamp_format)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    return parsed


def parse_duration(value: str) -> timedelta:
    """Parse a duration literal such as ``4h2m``, ``1.5h`` or ``-300ms``.

    A sequence of decimal numbers, each with a unit suffix, with an optional
    leading sign. Valid units are ``ns``, ``us`` (``µs``), ``ms``, ``s``,
    ``m`` and ``h``. The bare ``0`` is accepted as well. Values are rounded to
    whole microseconds and may exceed the int64 nanosecond range, up to the
    limits of ``timedelta``.
    """

    if value in {"0", "+0", "-0"}:
        return timedelta(0)
    match = _DURATION_RE.fullmatch(value)
    if match is None:
        raise ValueError(f"invalid duration: {value!r}")

    total = Decimal(0)
    for part in _DURATION_PART_RE.finditer(match.group("parts")):
        total += Decimal(part.group("number")) * _MICROSECONDS_PER_UNIT[part.group("unit")]
    if match.group("sign") == "-":
        total = -total
    return timedelta(microseconds=int(total.to_integral_value()))
