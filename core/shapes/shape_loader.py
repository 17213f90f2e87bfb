"""Shape book loading: YAML declarations of shapes for the CLI and API."""

from __future__ import annotations

import dataclasses
import keyword
from collections.abc import Mapping
from datetime import datetime, timedelta
from pathlib import Path
from types import MappingProxyType

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.orchestrator.pipeline import NaturalLanguageProcessor
from core.shapes.models import Unsigned, ValueKind

_KIND_ANNOTATIONS: Mapping[ValueKind, object] = MappingProxyType(
    {
        ValueKind.STRING: str,
        ValueKind.SIGNED_INT: int,
        ValueKind.UNSIGNED_INT: Unsigned,
        ValueKind.FLOAT: float,
        ValueKind.TIMESTAMP: datetime,
        ValueKind.DURATION: timedelta,
    }
)


class ShapeDefinition(BaseModel):
    """One shape declared in a shape book."""

    model_config = ConfigDict(extra="forbid")

    name: str
    fields: dict[str, ValueKind] = Field(min_length=1)
    templates: list[str] = Field(min_length=1)
    timestamp_format: str | None = None
    timestamp_zone: str | None = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not value.isidentifier() or keyword.iskeyword(value):
            raise ValueError(f"shape name must be a Python identifier: {value!r}")
        return value

    @field_validator("fields")
    @classmethod
    def _check_field_names(cls, value: dict[str, ValueKind]) -> dict[str, ValueKind]:
        for name in value:
            if not name.isidentifier() or keyword.iskeyword(name) or name.startswith("_"):
                raise ValueError(f"field name must be a public Python identifier: {name!r}")
        return value


class ShapeBook(BaseModel):
    """On-disk YAML structure listing shapes in classifier label order."""

    model_config = ConfigDict(extra="forbid")

    shapes: list[ShapeDefinition] = Field(min_length=1)


def load_shape_book(path: Path) -> ShapeBook:
    """Load and validate a shape book from YAML."""

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Shape book not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in shape book: {path}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Shape book must contain a mapping: {path}")

    try:
        return ShapeBook.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid shape book schema: {path}\n{exc}") from exc


def build_record_type(definition: ShapeDefinition) -> type:
    """Create a dataclass with the declared fields, in declaration order."""

    return dataclasses.make_dataclass(
        definition.name,
        [(name, _KIND_ANNOTATIONS[kind]) for name, kind in definition.fields.items()],
    )


def build_processor(book: ShapeBook) -> NaturalLanguageProcessor:
    """Register every shape of ``book`` on a new processor and learn."""

    processor = NaturalLanguageProcessor()
    for definition in book.shapes:
        options: dict[str, object] = {}
        if definition.timestamp_format is not None:
            options["timestamp_format"] = definition.timestamp_format
        if definition.timestamp_zone is not None:
            options["timestamp_zone"] = definition.timestamp_zone
        processor.register_shape(build_record_type(definition), definition.templates, **options)
    processor.learn()
    return processor
