"""Record-shape introspection for dataclasses and pydantic models.

The catalog lists eligible fields in declaration order. Each registered shape
also gets a ``RecordFactory`` holding zero values and one setter per eligible
field, so coercion never has to inspect types again.
"""

from __future__ import annotations

import dataclasses
import typing
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Annotated, Any, get_args, get_origin

from pydantic import BaseModel

from core.shapes.models import FieldSpec, ValueKind
from core.utils.errors import RegistrationError

Setter = Callable[[dict[str, Any], Any], None]

ZERO_TIMESTAMP = datetime(1, 1, 1, tzinfo=timezone.utc)

_ZERO_VALUES: Mapping[ValueKind, Any] = MappingProxyType(
    {
        ValueKind.STRING: "",
        ValueKind.SIGNED_INT: 0,
        ValueKind.UNSIGNED_INT: 0,
        ValueKind.FLOAT: 0.0,
        ValueKind.TIMESTAMP: ZERO_TIMESTAMP,
        ValueKind.DURATION: timedelta(0),
    }
)

_SIMPLE_KINDS: Mapping[type, ValueKind] = MappingProxyType(
    {
        str: ValueKind.STRING,
        float: ValueKind.FLOAT,
        datetime: ValueKind.TIMESTAMP,
        timedelta: ValueKind.DURATION,
    }
)


@dataclass(frozen=True)
class _DeclaredField:
    index: int
    name: str
    annotation: Any
    metadata: tuple[Any, ...]
    has_default: bool


@dataclass(frozen=True)
class RecordFactory:
    """Builds fresh record instances from parsed field values."""

    record_type: type
    zero_values: Mapping[str, Any]
    setters: Mapping[int, Setter]

    def new(self, parsed: Mapping[int, Any] | None = None) -> Any:
        """Return a new instance, zero-valued except for ``parsed`` fields."""

        values = dict(self.zero_values)
        for index, value in (parsed or {}).items():
            self.setters[index](values, value)
        if issubclass(self.record_type, BaseModel):
            return self.record_type.model_construct(**values)
        return self.record_type(**values)


def resolve_record_type(descriptor: object) -> type:
    """Return the record class for a class or an example instance."""

    if descriptor is None:
        raise RegistrationError("can't create shape from None")
    record_type = descriptor if isinstance(descriptor, type) else type(descriptor)
    if dataclasses.is_dataclass(record_type) or issubclass(record_type, BaseModel):
        return record_type
    raise RegistrationError(f"can't create shape from non-record type {record_type.__name__}")


def build_catalog(record_type: type) -> list[FieldSpec]:
    """Return eligible fields of ``record_type`` in declaration order."""

    catalog: list[FieldSpec] = []
    for declared in _iter_declared_fields(record_type):
        if declared.name.startswith("_"):
            continue
        kind = value_kind_for(declared.annotation, declared.metadata)
        if kind is not None:
            catalog.append(FieldSpec(index=declared.index, name=declared.name, kind=kind))
    return catalog


def build_record_factory(record_type: type, catalog: list[FieldSpec]) -> RecordFactory:
    """Build zero values and per-field setters for ``record_type``."""

    eligible = {spec.index: spec for spec in catalog}
    zero_values: dict[str, Any] = {}
    for declared in _iter_declared_fields(record_type):
        if declared.has_default:
            continue
        spec = eligible.get(declared.index)
        kind = spec.kind if spec is not None else value_kind_for(
            declared.annotation, declared.metadata
        )
        if kind is not None:
            zero_values[declared.name] = _ZERO_VALUES[kind]
        else:
            zero_values[declared.name] = _zero_for_annotation(declared.annotation)

    setters = {spec.index: _make_setter(spec.name) for spec in catalog}
    return RecordFactory(
        record_type=record_type,
        zero_values=MappingProxyType(zero_values),
        setters=MappingProxyType(setters),
    )


def value_kind_for(annotation: Any, metadata: tuple[Any, ...] = ()) -> ValueKind | None:
    """Map a field annotation to its ``ValueKind``; ``None`` when ineligible."""

    if get_origin(annotation) is Annotated:
        base, *extras = get_args(annotation)
        return value_kind_for(base, (*metadata, *extras))
    if annotation is int:
        if any(getattr(item, "ge", None) == 0 for item in metadata):
            return ValueKind.UNSIGNED_INT
        return ValueKind.SIGNED_INT
    if isinstance(annotation, type):
        return _SIMPLE_KINDS.get(annotation)
    return None


def _iter_declared_fields(record_type: type) -> Iterator[_DeclaredField]:
    if issubclass(record_type, BaseModel):
        for index, (name, info) in enumerate(record_type.model_fields.items()):
            yield _DeclaredField(
                index=index,
                name=name,
                annotation=info.annotation,
                metadata=tuple(info.metadata),
                has_default=not info.is_required(),
            )
        return

    try:
        hints = typing.get_type_hints(record_type, include_extras=True)
    except NameError as exc:
        raise RegistrationError(
            f"can't resolve field annotations of {record_type.__name__}: {exc}"
        ) from exc
    for index, item in enumerate(dataclasses.fields(record_type)):
        if not item.init:
            continue
        yield _DeclaredField(
            index=index,
            name=item.name,
            annotation=hints.get(item.name, item.type),
            metadata=(),
            has_default=(
                item.default is not dataclasses.MISSING
                or item.default_factory is not dataclasses.MISSING
            ),
        )


def _zero_for_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation) or annotation
    if origin is Annotated:
        return _zero_for_annotation(get_args(annotation)[0])
    if origin is bool:
        return False
    if origin in (list, dict, set, tuple, frozenset):
        return origin()
    return None


def _make_setter(name: str) -> Setter:
    def setter(values: dict[str, Any], value: Any) -> None:
        values[name] = value

    return setter
