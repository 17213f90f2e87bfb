"""Record shape registration, template learning and per-shape fitting."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import tzinfo
from typing import Any

from pydantic import ValidationError

from core.matching.coercion import coerce
from core.matching.engine import MatchResult, match_templates
from core.shapes.introspect import (
    RecordFactory,
    build_catalog,
    build_record_factory,
    resolve_record_type,
)
from core.shapes.models import FieldSpec, ShapeOptions
from core.templates.compiler import compile_templates
from core.templates.models import Template
from core.utils.errors import NotLearnedError, RegistrationError
from core.utils.log_events import log_event

logger = logging.getLogger("shapefill.shapes")


class RecordShape:
    """A record type, its field catalog and the templates that fill it."""

    def __init__(self, record_type: type, templates: Sequence[str], options: ShapeOptions) -> None:
        self.record_type = record_type
        self.name = record_type.__name__
        self.fields: tuple[FieldSpec, ...] = tuple(build_catalog(record_type))
        self.factory: RecordFactory = build_record_factory(record_type, list(self.fields))
        self.raw_templates: tuple[str, ...] = tuple(templates)
        self.options = options
        self._templates: tuple[Template, ...] | None = None

    @property
    def timestamp_format(self) -> str:
        return self.options.timestamp_format

    @property
    def timestamp_zone(self) -> tzinfo:
        return self.options.timestamp_zone

    @property
    def learned(self) -> bool:
        return self._templates is not None

    @property
    def templates(self) -> tuple[Template, ...]:
        """Compiled templates; only available after ``learn``."""

        if self._templates is None:
            raise NotLearnedError(f"shape {self.name!r} must learn its templates before matching")
        return self._templates

    def learn(self) -> None:
        """Compile the raw templates against the field catalog."""

        self._templates = tuple(compile_templates(self.fields, self.raw_templates))

    def match(self, utterance: str) -> MatchResult:
        return match_templates(self.templates, utterance)

    def fit(self, utterance: str) -> Any:
        """Return a new record filled from ``utterance``; never raises on bad input."""

        templates = self.templates
        if not utterance:
            return self.factory.new()
        result = match_templates(templates, utterance)
        if not result.matched:
            log_event(logger, logging.DEBUG, "no_match", shape=self.name, scores=result.scores)
        return coerce(result.mapping, self)


def register_shape(descriptor: object, templates: Sequence[str], **options: Any) -> RecordShape:
    """Create a ``RecordShape`` for a dataclass or pydantic model.

    Templates use ``{FieldName}`` placeholders, e.g. ``"play {Name} by {Artist}"``.
    Supported options are ``timestamp_format`` (a ``strptime`` format without
    whitespace, default ``%m-%d-%Y_%I:%M%p``) and ``timestamp_zone`` (a
    ``tzinfo`` or IANA zone name, default the local zone).
    """

    if descriptor is None:
        raise RegistrationError("can't create shape from None")
    if isinstance(templates, str) or not templates:
        raise RegistrationError("templates must be a non-empty list of strings")

    record_type = resolve_record_type(descriptor)

    try:
        shape_options = ShapeOptions(**options)
    except ValidationError as exc:
        raise RegistrationError(f"invalid options for shape {record_type.__name__}: {exc}") from exc

    return RecordShape(record_type, templates, shape_options)
