"""Data models for template tokens and compiled expected sequences."""

from __future__ import annotations

from dataclasses import dataclass

from core.shapes.models import FieldSpec


@dataclass(frozen=True)
class Token:
    """One whitespace-delimited unit of a template or an utterance."""

    is_placeholder: bool
    text: str


@dataclass(frozen=True)
class ExpectedItem:
    """A literal anchor or a field placeholder in a compiled template."""

    is_anchor: bool
    literal_text: str
    field: FieldSpec | None = None


@dataclass(frozen=True)
class Template:
    """A raw template string together with its expected sequence."""

    raw_text: str
    expected: tuple[ExpectedItem, ...]

    @property
    def anchors(self) -> frozenset[str]:
        """Literal texts this template uses to align against an utterance."""

        return frozenset(item.literal_text for item in self.expected if item.is_anchor)
