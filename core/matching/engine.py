"""Template scoring and slot extraction for one live utterance.

Every template is walked independently against the utterance tokens with a
single forward cursor. Tokens equal to one of the template's own anchors are
"limits": each limit found scores a point and closes the placeholder value
being accumulated. After the walk, templates whose anchor order is a prefix of
the limit order observed while walking template 0 get one bonus point. The
strictly highest score wins; ties go to the lowest template index.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from core.shapes.models import FieldSpec
from core.templates.models import Template, Token
from core.templates.tokenizer import tokenize
from core.utils.errors import EmptyInputError


@dataclass
class MatchResult:
    """Scores of every template and the extraction of the winner."""

    scores: list[int]
    winner: int | None
    extractions: list[list[tuple[FieldSpec, str]]] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.winner is not None

    @property
    def mapping(self) -> dict[FieldSpec, str]:
        """Winning field values; later captures of a field override earlier ones."""

        if self.winner is None:
            return {}
        return dict(self.extractions[self.winner])


@dataclass
class _TemplateWalk:
    score: int = 0
    anchor_order: list[str] = field(default_factory=list)
    extracted: list[tuple[FieldSpec, str]] = field(default_factory=list)


def match(templates: Sequence[Template], utterance: str) -> dict[FieldSpec, str]:
    """Return the winning template's field values, empty on no-match."""

    return match_templates(templates, utterance).mapping


def match_templates(templates: Sequence[Template], utterance: str) -> MatchResult:
    """Score every template against ``utterance`` and select the winner."""

    try:
        tokens = tokenize(utterance)
    except EmptyInputError:
        return MatchResult(scores=[0] * len(templates), winner=None)

    observed_order: list[str] = []
    walks = [
        _walk_template(template, tokens, observed_order if template_index == 0 else None)
        for template_index, template in enumerate(templates)
    ]

    scores = [walk.score for walk in walks]
    for template_index, walk in enumerate(walks):
        if _is_prefix(walk.anchor_order, observed_order):
            scores[template_index] += 1

    return MatchResult(
        scores=scores,
        winner=select_winner(scores),
        extractions=[walk.extracted for walk in walks],
    )


def select_winner(scores: Sequence[int]) -> int | None:
    """Index of the first strictly highest positive score, ``None`` if all are 0."""

    best_score, best_index = 0, None
    for template_index, score in enumerate(scores):
        if score > best_score:
            best_score, best_index = score, template_index
    return best_index


def _walk_template(
    template: Template, tokens: Sequence[Token], observed_order: list[str] | None
) -> _TemplateWalk:
    """Walk ``tokens`` once against ``template`` with a forward-only cursor.

    Reaching the end of the utterance flushes the pending value to the last
    placeholder read and clears it, so a later placeholder that scans the
    same tail captures that tail once (``C="bar"``, not ``"bar bar"``, for
    ``{A} x {B} y {C}`` against ``foo y bar``). The cursor stays put.
    """

    limits = template.anchors
    walk = _TemplateWalk()
    current: list[str] = []
    reading = False
    reading_field: FieldSpec | None = None
    last_token = 0

    for item in template.expected:
        if item.is_anchor:
            reading = False
            walk.anchor_order.append(item.literal_text)
        else:
            reading = True
            reading_field = item.field

        for position in range(last_token, len(tokens)):
            text = tokens[position].text
            if text in limits:
                if observed_order is not None:
                    observed_order.append(text)
                walk.score += 1
                if current:
                    _flush(walk, reading_field, current)
                    current = []
                    last_token = position
                else:
                    last_token = position + 1
                break
            if reading:
                current.append(text)
        else:
            # End of utterance: a trailing placeholder takes the remainder.
            if current:
                _flush(walk, reading_field, current)
                current = []

    return walk


def _flush(walk: _TemplateWalk, reading_field: FieldSpec | None, current: list[str]) -> None:
    if reading_field is not None:
        walk.extracted.append((reading_field, " ".join(current)))


def _is_prefix(order: Sequence[str], reference: Sequence[str]) -> bool:
    if len(order) > len(reference):
        return False
    return all(item == reference[index] for index, item in enumerate(order))
