"""Template compiler producing expected sequences of anchors and placeholders."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from core.shapes.models import FieldSpec
from core.templates.models import ExpectedItem, Template
from core.templates.tokenizer import tokenize
from core.utils.errors import EmptyInputError, MistypedFieldError, NoKeywordError


def compile_templates(fields: Sequence[FieldSpec], templates: Sequence[str]) -> list[Template]:
    """Compile every template against the shape's field catalog.

    The first failing template aborts compilation.
    """

    fields_by_name = {spec.name: spec for spec in fields}
    return [
        compile_template(template_index, raw_text, fields_by_name)
        for template_index, raw_text in enumerate(templates)
    ]


def compile_template(
    template_index: int, raw_text: str, fields_by_name: Mapping[str, FieldSpec]
) -> Template:
    """Compile one template into its expected sequence."""

    try:
        tokens = tokenize(raw_text)
    except EmptyInputError as exc:
        raise EmptyInputError(
            f"template#{template_index}: template can't be empty",
            template_index=template_index,
        ) from exc

    expected: list[ExpectedItem] = []
    has_placeholder = False
    for token in tokens:
        if not token.is_placeholder:
            expected.append(ExpectedItem(is_anchor=True, literal_text=token.text))
            continue
        spec = fields_by_name.get(token.text)
        if spec is None:
            raise MistypedFieldError(template_index=template_index, placeholder=token.text)
        has_placeholder = True
        expected.append(ExpectedItem(is_anchor=False, literal_text=token.text, field=spec))

    if not has_placeholder:
        raise NoKeywordError(template_index=template_index)

    return Template(raw_text=raw_text, expected=tuple(expected))
