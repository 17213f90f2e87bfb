"""Whitespace tokenizer for templates and utterances.

Rules:
- Runs of whitespace separate tokens.
- ``{ Name }`` is a placeholder token holding the trimmed inner text; it may
  span interior whitespace and ends at the first ``}``.
- Everything else is a literal token holding the whitespace-delimited run
  verbatim, braces included: ``C{x`` and ``a{b}c`` are single literals. A
  placeholder is only recognised where a token starts, so ``{Quantity},``
  yields a placeholder followed by the literal ``,``. There is no escaping.
"""

from __future__ import annotations

import re

from core.templates.models import Token
from core.utils.errors import EmptyInputError

_TOKEN_RE = re.compile(r"\{(?P<placeholder>[^{}]*)\}|(?P<literal>\S+)")


def tokenize(text: str) -> list[Token]:
    """Split ``text`` into ordered literal and placeholder tokens."""

    tokens = [
        Token(is_placeholder=True, text=match.group("placeholder").strip())
        if match.group("literal") is None
        else Token(is_placeholder=False, text=match.group("literal"))
        for match in _TOKEN_RE.finditer(text)
    ]
    if not tokens:
        raise EmptyInputError("nothing to tokenize")
    return tokens
