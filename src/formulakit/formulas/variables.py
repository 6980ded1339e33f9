"""Variable discovery without tokenizing."""

from __future__ import annotations

import string

from formulakit.formulas.lexer import SQRT_KEYWORD

_LETTERS = frozenset(string.ascii_letters)
_NAME_CHARS = _LETTERS | {"_"}


def extract_variables(formula: str) -> list[str]:
    """Return the distinct variable names of *formula*, sorted.

    A name starts at a letter and continues over letters and underscores.
    ``sqrt`` is reserved and never reported. Any other character is
    skipped, so this never raises for string input; well-formedness is
    the tokenizer's concern.

    The returned order is the binding order for positional values.
    """
    names: set[str] = set()
    i = 0
    n = len(formula)
    while i < n:
        if formula[i] in _LETTERS:
            start = i
            while i < n and formula[i] in _NAME_CHARS:
                i += 1
            name = formula[start:i]
            if name != SQRT_KEYWORD:
                names.add(name)
        else:
            i += 1
    return sorted(names)


def get_variables(formula: str) -> list[str]:
    """Alias of :func:`extract_variables`."""
    return extract_variables(formula)
