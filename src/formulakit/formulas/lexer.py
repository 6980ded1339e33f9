"""Single-pass tokenizer for arithmetic formulas.

Tokens are ``lark.Token`` instances tagged once here, so the parser and
evaluator dispatch on ``token.type`` instead of re-inspecting the text:

- ``NUMBER``: digit run with an optional decimal point (``3``, ``2.5``, ``5.``)
- ``NAME``: variable name made of letters and underscores
- ``SQRT``: the reserved function name ``sqrt``
- ``OPERATOR``: one of ``+ - * / ^``
- ``LPAR`` / ``RPAR``: parentheses
"""

from __future__ import annotations

import math
import string

from lark import Token

from formulakit.formulas.errors import (
    InvalidCharacterError,
    InvalidNumberAdjacencyError,
    InvalidNumberLiteralError,
    InvalidVariableNameError,
)

NUMBER = "NUMBER"
NAME = "NAME"
SQRT = "SQRT"
OPERATOR = "OPERATOR"
LPAR = "LPAR"
RPAR = "RPAR"

TOKEN_TYPES = frozenset({NUMBER, NAME, SQRT, OPERATOR, LPAR, RPAR})
OPERAND_TYPES = frozenset({NUMBER, NAME})

SQRT_KEYWORD = "sqrt"
ARITHMETIC_OPERATORS = frozenset("+-*/^")

_DIGITS = frozenset(string.digits)
_LETTERS = frozenset(string.ascii_letters)
_NAME_CHARS = _LETTERS | _DIGITS | {"_"}
_PUNCTUATION = {"(": LPAR, ")": RPAR}


def _make(type_: str, value: str, pos: int) -> Token:
    return Token(type_, value, start_pos=pos, line=1, column=pos + 1, end_pos=pos + len(value))


def tokenize(formula: str) -> list[Token]:
    """Split *formula* into a list of tagged tokens.

    Args:
        formula: Formula text, e.g. ``"(a + b) * sqrt(c)"``.

    Returns:
        Tokens in source order.

    Raises:
        InvalidCharacterError: A character outside the formula alphabet.
        InvalidNumberAdjacencyError: A number directly followed by a letter.
        InvalidNumberLiteralError: A number with more than one decimal point,
            or one too large to represent.
        InvalidVariableNameError: A name containing a digit.
    """
    tokens: list[Token] = []
    i = 0
    n = len(formula)

    while i < n:
        ch = formula[i]

        if ch.isspace():
            i += 1
            continue

        if ch in _DIGITS:
            start = i
            while i < n and (formula[i] in _DIGITS or formula[i] == "."):
                i += 1
            text = formula[start:i]
            if i < n and formula[i] in _LETTERS:
                # Report the number together with the letter run glued to it
                end = i
                while end < n and formula[end] in _NAME_CHARS:
                    end += 1
                raise InvalidNumberAdjacencyError(formula[start:end], start)
            if text.count(".") > 1:
                raise InvalidNumberLiteralError(text, start)
            if math.isinf(float(text)):
                raise InvalidNumberLiteralError(text, start, "The value is too large.")
            tokens.append(_make(NUMBER, text, start))
            continue

        if ch in _LETTERS:
            start = i
            while i < n and formula[i] in _NAME_CHARS:
                i += 1
            name = formula[start:i]
            if any(c in _DIGITS for c in name):
                raise InvalidVariableNameError(name, start)
            tokens.append(_make(SQRT if name == SQRT_KEYWORD else NAME, name, start))
            continue

        if ch in ARITHMETIC_OPERATORS:
            tokens.append(_make(OPERATOR, ch, i))
            i += 1
            continue

        if ch in _PUNCTUATION:
            tokens.append(_make(_PUNCTUATION[ch], ch, i))
            i += 1
            continue

        raise InvalidCharacterError(ch, i)

    return tokens


def is_operand(token: Token) -> bool:
    """Return True for number literals and variable names."""
    return token.type in OPERAND_TYPES
