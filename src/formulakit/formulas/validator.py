"""Syntax validation without evaluation."""

from __future__ import annotations

import logging

from lark import Token

from formulakit.formulas.errors import FormulaError
from formulakit.formulas.lexer import LPAR, OPERATOR, RPAR, SQRT, is_operand, tokenize
from formulakit.formulas.parser import to_postfix

logger = logging.getLogger(__name__)


def _structure_errors(tokens: list[Token]) -> list[str]:
    """Check token adjacency rules the shunting-yard pass does not enforce."""
    errors: list[str] = []
    last = len(tokens) - 1

    for i, token in enumerate(tokens):
        prev = tokens[i - 1] if i > 0 else None
        nxt = tokens[i + 1] if i < last else None

        if token.type == OPERATOR:
            if i == 0:
                errors.append(f"Operator {str(token)!r} at the start of the formula")
            if i == last:
                errors.append(f"Operator {str(token)!r} at the end of the formula")
            if prev is not None and prev.type == OPERATOR:
                errors.append(
                    f"Consecutive operators {str(prev)!r} and {str(token)!r} "
                    f"at position {token.start_pos}"
                )

        if token.type == LPAR and prev is not None and is_operand(prev):
            errors.append(
                f"'(' directly after {str(prev)!r} at position {token.start_pos}; "
                "implicit multiplication is not supported"
            )

        if token.type == SQRT:
            if nxt is None or nxt.type != LPAR:
                errors.append(f"sqrt at position {token.start_pos} must be followed by '('")
            elif i + 2 <= last and tokens[i + 2].type == RPAR:
                errors.append(f"sqrt at position {token.start_pos} has an empty argument")

        if is_operand(token) and prev is not None and is_operand(prev):
            errors.append(
                f"Operands {str(prev)!r} and {str(token)!r} are not separated by an operator"
            )

    return errors


def validation_errors(formula: str) -> list[str]:
    """Return the reasons *formula* is not well-formed (empty if it is).

    Checks tokenizing, operator placement, ``sqrt`` call syntax, operand
    adjacency and parenthesis balance. Does not check that variables can
    be bound.
    """
    if not isinstance(formula, str) or not formula.strip():
        return ["Formula is empty"]

    try:
        tokens = tokenize(formula)
    except FormulaError as exc:
        return [str(exc)]

    if not tokens:
        return ["Formula has no tokens"]

    errors = _structure_errors(tokens)

    try:
        to_postfix(tokens)
    except FormulaError as exc:
        errors.append(str(exc))

    return errors


def validate_formula(formula: str) -> bool:
    """Return True if *formula* is well-formed. Never raises."""
    try:
        errors = validation_errors(formula)
    except Exception:
        logger.debug("validation crashed for %r", formula, exc_info=True)
        return False
    if errors:
        logger.debug("formula %r rejected: %s", formula, errors[0])
        return False
    return True
