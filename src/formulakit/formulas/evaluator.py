"""Stack evaluator for postfix sequences and tree walker for ASTs.

Both paths share ``_apply_binary`` / ``_apply_sqrt``, so a formula gives
the identical float whichever representation is evaluated.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence

from lark import Token, Tree
from pydantic import BaseModel

from formulakit.formulas.errors import (
    ArithmeticDomainError,
    DivisionByZeroError,
    FormulaError,
    FormulaEvaluationError,
    FormulaRuntimeError,
    InsufficientOperandsError,
    InvalidExpressionShapeError,
    InvalidVariableValueError,
    NegativeSqrtOperandError,
    NonFiniteResultError,
    UnknownTokenError,
    VariableCountMismatchError,
    VariableNotProvidedError,
)
from formulakit.formulas.lexer import (
    ARITHMETIC_OPERATORS,
    NAME,
    NUMBER,
    OPERATOR,
    SQRT,
    SQRT_KEYWORD,
    tokenize,
)
from formulakit.formulas.parser import (
    BINARY_OP,
    NUMBER_LITERAL,
    UNARY_FUNCTION,
    VARIABLE_REF,
    iter_postorder,
    to_postfix,
)
from formulakit.formulas.variables import extract_variables


class EvaluationResult(BaseModel):
    """Computed value together with the variable binding order."""

    result: float
    variables: list[str]


# ---------------------------------------------------------------------------
# Shared arithmetic
# ---------------------------------------------------------------------------


def _apply_sqrt(a: float) -> float:
    if a < 0:
        raise NegativeSqrtOperandError(a)
    return math.sqrt(a)


def _apply_binary(op: str, a: float, b: float) -> float:
    if op == "^":
        return _power(a, b)
    if op == "+":
        result = a + b
    elif op == "-":
        result = a - b
    elif op == "*":
        result = a * b
    elif op == "/":
        if b == 0:
            raise DivisionByZeroError()
        result = a / b
    else:
        raise FormulaRuntimeError(f"Unknown operator: {op!r}")
    # operands are finite, so only overflow gets here
    if math.isinf(result):
        raise NonFiniteResultError(op, a, b)
    return result


def _power(a: float, b: float) -> float:
    try:
        return math.pow(a, b)
    except ValueError:
        # Negative base with a fractional exponent, or zero to a negative power
        raise ArithmeticDomainError(a, b, "result is not a real number") from None
    except OverflowError:
        raise ArithmeticDomainError(a, b, "result is too large") from None


def _lookup(name: str, assignment: Mapping[str, float]) -> float:
    if name not in assignment:
        raise VariableNotProvidedError(name, available=sorted(assignment.keys()))
    value = assignment[name]
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidVariableValueError(name, value) from None
    if not math.isfinite(number):
        raise InvalidVariableValueError(name, value)
    return number


# ---------------------------------------------------------------------------
# Postfix
# ---------------------------------------------------------------------------


def evaluate_postfix(postfix: Iterable[Token], assignment: Mapping[str, float]) -> float:
    """Evaluate a postfix token sequence against a variable assignment.

    Args:
        postfix: Output of :func:`~formulakit.formulas.parser.to_postfix`.
        assignment: Mapping of variable names to values. Extra keys are ignored.

    Returns:
        The computed value.

    Raises:
        VariableNotProvidedError: A variable missing from *assignment*.
        InvalidVariableValueError: A bound value that is not a finite number.
        InsufficientOperandsError: An operator without enough operands.
        NegativeSqrtOperandError: ``sqrt`` of a negative value.
        DivisionByZeroError: ``/`` with a zero divisor.
        ArithmeticDomainError: ``^`` without a finite real result.
        NonFiniteResultError: ``+ - * /`` overflowing to infinity.
        InvalidExpressionShapeError: Not exactly one value left at the end.
        UnknownTokenError: A token that cannot appear in postfix.
    """
    stack: list[float] = []

    for token in postfix:
        kind = getattr(token, "type", None)

        if kind == NUMBER:
            stack.append(float(token))
        elif kind == NAME:
            stack.append(_lookup(str(token), assignment))
        elif kind == SQRT:
            if not stack:
                raise InsufficientOperandsError(SQRT_KEYWORD)
            stack.append(_apply_sqrt(stack.pop()))
        elif kind == OPERATOR and str(token) in ARITHMETIC_OPERATORS:
            if len(stack) < 2:
                raise InsufficientOperandsError(str(token))
            b = stack.pop()
            a = stack.pop()
            stack.append(_apply_binary(str(token), a, b))
        else:
            raise UnknownTokenError(token)

    if len(stack) != 1:
        raise InvalidExpressionShapeError(len(stack))
    return stack[0]


# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------


def evaluate_ast(tree: Tree, assignment: Mapping[str, float]) -> float:
    """Evaluate an expression tree from :func:`~formulakit.formulas.parser.to_ast`.

    Nodes are visited in postfix order, so failures surface in the same
    order as :func:`evaluate_postfix`, and deep trees do not recurse.
    Raises the same errors as :func:`evaluate_postfix`.
    """
    values: dict[int, float] = {}

    for node in iter_postorder(tree):
        rule = node.data
        if rule == NUMBER_LITERAL:
            value = float(node.children[0])
        elif rule == VARIABLE_REF:
            value = _lookup(node.children[0], assignment)
        elif rule == UNARY_FUNCTION:
            value = _apply_sqrt(values.pop(id(node.children[1])))
        elif rule == BINARY_OP:
            op, left, right = node.children
            value = _apply_binary(op, values.pop(id(left)), values.pop(id(right)))
        else:
            raise FormulaRuntimeError(f"Unknown node type: {rule}")
        values[id(node)] = value

    return values[id(tree)]


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def _compute(formula: str, assignment: Mapping[str, float]) -> float:
    return evaluate_postfix(to_postfix(tokenize(formula)), assignment)


def evaluate(formula: str, values: Sequence[float]) -> EvaluationResult:
    """Evaluate *formula* binding *values* positionally.

    Values are matched to the formula's variables in sorted name order,
    e.g. for ``"b * a"`` the first value binds ``a``.

    Raises:
        FormulaEvaluationError: Wraps any failure, including a
            :class:`VariableCountMismatchError` when ``len(values)``
            differs from the number of variables.
    """
    try:
        variables = extract_variables(formula)
        if len(variables) != len(values):
            raise VariableCountMismatchError(variables, len(values))
        assignment = dict(zip(variables, values))
        result = _compute(formula, assignment)
    except FormulaError as exc:
        raise FormulaEvaluationError(exc) from exc
    return EvaluationResult(result=result, variables=variables)


def evaluate_named(formula: str, assignment: Mapping[str, float]) -> float:
    """Evaluate *formula* with values looked up by variable name.

    Every variable used by the formula must be present; extra keys are
    tolerated.

    Raises:
        FormulaEvaluationError: Wraps any failure.
    """
    try:
        return _compute(formula, assignment)
    except FormulaError as exc:
        raise FormulaEvaluationError(exc) from exc


def evaluate_formula(formula: str, values: Sequence[float]) -> float:
    """Convenience: :func:`evaluate` returning only the number."""
    return evaluate(formula, values).result
