"""Error types for formula tokenizing, parsing and evaluation."""

from __future__ import annotations


class FormulaError(Exception):
    """Base class for all formula-related errors."""


# ---------------------------------------------------------------------------
# Tokenizer errors
# ---------------------------------------------------------------------------


class FormulaTokenError(FormulaError):
    """Raised when the tokenizer cannot split a formula into tokens.

    Attributes:
        position: 0-based character position where the error was detected.
        text: The offending character or run of characters.
    """

    def __init__(self, message: str, text: str, position: int | None = None) -> None:
        self.text = text
        self.position = position
        full = message
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


class InvalidCharacterError(FormulaTokenError):
    def __init__(self, char: str, position: int | None = None) -> None:
        super().__init__(f"Invalid character in formula: {char!r}", char, position)


class InvalidNumberAdjacencyError(FormulaTokenError):
    """A number is immediately followed by a letter, e.g. ``5a``."""

    def __init__(self, text: str, position: int | None = None) -> None:
        super().__init__(
            f"Invalid token: {text!r}. Numbers cannot be directly followed by letters.",
            text,
            position,
        )


class InvalidNumberLiteralError(FormulaTokenError):
    """A number literal that is malformed (``1.2.3``) or too large for a float."""

    def __init__(
        self,
        text: str,
        position: int | None = None,
        reason: str = "A number may contain at most one decimal point.",
    ) -> None:
        super().__init__(f"Invalid number: {text!r}. {reason}", text, position)


class InvalidVariableNameError(FormulaTokenError):
    def __init__(self, name: str, position: int | None = None) -> None:
        super().__init__(
            f"Invalid variable name: {name!r}. "
            "Variable names can only contain letters and underscores.",
            name,
            position,
        )


# ---------------------------------------------------------------------------
# Parser errors
# ---------------------------------------------------------------------------


class FormulaParseError(FormulaError):
    """Raised when a token sequence is not a well-formed formula."""


class MismatchedParenthesesError(FormulaParseError):
    def __init__(self) -> None:
        super().__init__("Mismatched parentheses")


class UnknownTokenError(FormulaParseError):
    """A token whose type is not part of the formula language.

    Attributes:
        token: The rejected token.
    """

    def __init__(self, token: object) -> None:
        self.token = token
        kind = getattr(token, "type", type(token).__name__)
        super().__init__(f"Unknown token: {str(token)!r} ({kind})")


# ---------------------------------------------------------------------------
# Evaluation errors
# ---------------------------------------------------------------------------


class FormulaRuntimeError(FormulaError):
    """Raised while computing the value of a parsed formula."""


class VariableNotProvidedError(FormulaRuntimeError):
    """Reference to a variable that has no value in the assignment.

    Attributes:
        name: The unresolved variable.
        available: Names that were provided.
    """

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = available or []
        msg = f"Variable {name!r} not provided"
        if self.available:
            msg += f". Available: {self.available}"
        super().__init__(msg)


class InsufficientOperandsError(FormulaRuntimeError):
    """An operator or function applied with too few values on the stack.

    Attributes:
        operator: The operator or function name.
    """

    def __init__(self, operator: str) -> None:
        self.operator = operator
        if operator == "sqrt":
            msg = "Insufficient operands for sqrt function"
        else:
            msg = f"Insufficient operands for operator {operator!r}"
        super().__init__(msg)


class NegativeSqrtOperandError(FormulaRuntimeError):
    def __init__(self, operand: float) -> None:
        self.operand = operand
        super().__init__(f"Cannot take square root of negative number ({operand!r})")


class DivisionByZeroError(FormulaRuntimeError, ZeroDivisionError):
    def __init__(self) -> None:
        super().__init__("Division by zero")


class InvalidVariableValueError(FormulaRuntimeError):
    """A bound value that is not a finite number.

    Attributes:
        name: The variable.
        value: The value as supplied.
    """

    def __init__(self, name: str, value: object) -> None:
        self.name = name
        self.value = value
        super().__init__(f"Variable {name!r} must be a finite number, got {value!r}")


class NonFiniteResultError(FormulaRuntimeError):
    """An operation overflowed to infinity."""

    def __init__(self, operator: str, a: float, b: float) -> None:
        self.operator = operator
        super().__init__(f"Result of {a!r} {operator} {b!r} is not a finite number")


class ArithmeticDomainError(FormulaRuntimeError):
    """``^`` has no finite real result for its operands."""

    def __init__(self, base: float, exponent: float, reason: str) -> None:
        self.base = base
        self.exponent = exponent
        super().__init__(f"Cannot raise {base!r} to the power {exponent!r}: {reason}")


class InvalidExpressionShapeError(FormulaRuntimeError):
    """The postfix sequence did not reduce to exactly one value.

    Attributes:
        remaining: Number of values left on the stack.
    """

    def __init__(self, remaining: int) -> None:
        self.remaining = remaining
        super().__init__(f"Invalid expression ({remaining} values left after evaluation)")


# ---------------------------------------------------------------------------
# Binding / outward-facing errors
# ---------------------------------------------------------------------------


class VariableCountMismatchError(FormulaError):
    """Positional values do not line up with the formula's variables.

    Attributes:
        variables: The sorted variable names of the formula.
        got: Number of values supplied.
    """

    def __init__(self, variables: list[str], got: int) -> None:
        self.variables = variables
        self.got = got
        super().__init__(
            f"Expected {len(variables)} values for variables "
            f"[{', '.join(variables)}], but got {got}"
        )


class FormulaEvaluationError(FormulaError):
    """Single outward-facing failure raised by the ``evaluate`` entry points.

    The underlying error is chained as ``__cause__`` and kept on ``cause``.
    """

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Formula evaluation failed: {cause}")
