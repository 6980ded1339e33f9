"""Arithmetic formula tokenizing, parsing, evaluation and validation.

Public API::

    from formulakit.formulas import evaluate, get_variables, validate_formula
"""

from formulakit.formulas.errors import (
    ArithmeticDomainError,
    DivisionByZeroError,
    FormulaError,
    FormulaEvaluationError,
    FormulaParseError,
    FormulaRuntimeError,
    FormulaTokenError,
    InsufficientOperandsError,
    InvalidCharacterError,
    InvalidExpressionShapeError,
    InvalidNumberAdjacencyError,
    InvalidNumberLiteralError,
    InvalidVariableNameError,
    InvalidVariableValueError,
    MismatchedParenthesesError,
    NegativeSqrtOperandError,
    NonFiniteResultError,
    UnknownTokenError,
    VariableCountMismatchError,
    VariableNotProvidedError,
)
from formulakit.formulas.evaluator import (
    EvaluationResult,
    evaluate,
    evaluate_ast,
    evaluate_formula,
    evaluate_named,
    evaluate_postfix,
)
from formulakit.formulas.lexer import tokenize
from formulakit.formulas.parser import (
    ast_to_dict,
    ast_variables,
    build_ast,
    format_ast,
    iter_postorder,
    pretty_ast,
    to_ast,
    to_postfix,
)
from formulakit.formulas.validator import validate_formula, validation_errors
from formulakit.formulas.variables import extract_variables, get_variables

__all__ = [
    "ArithmeticDomainError",
    "DivisionByZeroError",
    "EvaluationResult",
    "FormulaError",
    "FormulaEvaluationError",
    "FormulaParseError",
    "FormulaRuntimeError",
    "FormulaTokenError",
    "InsufficientOperandsError",
    "InvalidCharacterError",
    "InvalidExpressionShapeError",
    "InvalidNumberAdjacencyError",
    "InvalidNumberLiteralError",
    "InvalidVariableNameError",
    "InvalidVariableValueError",
    "MismatchedParenthesesError",
    "NegativeSqrtOperandError",
    "NonFiniteResultError",
    "UnknownTokenError",
    "VariableCountMismatchError",
    "VariableNotProvidedError",
    "ast_to_dict",
    "ast_variables",
    "build_ast",
    "evaluate",
    "evaluate_ast",
    "evaluate_formula",
    "evaluate_named",
    "evaluate_postfix",
    "extract_variables",
    "format_ast",
    "iter_postorder",
    "get_variables",
    "pretty_ast",
    "to_ast",
    "to_postfix",
    "tokenize",
    "validate_formula",
    "validation_errors",
]
