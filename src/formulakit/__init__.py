"""formulakit -- parse, validate and evaluate arithmetic formulas with named variables."""

__version__ = "0.3.0"

from formulakit.formulas import (  # noqa: E402
    EvaluationResult,
    FormulaError,
    FormulaEvaluationError,
    evaluate,
    evaluate_formula,
    evaluate_named,
    extract_variables,
    get_variables,
    to_ast,
    to_postfix,
    tokenize,
    validate_formula,
)

__all__ = [
    "EvaluationResult",
    "FormulaError",
    "FormulaEvaluationError",
    "__version__",
    "evaluate",
    "evaluate_formula",
    "evaluate_named",
    "extract_variables",
    "get_variables",
    "to_ast",
    "to_postfix",
    "tokenize",
    "validate_formula",
]
