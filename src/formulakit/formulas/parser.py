"""Operator-precedence parser: infix tokens to postfix, postfix to AST.

Operator precedence (lowest to highest):
  1. Addition/subtraction: + -
  2. Multiplication/division: * /
  3. Exponentiation: ^ (left-associative, ``2^3^2`` is ``(2^3)^2``)
  4. Square root: sqrt (prefix, binds to the operand that follows)

The AST is built by walking the postfix sequence, so both representations
accept and reject exactly the same token streams.

AST nodes are ``lark.Tree`` instances:

- ``number_literal``: ``[value: float]``
- ``variable_ref``: ``[name: str]``
- ``binary_op``: ``[operator: str, left: Tree, right: Tree]``
- ``unary_function``: ``["sqrt", operand: Tree]``
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from lark import Token, Tree, Visitor

from formulakit.formulas.errors import (
    InsufficientOperandsError,
    InvalidExpressionShapeError,
    MismatchedParenthesesError,
    UnknownTokenError,
)
from formulakit.formulas.lexer import (
    ARITHMETIC_OPERATORS,
    LPAR,
    NAME,
    NUMBER,
    OPERATOR,
    RPAR,
    SQRT,
    SQRT_KEYWORD,
    tokenize,
)

PRECEDENCE: dict[str, int] = {
    "+": 1,
    "-": 1,
    "*": 2,
    "/": 2,
    "^": 3,
    SQRT_KEYWORD: 4,
}

NUMBER_LITERAL = "number_literal"
VARIABLE_REF = "variable_ref"
BINARY_OP = "binary_op"
UNARY_FUNCTION = "unary_function"


def _token_type(token: object) -> str | None:
    return getattr(token, "type", None)


def to_postfix(tokens: Iterable[Token]) -> list[Token]:
    """Convert infix tokens to Reverse Polish order (shunting-yard).

    Args:
        tokens: Output of :func:`~formulakit.formulas.lexer.tokenize`.

    Returns:
        A new list of the operand and operator tokens in postfix order.

    Raises:
        MismatchedParenthesesError: Unbalanced ``(`` / ``)``.
        UnknownTokenError: A token that is not part of the formula language.
    """
    output: list[Token] = []
    stack: list[Token] = []

    for token in tokens:
        kind = _token_type(token)

        if kind in (NUMBER, NAME):
            output.append(token)
        elif kind in (SQRT, LPAR):
            stack.append(token)
        elif kind == RPAR:
            while stack and stack[-1].type != LPAR:
                output.append(stack.pop())
            if not stack:
                raise MismatchedParenthesesError()
            stack.pop()
        elif kind == OPERATOR and str(token) in ARITHMETIC_OPERATORS:
            prec = PRECEDENCE[str(token)]
            while (
                stack
                and stack[-1].type != LPAR
                and PRECEDENCE[str(stack[-1])] >= prec
            ):
                output.append(stack.pop())
            stack.append(token)
        else:
            raise UnknownTokenError(token)

    while stack:
        top = stack.pop()
        if top.type in (LPAR, RPAR):
            raise MismatchedParenthesesError()
        output.append(top)

    return output


def build_ast(tokens: Iterable[Token]) -> Tree:
    """Build an expression tree from infix tokens.

    Raises:
        MismatchedParenthesesError, UnknownTokenError: As :func:`to_postfix`.
        InsufficientOperandsError: An operator without enough operands.
        InvalidExpressionShapeError: The tokens do not form one expression.
    """
    stack: list[Tree] = []

    for token in to_postfix(tokens):
        kind = token.type
        if kind == NUMBER:
            stack.append(Tree(NUMBER_LITERAL, [float(token)]))
        elif kind == NAME:
            stack.append(Tree(VARIABLE_REF, [str(token)]))
        elif kind == SQRT:
            if not stack:
                raise InsufficientOperandsError(SQRT_KEYWORD)
            stack.append(Tree(UNARY_FUNCTION, [SQRT_KEYWORD, stack.pop()]))
        else:
            if len(stack) < 2:
                raise InsufficientOperandsError(str(token))
            right = stack.pop()
            left = stack.pop()
            stack.append(Tree(BINARY_OP, [str(token), left, right]))

    if len(stack) != 1:
        raise InvalidExpressionShapeError(len(stack))
    return stack[0]


def to_ast(formula: str) -> Tree:
    """Tokenize and parse *formula* into an expression tree."""
    return build_ast(tokenize(formula))


class _VariableCollector(Visitor):
    """Visitor that collects variable names from an expression tree."""

    def __init__(self) -> None:
        self.names: set[str] = set()

    def variable_ref(self, tree: Tree) -> None:
        self.names.add(tree.children[0])


def ast_variables(tree: Tree) -> list[str]:
    """Return the sorted distinct variable names referenced by *tree*."""
    collector = _VariableCollector()
    collector.visit(tree)
    return sorted(collector.names)


def iter_postorder(tree: Tree) -> Iterator[Tree]:
    """Yield the nodes of *tree* children first, left to right.

    This is the order of the postfix sequence the tree was built from. The
    walk keeps its own stack, so arbitrarily deep trees are fine.
    """
    stack: list[tuple[Tree, bool]] = [(tree, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            yield node
            continue
        stack.append((node, True))
        for child in reversed(node.children):
            if isinstance(child, Tree):
                stack.append((child, False))


def _format_number(value: float) -> str:
    return repr(int(value)) if value.is_integer() else repr(value)


def ast_to_dict(tree: Tree) -> dict[str, Any]:
    """Convert *tree* to plain nested dicts (JSON-serialisable)."""
    done: dict[int, dict[str, Any]] = {}
    for node in iter_postorder(tree):
        rule = node.data
        if rule == NUMBER_LITERAL:
            out = {"type": rule, "value": node.children[0]}
        elif rule == VARIABLE_REF:
            out = {"type": rule, "name": node.children[0]}
        elif rule == UNARY_FUNCTION:
            out = {"type": rule, "name": node.children[0], "operand": done.pop(id(node.children[1]))}
        elif rule == BINARY_OP:
            op, left, right = node.children
            out = {
                "type": rule,
                "operator": op,
                "left": done.pop(id(left)),
                "right": done.pop(id(right)),
            }
        else:
            raise ValueError(f"Unknown node type: {rule}")
        done[id(node)] = out
    return done[id(tree)]


def format_ast(tree: Tree) -> str:
    """Render *tree* as fully parenthesised infix text.

    Examples:
        ``a + b * c`` -> ``(a + (b * c))``
        ``sqrt(a) ^ 2`` -> ``(sqrt(a) ^ 2)``
    """
    done: dict[int, str] = {}
    for node in iter_postorder(tree):
        rule = node.data
        if rule == NUMBER_LITERAL:
            text = _format_number(node.children[0])
        elif rule == VARIABLE_REF:
            text = node.children[0]
        elif rule == UNARY_FUNCTION:
            text = f"{node.children[0]}({done.pop(id(node.children[1]))})"
        elif rule == BINARY_OP:
            op, left, right = node.children
            text = f"({done.pop(id(left))} {op} {done.pop(id(right))})"
        else:
            raise ValueError(f"Unknown node type: {rule}")
        done[id(node)] = text
    return done[id(tree)]


def pretty_ast(tree: Tree, indent: str = "  ") -> str:
    """Render *tree* one node per line, children indented under their parent."""
    lines: list[str] = []
    stack: list[tuple[Tree, int]] = [(tree, 0)]
    while stack:
        node, depth = stack.pop()
        pad = indent * depth
        rule = node.data
        if rule == NUMBER_LITERAL:
            lines.append(f"{pad}{rule}\t{_format_number(node.children[0])}")
        elif rule == VARIABLE_REF:
            lines.append(f"{pad}{rule}\t{node.children[0]}")
        elif rule == UNARY_FUNCTION:
            lines.append(f"{pad}{rule}\t{node.children[0]}")
            stack.append((node.children[1], depth + 1))
        elif rule == BINARY_OP:
            op, left, right = node.children
            lines.append(f"{pad}{rule}\t{op}")
            stack.append((right, depth + 1))
            stack.append((left, depth + 1))
        else:
            raise ValueError(f"Unknown node type: {rule}")
    return "\n".join(lines)
