"""Tokenizer, variable extraction, postfix conversion and AST construction."""

from __future__ import annotations

import pytest
from lark import Token, Tree

from formulakit.formulas import (
    InsufficientOperandsError,
    InvalidCharacterError,
    InvalidExpressionShapeError,
    InvalidNumberAdjacencyError,
    InvalidNumberLiteralError,
    InvalidVariableNameError,
    MismatchedParenthesesError,
    UnknownTokenError,
    ast_to_dict,
    ast_variables,
    build_ast,
    extract_variables,
    format_ast,
    iter_postorder,
    pretty_ast,
    get_variables,
    to_ast,
    to_postfix,
    tokenize,
)


# ────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────


def _types(formula: str) -> list[str]:
    return [t.type for t in tokenize(formula)]


def _rpn(formula: str) -> str:
    return " ".join(str(t) for t in to_postfix(tokenize(formula)))


def _num(v: float) -> Tree:
    return Tree("number_literal", [v])


def _var(name: str) -> Tree:
    return Tree("variable_ref", [name])


def _bin(op: str, left: Tree, right: Tree) -> Tree:
    return Tree("binary_op", [op, left, right])


# ────────────────────────────────────────────────────────────────
# Tokenizer
# ────────────────────────────────────────────────────────────────


class TestTokenize:
    def test_simple_expression(self) -> None:
        toks = tokenize("3.5 + x_y")
        assert [str(t) for t in toks] == ["3.5", "+", "x_y"]
        assert [t.type for t in toks] == ["NUMBER", "OPERATOR", "NAME"]
        assert [t.start_pos for t in toks] == [0, 4, 6]

    def test_tokens_are_lark_tokens(self) -> None:
        tok = tokenize("a")[0]
        assert isinstance(tok, Token)
        assert tok.column == 1

    def test_all_operators_and_parens(self) -> None:
        assert _types("(a+b-c*d/e^f)") == [
            "LPAR", "NAME", "OPERATOR", "NAME", "OPERATOR", "NAME", "OPERATOR",
            "NAME", "OPERATOR", "NAME", "OPERATOR", "NAME", "RPAR",
        ]

    def test_sqrt_keyword(self) -> None:
        assert _types("sqrt(x)") == ["SQRT", "LPAR", "NAME", "RPAR"]

    def test_sqrt_prefix_is_plain_name(self) -> None:
        assert _types("sqrtx + sqrt_y") == ["NAME", "OPERATOR", "NAME"]

    def test_whitespace_skipped(self) -> None:
        assert [str(t) for t in tokenize("\ta\n+  b ")] == ["a", "+", "b"]

    def test_empty_formula(self) -> None:
        assert tokenize("") == []
        assert tokenize("   ") == []

    def test_trailing_decimal_point(self) -> None:
        assert [str(t) for t in tokenize("5. + 1")] == ["5.", "+", "1"]

    def test_number_followed_by_letter(self) -> None:
        with pytest.raises(InvalidNumberAdjacencyError) as exc_info:
            tokenize("2 * 5a")
        assert exc_info.value.text == "5a"
        assert exc_info.value.position == 4

    def test_number_letter_in_denominator(self) -> None:
        with pytest.raises(InvalidNumberAdjacencyError):
            tokenize("(Temperature_fahrenheit - 32) * 5/9b")

    def test_multiple_decimal_points_rejected(self) -> None:
        with pytest.raises(InvalidNumberLiteralError, match="1.2.3"):
            tokenize("1.2.3 + a")

    def test_literal_too_large_rejected(self) -> None:
        with pytest.raises(InvalidNumberLiteralError, match="too large") as exc_info:
            tokenize("a + " + "1" * 400)
        assert exc_info.value.position == 4

    def test_digit_inside_name(self) -> None:
        with pytest.raises(InvalidVariableNameError, match="b4b4"):
            tokenize("sqrt(a) + b4b4")

    def test_digit_at_end_of_name(self) -> None:
        with pytest.raises(InvalidVariableNameError):
            tokenize("x1 + 2")

    def test_invalid_character(self) -> None:
        with pytest.raises(InvalidCharacterError) as exc_info:
            tokenize("a @ b")
        assert exc_info.value.position == 2
        assert "position 2" in str(exc_info.value)

    def test_leading_underscore_is_invalid(self) -> None:
        with pytest.raises(InvalidCharacterError):
            tokenize("_a + 1")

    def test_non_ascii_letter_is_invalid(self) -> None:
        with pytest.raises(InvalidCharacterError):
            tokenize("π * r")


# ────────────────────────────────────────────────────────────────
# Variable extraction
# ────────────────────────────────────────────────────────────────


class TestExtractVariables:
    def test_sorted_and_deduplicated(self) -> None:
        assert extract_variables("b + a * b") == ["a", "b"]

    def test_excludes_sqrt(self) -> None:
        assert extract_variables("sqrt(delta) + alpha") == ["alpha", "delta"]

    def test_names_starting_with_sqrt_are_variables(self) -> None:
        assert extract_variables("sqrt(x) + sqrt_y") == ["sqrt_y", "x"]

    def test_underscores(self) -> None:
        assert extract_variables("(Temperature_fahrenheit - 32) * 5/9") == [
            "Temperature_fahrenheit"
        ]

    def test_case_sensitive_codepoint_order(self) -> None:
        assert extract_variables("b + B + a + A") == ["A", "B", "a", "b"]

    def test_no_variables(self) -> None:
        assert extract_variables("1 + 2") == []
        assert extract_variables("") == []

    def test_never_raises_on_bad_input(self) -> None:
        assert extract_variables("5a @ b") == ["a", "b"]

    def test_stable(self) -> None:
        f = "gamma * beta + alpha"
        assert extract_variables(f) == extract_variables(f) == ["alpha", "beta", "gamma"]

    def test_get_variables_alias(self) -> None:
        assert get_variables("y + x") == extract_variables("y + x")

    @pytest.mark.parametrize(
        "formula",
        ["a + b", "alpha * beta_gamma + sqrt(delta)", "sqrt(sqrt(a + b))", "x * y + z * x"],
    )
    def test_matches_tokenizer_names(self, formula: str) -> None:
        names = {str(t) for t in tokenize(formula) if t.type == "NAME"}
        assert extract_variables(formula) == sorted(names)


# ────────────────────────────────────────────────────────────────
# Postfix conversion
# ────────────────────────────────────────────────────────────────


class TestToPostfix:
    def test_precedence(self) -> None:
        assert _rpn("a + b * c") == "a b c * +"

    def test_parentheses(self) -> None:
        assert _rpn("(a + b) * c") == "a b + c *"

    def test_left_associative_subtraction(self) -> None:
        assert _rpn("a - b - c") == "a b - c -"

    def test_power_is_left_associative(self) -> None:
        assert _rpn("2 ^ 3 ^ 2") == "2 3 ^ 2 ^"

    def test_power_binds_tighter_than_multiplication(self) -> None:
        assert _rpn("a * b ^ c") == "a b c ^ *"

    def test_sqrt_before_binary_operator(self) -> None:
        assert _rpn("sqrt(a) + b") == "a sqrt b +"

    def test_sqrt_as_right_operand(self) -> None:
        assert _rpn("a * sqrt(b)") == "a b sqrt *"

    def test_nested_sqrt(self) -> None:
        assert _rpn("sqrt(sqrt(a + b))") == "a b + sqrt sqrt"

    def test_input_not_mutated(self) -> None:
        toks = tokenize("(a + b) * c")
        before = list(toks)
        to_postfix(toks)
        assert toks == before

    def test_unclosed_paren(self) -> None:
        with pytest.raises(MismatchedParenthesesError):
            to_postfix(tokenize("(a + b"))

    def test_unopened_paren(self) -> None:
        with pytest.raises(MismatchedParenthesesError, match="Mismatched parentheses"):
            to_postfix(tokenize("a + b)"))

    def test_unknown_token_type(self) -> None:
        with pytest.raises(UnknownTokenError):
            to_postfix([Token("NAME", "a"), Token("COMMA", ","), Token("NAME", "b")])

    def test_untyped_token(self) -> None:
        with pytest.raises(UnknownTokenError):
            to_postfix(["a"])

    def test_operator_outside_alphabet(self) -> None:
        with pytest.raises(UnknownTokenError):
            to_postfix([Token("OPERATOR", "%")])


# ────────────────────────────────────────────────────────────────
# AST construction
# ────────────────────────────────────────────────────────────────


class TestToAst:
    def test_binary_tree_shape(self) -> None:
        tree = to_ast("a + b * c")
        assert tree == _bin("+", _var("a"), _bin("*", _var("b"), _var("c")))

    def test_number_literal_is_float(self) -> None:
        tree = to_ast("2")
        assert tree == _num(2.0)
        assert isinstance(tree.children[0], float)

    def test_power_left_associative(self) -> None:
        tree = to_ast("2 ^ 3 ^ 2")
        assert tree == _bin("^", _bin("^", _num(2.0), _num(3.0)), _num(2.0))

    def test_sqrt_node(self) -> None:
        tree = to_ast("sqrt(x) - 1")
        assert tree == _bin("-", Tree("unary_function", ["sqrt", _var("x")]), _num(1.0))

    def test_build_ast_from_tokens(self) -> None:
        assert build_ast(tokenize("(a + b) * c")) == to_ast("(a + b) * c")

    def test_insufficient_operands(self) -> None:
        with pytest.raises(InsufficientOperandsError):
            to_ast("a +")

    def test_bare_sqrt(self) -> None:
        with pytest.raises(InsufficientOperandsError, match="sqrt"):
            to_ast("sqrt")

    def test_juxtaposed_operands(self) -> None:
        with pytest.raises(InvalidExpressionShapeError):
            to_ast("a b")

    def test_empty(self) -> None:
        with pytest.raises(InvalidExpressionShapeError):
            to_ast("")

    def test_mismatched(self) -> None:
        with pytest.raises(MismatchedParenthesesError):
            to_ast("((a + b)")

    def test_tokenizer_errors_propagate(self) -> None:
        with pytest.raises(InvalidVariableNameError):
            to_ast("a2 + b")

    def test_ast_variables(self) -> None:
        assert ast_variables(to_ast("b + a * b + sqrt(c)")) == ["a", "b", "c"]

    def test_ast_variables_match_extractor(self) -> None:
        f = "alpha * beta_gamma + sqrt(delta)"
        assert ast_variables(to_ast(f)) == extract_variables(f)

    def test_format_ast(self) -> None:
        assert format_ast(to_ast("a + b * c")) == "(a + (b * c))"
        assert format_ast(to_ast("sqrt(a) ^ 2")) == "(sqrt(a) ^ 2)"
        assert format_ast(to_ast("2.5 * x")) == "(2.5 * x)"

    def test_ast_to_dict(self) -> None:
        assert ast_to_dict(to_ast("sqrt(x) * 2")) == {
            "type": "binary_op",
            "operator": "*",
            "left": {
                "type": "unary_function",
                "name": "sqrt",
                "operand": {"type": "variable_ref", "name": "x"},
            },
            "right": {"type": "number_literal", "value": 2.0},
        }

    def test_pretty_ast(self) -> None:
        assert pretty_ast(to_ast("sqrt(x) * 2")).splitlines() == [
            "binary_op\t*",
            "  unary_function\tsqrt",
            "    variable_ref\tx",
            "  number_literal\t2",
        ]

    def test_iter_postorder_follows_postfix(self) -> None:
        formula = "(a + b) * sqrt(c) - d / 2"
        labels = []
        for node in iter_postorder(to_ast(formula)):
            if node.data == "binary_op":
                labels.append(node.children[0])
            elif node.data == "unary_function":
                labels.append("sqrt")
            elif node.data == "number_literal":
                labels.append("2")
            else:
                labels.append(node.children[0])
        assert labels == [str(t) for t in to_postfix(tokenize(formula))]


class TestDeepTrees:
    TERMS = 3000

    @pytest.fixture
    def chain(self) -> Tree:
        return to_ast(" - ".join(["a"] * self.TERMS))

    def test_format_ast(self, chain: Tree) -> None:
        text = format_ast(chain)
        assert text.startswith("(" * (self.TERMS - 1) + "a - a)")
        assert text.count("a") == self.TERMS

    def test_ast_to_dict(self, chain: Tree) -> None:
        node = ast_to_dict(chain)
        depth = 0
        while node["type"] == "binary_op":
            assert node["right"] == {"type": "variable_ref", "name": "a"}
            node = node["left"]
            depth += 1
        assert depth == self.TERMS - 1

    def test_pretty_ast(self, chain: Tree) -> None:
        lines = pretty_ast(chain, indent=" ").splitlines()
        assert len(lines) == 2 * self.TERMS - 1
        assert lines[0] == "binary_op\t-"

    def test_ast_variables(self, chain: Tree) -> None:
        assert ast_variables(chain) == ["a"]
