"""Tests for the safe formula evaluator (cardgraph.expression)."""

import pytest

from cardgraph.expression import Expression, ExpressionError, evaluate, tokenize


class TestTokenize:
    """Tests for tokenize()."""

    def test_kinds(self):
        tokens = tokenize("totalMeetings * 0.5 + 2")
        assert [t.kind for t in tokens] == ["ident", "op", "number", "op", "number"]

    def test_scientific_notation(self):
        tokens = tokenize("1.5e3 + .25")
        assert [t.value for t in tokens] == ["1.5e3", "+", ".25"]

    @pytest.mark.parametrize("text", ["a ** 2", "x; y", "a.b", "x[0]", "'s'", "a % 2"])
    def test_rejects_foreign_syntax(self, text):
        with pytest.raises(ExpressionError):
            Expression(text)


class TestEvaluate:
    """Arithmetic semantics."""

    def test_precedence(self):
        assert evaluate("2 + 3 * 4", {}) == 14.0
        assert evaluate("(2 + 3) * 4", {}) == 20.0

    def test_left_associative(self):
        assert evaluate("10 - 4 - 3", {}) == 3.0
        assert evaluate("24 / 4 / 2", {}) == 3.0

    def test_unary(self):
        assert evaluate("-3 + 5", {}) == 2.0
        assert evaluate("-(2 * 3)", {}) == -6.0
        assert evaluate("+4", {}) == 4.0

    def test_variables(self):
        expr = Expression("totalMeetings * 0.3 + totalMemos * 0.3 + totalGifts * 0.4")
        assert expr.variables == ["totalMeetings", "totalMemos", "totalGifts"]
        value = expr.evaluate({"totalMeetings": 10, "totalMemos": 5, "totalGifts": 5})
        assert value == pytest.approx(6.5)

    def test_repeated_variable_listed_once(self):
        assert Expression("a * a + a").variables == ["a"]

    def test_unknown_identifier(self):
        with pytest.raises(ExpressionError, match="Unknown identifier"):
            evaluate("a + b", {"a": 1})

    def test_division_by_zero(self):
        with pytest.raises(ExpressionError, match="Division by zero"):
            evaluate("a / b", {"a": 1, "b": 0})

    def test_function_call_rejected(self):
        with pytest.raises(ExpressionError, match="Function calls"):
            Expression("log(totalMeetings)")

    def test_dunder_is_just_a_name(self):
        with pytest.raises(ExpressionError, match="Unknown identifier"):
            evaluate("__import__", {})

    @pytest.mark.parametrize("text", ["", "   ", "1 +", "(1 + 2", "1 2", ")"])
    def test_malformed(self, text):
        with pytest.raises(ExpressionError):
            Expression(text)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            Expression("1 +")


class TestLimits:
    """Oversized formulas fail with ExpressionError, not RecursionError."""

    def test_nesting_at_limit(self):
        text = "(" * 100 + "x" + ")" * 100
        assert evaluate(text, {"x": 2}) == 2.0

    def test_deep_parentheses(self):
        with pytest.raises(ExpressionError, match="nested"):
            Expression("(" * 150 + "x" + ")" * 150)

    def test_deep_unary_chain(self):
        with pytest.raises(ExpressionError, match="nested"):
            Expression("-" * 150 + "x")

    def test_very_long_formula(self):
        with pytest.raises(ExpressionError):
            Expression("(" * 3000 + "x" + ")" * 3000)

    def test_long_flat_chain(self):
        with pytest.raises(ExpressionError, match="tokens"):
            Expression(" + ".join(["x"] * 2000))

    def test_chain_under_limit_evaluates(self):
        assert evaluate(" + ".join(["x"] * 400), {"x": 1}) == 400.0
