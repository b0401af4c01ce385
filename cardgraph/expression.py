"""Safe arithmetic over feature values.

Feature operations proposed by the scorer come with formulas such as

    "totalMeetings * 0.3 + totalMemos * 0.3 + totalGifts * 0.4"

This module evaluates them without executing code: a regex tokenizer and a
small recursive-descent parser over the grammar

    expr    := term (("+" | "-") term)*
    term    := factor (("*" | "/") factor)*
    factor  := ("+" | "-") factor | NUMBER | IDENT | "(" expr ")"

Identifiers are looked up in a variables mapping. There are no function
calls, attribute access, indexing or keywords; anything outside the
grammar is an ExpressionError.
Formulas are capped at MAX_TOKENS tokens and MAX_NESTING_DEPTH levels of
parentheses and unary signs, so hostile input fails with ExpressionError
instead of exhausting the stack.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>[-+*/()])"
    r")"
)


class ExpressionError(ValueError):
    """Raised for malformed formulas and failed evaluations."""


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    pos: int


def tokenize(text: str) -> list[Token]:
    """Split a formula into number, identifier and operator tokens.

    Raises:
        ExpressionError: On any character outside the grammar.
    """
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise ExpressionError(f"Unexpected character {text[pos]!r} at position {pos}")
        kind = match.lastgroup
        if kind is None:
            raise ExpressionError(f"Unexpected character {text[pos]!r} at position {pos}")
        tokens.append(Token(kind, match.group(kind), match.start(kind)))
        pos = match.end()
    return tokens


# AST nodes are plain tuples:
#   ("num", float) | ("var", name) | ("neg", node) | (op, left, right)


MAX_NESTING_DEPTH = 100
MAX_TOKENS = 1000


class _Parser:
    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.i = 0
        self.depth = 0

    def peek(self) -> Token | None:
        return self.tokens[self.i] if self.i < len(self.tokens) else None

    def take(self) -> Token:
        tok = self.peek()
        if tok is None:
            raise ExpressionError("Unexpected end of expression")
        self.i += 1
        return tok

    def parse(self):
        if not self.tokens:
            raise ExpressionError("Empty expression")
        if len(self.tokens) > MAX_TOKENS:
            raise ExpressionError(f"Expression longer than {MAX_TOKENS} tokens")
        node = self.expr()
        tok = self.peek()
        if tok is not None:
            raise ExpressionError(f"Unexpected token {tok.value!r} at position {tok.pos}")
        return node

    def expr(self):
        node = self.term()
        while (tok := self.peek()) is not None and tok.value in ("+", "-"):
            self.take()
            node = (tok.value, node, self.term())
        return node

    def term(self):
        node = self.factor()
        while (tok := self.peek()) is not None and tok.value in ("*", "/"):
            self.take()
            node = (tok.value, node, self.factor())
        return node

    def factor(self):
        tok = self.take()
        if tok.value in ("-", "+", "("):
            self.depth += 1
            if self.depth > MAX_NESTING_DEPTH:
                raise ExpressionError(f"Expression nested deeper than {MAX_NESTING_DEPTH} levels")
            try:
                return self._nested(tok)
            finally:
                self.depth -= 1
        if tok.kind == "number":
            return ("num", float(tok.value))
        if tok.kind == "ident":
            nxt = self.peek()
            if nxt is not None and nxt.value == "(":
                raise ExpressionError(f"Function calls are not allowed: {tok.value}(...)")
            return ("var", tok.value)
        raise ExpressionError(f"Unexpected token {tok.value!r} at position {tok.pos}")

    def _nested(self, tok: Token):
        if tok.value == "-":
            return ("neg", self.factor())
        if tok.value == "+":
            return self.factor()
        node = self.expr()
        close = self.take()
        if close.value != ")":
            raise ExpressionError(f"Expected ')' at position {close.pos}")
        return node


def _evaluate(node, variables: Mapping[str, float]) -> float:
    kind = node[0]
    if kind == "num":
        return node[1]
    if kind == "var":
        name = node[1]
        if name not in variables:
            raise ExpressionError(f"Unknown identifier: {name}")
        return float(variables[name])
    if kind == "neg":
        return -_evaluate(node[1], variables)

    left = _evaluate(node[1], variables)
    right = _evaluate(node[2], variables)
    if kind == "+":
        return left + right
    if kind == "-":
        return left - right
    if kind == "*":
        return left * right
    if right == 0:
        raise ExpressionError("Division by zero")
    return left / right


def _collect_variables(node, out: list[str]) -> None:
    kind = node[0]
    if kind == "var":
        if node[1] not in out:
            out.append(node[1])
    elif kind == "neg":
        _collect_variables(node[1], out)
    elif kind != "num":
        _collect_variables(node[1], out)
        _collect_variables(node[2], out)


class Expression:
    """A parsed formula that can be evaluated repeatedly.

    Example:
        expr = Expression("totalMeetings * 0.5 + (totalMemos - 1) / 2")
        expr.variables                      # ["totalMeetings", "totalMemos"]
        expr.evaluate({"totalMeetings": 4, "totalMemos": 3})  # 3.0
    """

    def __init__(self, text: str):
        self.text = text
        try:
            self._tree = _Parser(tokenize(text)).parse()
            names: list[str] = []
            _collect_variables(self._tree, names)
        except RecursionError:
            raise ExpressionError("Expression nested too deeply") from None
        self.variables = names

    def evaluate(self, variables: Mapping[str, float]) -> float:
        """Evaluate with the given identifier values.

        Raises:
            ExpressionError: Unknown identifier or division by zero.
        """
        try:
            return _evaluate(self._tree, variables)
        except RecursionError:
            raise ExpressionError("Expression nested too deeply") from None

    def __repr__(self) -> str:
        return f"Expression({self.text!r})"


def parse(text: str) -> Expression:
    """Parse a formula, raising ExpressionError if it is malformed."""
    return Expression(text)


def evaluate(text: str, variables: Mapping[str, float]) -> float:
    """Parse and evaluate a formula in one step."""
    return Expression(text).evaluate(variables)
