"""Cucumber tag expressions: parsing, validation and evaluation.

Grammar (lowest to highest precedence)::

    expr    := and_expr ("or" and_expr)*
    and_expr:= unary ("and" unary)*
    unary   := "not" unary | primary
    primary := TAG | "(" expr ")"

A ``TAG`` starts with ``@``. Whitespace and parentheses inside a tag must
be escaped with a backslash. Operators are lowercase, as the runner
expects them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

OPERATORS = frozenset({"and", "or", "not"})


class TagExpressionError(ValueError):
    """A tag expression does not follow the grammar."""

    def __init__(self, message: str, expression: str) -> None:
        super().__init__(f"{message} in tag expression {expression!r}")
        self.expression = expression


@dataclass(frozen=True)
class Tag:
    name: str

    def evaluate(self, tags: frozenset[str]) -> bool:
        return self.name in tags


@dataclass(frozen=True)
class Not:
    operand: Node

    def evaluate(self, tags: frozenset[str]) -> bool:
        return not self.operand.evaluate(tags)


@dataclass(frozen=True)
class And:
    left: Node
    right: Node

    def evaluate(self, tags: frozenset[str]) -> bool:
        return self.left.evaluate(tags) and self.right.evaluate(tags)


@dataclass(frozen=True)
class Or:
    left: Node
    right: Node

    def evaluate(self, tags: frozenset[str]) -> bool:
        return self.left.evaluate(tags) or self.right.evaluate(tags)


Node = Union[Tag, Not, And, Or]


def tokenize(expression: str) -> list[str]:
    """Split an expression into parentheses, operators and tags."""
    tokens: list[str] = []
    current: list[str] = []
    escaped = False

    def flush() -> None:
        if current:
            tokens.append("".join(current))
            current.clear()

    for ch in expression:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch in "()":
            flush()
            tokens.append(ch)
        elif ch.isspace():
            flush()
        else:
            current.append(ch)

    if escaped:
        raise TagExpressionError("dangling escape character", expression)
    flush()
    return tokens


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tokens = tokenize(expression)
        self.pos = 0

    def parse(self) -> Node:
        if not self.tokens:
            raise TagExpressionError("empty expression", self.expression)
        node = self._parse_or()
        if self.pos < len(self.tokens):
            raise TagExpressionError(
                f"unexpected {self.tokens[self.pos]!r}", self.expression,
            )
        return node

    def _peek(self) -> str | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _advance(self) -> str:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _parse_or(self) -> Node:
        node = self._parse_and()
        while self._peek() == "or":
            self._advance()
            node = Or(node, self._parse_and())
        return node

    def _parse_and(self) -> Node:
        node = self._parse_unary()
        while self._peek() == "and":
            self._advance()
            node = And(node, self._parse_unary())
        return node

    def _parse_unary(self) -> Node:
        if self._peek() == "not":
            self._advance()
            return Not(self._parse_unary())
        return self._parse_primary()

    def _parse_primary(self) -> Node:
        token = self._peek()
        if token is None:
            raise TagExpressionError("unexpected end", self.expression)
        if token == "(":
            self._advance()
            node = self._parse_or()
            if self._peek() != ")":
                raise TagExpressionError("missing ')'", self.expression)
            self._advance()
            return node
        if token == ")" or token in OPERATORS:
            raise TagExpressionError(f"unexpected {token!r}", self.expression)
        if not token.startswith("@") or len(token) == 1:
            raise TagExpressionError(
                f"tag {token!r} must start with '@'", self.expression,
            )
        self._advance()
        return Tag(token)


def parse(expression: str) -> Node:
    """Parse a tag expression.

    Raises:
        TagExpressionError: If the expression is not valid.
    """
    return _Parser(expression).parse()


def is_valid(expression: str) -> bool:
    """Check whether an expression parses."""
    try:
        parse(expression)
    except TagExpressionError:
        return False
    return True


def normalize_tags(tags: Iterable[str]) -> frozenset[str]:
    """Normalize scenario tags so each carries a leading ``@``."""
    return frozenset(t if t.startswith("@") else f"@{t}" for t in tags if t)


def matches(expression: str | Node, tags: Iterable[str]) -> bool:
    """Evaluate an expression against a scenario's tag set."""
    node = parse(expression) if isinstance(expression, str) else expression
    return node.evaluate(normalize_tags(tags))


def _escape(name: str) -> str:
    """Escape the characters the tokenizer would otherwise split on."""
    return "".join(
        f"\\{ch}" if ch == "\\" or ch in "()" or ch.isspace() else ch
        for ch in name
    )


def render(node: Node) -> str:
    """Render a parsed expression back to text, fully parenthesized."""
    if isinstance(node, Tag):
        return _escape(node.name)
    if isinstance(node, Not):
        return f"(not {render(node.operand)})"
    if isinstance(node, And):
        return f"({render(node.left)} and {render(node.right)})"
    return f"({render(node.left)} or {render(node.right)})"


def _is_enclosed(text: str) -> bool:
    """True if the outermost parentheses wrap the whole expression."""
    return (
        text.startswith("(")
        and text.endswith(")")
        and not text.endswith("\\)")
        and is_valid(text[1:-1])
    )


def conjoin(*expressions: str | None) -> str:
    """Combine expressions with ``and``, keeping each operand's meaning.

    Operands are joined verbatim; an operand whose top-level operator is
    ``or`` is wrapped in parentheses so that ``and`` cannot bind into it.
    Empty operands are skipped.

    Raises:
        TagExpressionError: If any operand is not valid.
    """
    parts: list[str] = []
    for expression in expressions:
        if expression is None or not expression.strip():
            continue
        text = expression.strip()
        if isinstance(parse(text), Or) and not _is_enclosed(text):
            text = f"({text})"
        parts.append(text)
    if not parts:
        raise TagExpressionError("empty expression", "")
    return " and ".join(parts)
