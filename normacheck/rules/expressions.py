"""Closed expression language for formula and conditional rules.

Expressions are tokenized, parsed into an immutable node tree and
interpreted against a field resolver.  Nothing is ever handed to ``eval``:
the only operations available are the ones implemented here.

Grammar (lowest to highest precedence)::

    expr       := or_expr
    or_expr    := and_expr ("or" and_expr)*
    and_expr   := not_expr ("and" not_expr)*
    not_expr   := "not" not_expr | comparison
    comparison := sum (("<" | "<=" | ">" | ">=" | "==" | "!=" | "in" | "not in") sum)?
    sum        := product (("+" | "-") product)*
    product    := unary (("*" | "/") unary)*
    unary      := "-" unary | atom
    atom       := NUMBER | STRING | "true" | "false" | "null"
                | PATH | NAME "(" args ")" | "(" expr ")" | "[" args "]"

``PATH`` is a dotted field reference such as ``fire_safety.number_of_exits``
or ``computed.required_resistance``.
"""

from __future__ import annotations

import functools
import math
from dataclasses import dataclass
from typing import Any, Callable

from normacheck.errors import (
    ExpressionSyntaxError,
    ExpressionTypeError,
    RuleEvaluationError,
    UndefinedFieldError,
)

Resolver = Callable[[str], Any]

_KEYWORDS = {"and", "or", "not", "in", "true", "false", "null"}
_COMPARISON_OPS = {"<", "<=", ">", ">=", "==", "!=", "in", "not in"}


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    pos: int


@dataclass(frozen=True)
class Node:
    """Base class for parsed expressions."""


@dataclass(frozen=True)
class Literal(Node):
    value: Any


@dataclass(frozen=True)
class FieldRef(Node):
    path: str


@dataclass(frozen=True)
class ListLiteral(Node):
    items: tuple[Node, ...]


@dataclass(frozen=True)
class Unary(Node):
    op: str
    operand: Node


@dataclass(frozen=True)
class Binary(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Logical(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Compare(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Call(Node):
    name: str
    args: tuple[Node, ...]


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


class _Tokenizer:
    _SINGLE = {"+", "-", "*", "/", "(", ")", "[", "]", ",", "<", ">"}
    _DOUBLE = {"<=", ">=", "==", "!="}

    def __init__(self, text: str) -> None:
        self.text = text
        self.length = len(text)
        self.pos = 0

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while self.pos < self.length:
            ch = self.text[self.pos]
            if ch.isspace():
                self.pos += 1
                continue
            if ch in {'"', "'"}:
                tokens.append(self._read_string(ch))
                continue
            if ch.isalpha() or ch == "_":
                tokens.append(self._read_name())
                continue
            if ch.isdigit() or (ch == "." and self._peek_digit()):
                tokens.append(self._read_number())
                continue
            pair = self.text[self.pos : self.pos + 2]
            if pair in self._DOUBLE:
                tokens.append(Token("OP", pair, self.pos))
                self.pos += 2
                continue
            if ch in self._SINGLE:
                tokens.append(Token("OP", ch, self.pos))
                self.pos += 1
                continue
            raise ExpressionSyntaxError(f"unexpected character {ch!r} at position {self.pos}")
        return tokens

    def _peek_digit(self) -> bool:
        nxt = self.pos + 1
        return nxt < self.length and self.text[nxt].isdigit()

    def _read_string(self, quote: str) -> Token:
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        escaped = False
        while self.pos < self.length:
            ch = self.text[self.pos]
            self.pos += 1
            if escaped:
                chars.append(ch)
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                return Token("STRING", "".join(chars), start)
            else:
                chars.append(ch)
        raise ExpressionSyntaxError("unterminated string literal")

    def _read_name(self) -> Token:
        start = self.pos
        while self.pos < self.length:
            ch = self.text[self.pos]
            if ch.isalnum() or ch == "_":
                self.pos += 1
            elif ch == "." and self.pos + 1 < self.length and (
                self.text[self.pos + 1].isalpha() or self.text[self.pos + 1] == "_"
            ):
                self.pos += 1
            else:
                break
        word = self.text[start : self.pos]
        if word in _KEYWORDS:
            return Token("KEYWORD", word, start)
        return Token("NAME", word, start)

    def _read_number(self) -> Token:
        start = self.pos
        seen_dot = False
        while self.pos < self.length:
            ch = self.text[self.pos]
            if ch.isdigit():
                self.pos += 1
            elif ch == "." and not seen_dot:
                seen_dot = True
                self.pos += 1
            else:
                break
        return Token("NUMBER", self.text[start : self.pos], start)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    def parse(self) -> Node:
        if not self.tokens:
            raise ExpressionSyntaxError("empty expression")
        node = self._or()
        if not self._at_end():
            tok = self.tokens[self.pos]
            raise ExpressionSyntaxError(f"unexpected {tok.value!r} at position {tok.pos}")
        return node

    def _or(self) -> Node:
        node = self._and()
        while self._match_keyword("or"):
            node = Logical("or", node, self._and())
        return node

    def _and(self) -> Node:
        node = self._not()
        while self._match_keyword("and"):
            node = Logical("and", node, self._not())
        return node

    def _not(self) -> Node:
        if self._match_keyword("not"):
            return Unary("not", self._not())
        return self._comparison()

    def _comparison(self) -> Node:
        left = self._sum()
        op = self._comparison_op()
        if op is None:
            return left
        return Compare(op, left, self._sum())

    def _comparison_op(self) -> str | None:
        if self._at_end():
            return None
        tok = self.tokens[self.pos]
        if tok.kind == "OP" and tok.value in _COMPARISON_OPS:
            self.pos += 1
            return tok.value
        if tok.kind == "KEYWORD" and tok.value == "in":
            self.pos += 1
            return "in"
        if (
            tok.kind == "KEYWORD"
            and tok.value == "not"
            and self.pos + 1 < len(self.tokens)
            and self.tokens[self.pos + 1].kind == "KEYWORD"
            and self.tokens[self.pos + 1].value == "in"
        ):
            self.pos += 2
            return "not in"
        return None

    def _sum(self) -> Node:
        node = self._product()
        while (op := self._match_op("+", "-")) is not None:
            node = Binary(op, node, self._product())
        return node

    def _product(self) -> Node:
        node = self._unary()
        while (op := self._match_op("*", "/")) is not None:
            node = Binary(op, node, self._unary())
        return node

    def _unary(self) -> Node:
        if self._match_op("-") is not None:
            return Unary("-", self._unary())
        return self._atom()

    def _atom(self) -> Node:
        if self._at_end():
            raise ExpressionSyntaxError("unexpected end of expression")
        tok = self.tokens[self.pos]
        self.pos += 1

        if tok.kind == "NUMBER":
            return Literal(float(tok.value) if "." in tok.value else int(tok.value))
        if tok.kind == "STRING":
            return Literal(tok.value)
        if tok.kind == "KEYWORD":
            if tok.value == "true":
                return Literal(True)
            if tok.value == "false":
                return Literal(False)
            if tok.value == "null":
                return Literal(None)
            raise ExpressionSyntaxError(f"unexpected keyword {tok.value!r} at position {tok.pos}")
        if tok.kind == "NAME":
            if self._match_op("(") is not None:
                if tok.value not in _FUNCTIONS:
                    raise ExpressionSyntaxError(f"unknown function {tok.value!r}")
                return Call(tok.value, self._arguments(")"))
            return FieldRef(tok.value)
        if tok.kind == "OP" and tok.value == "(":
            node = self._or()
            self._expect(")")
            return node
        if tok.kind == "OP" and tok.value == "[":
            return ListLiteral(self._arguments("]"))
        raise ExpressionSyntaxError(f"unexpected {tok.value!r} at position {tok.pos}")

    def _arguments(self, closer: str) -> tuple[Node, ...]:
        args: list[Node] = []
        if self._match_op(closer) is not None:
            return ()
        while True:
            args.append(self._or())
            if self._match_op(",") is None:
                break
        self._expect(closer)
        return tuple(args)

    def _expect(self, value: str) -> None:
        if self._match_op(value) is None:
            raise ExpressionSyntaxError(f"expected {value!r}")

    def _match_op(self, *values: str) -> str | None:
        if self._at_end():
            return None
        tok = self.tokens[self.pos]
        if tok.kind == "OP" and tok.value in values:
            self.pos += 1
            return tok.value
        return None

    def _match_keyword(self, word: str) -> bool:
        if self._at_end():
            return False
        tok = self.tokens[self.pos]
        if tok.kind == "KEYWORD" and tok.value == word:
            # "not in" belongs to the comparison, not to a unary "not"
            if word == "not" and self._next_is_in():
                return False
            self.pos += 1
            return True
        return False

    def _next_is_in(self) -> bool:
        nxt = self.pos + 1
        return nxt < len(self.tokens) and self.tokens[nxt].kind == "KEYWORD" and self.tokens[nxt].value == "in"

    def _at_end(self) -> bool:
        return self.pos >= len(self.tokens)


@functools.lru_cache(maxsize=512)
def parse_expression(text: str) -> Node:
    """Parse *text* into a node tree.  Raises :class:`ExpressionSyntaxError`."""
    if not isinstance(text, str):
        raise ExpressionSyntaxError("expression must be a string")
    try:
        return _Parser(_Tokenizer(text).tokenize()).parse()
    except (ValueError, OverflowError) as exc:
        raise ExpressionSyntaxError(f"invalid literal: {exc}") from None
    except RecursionError:
        raise ExpressionSyntaxError("expression is nested too deeply") from None


def field_paths(node: Node) -> set[str]:
    """Collect every field path referenced by *node*."""
    if isinstance(node, FieldRef):
        return {node.path}
    if isinstance(node, (Binary, Logical, Compare)):
        return field_paths(node.left) | field_paths(node.right)
    if isinstance(node, Unary):
        return field_paths(node.operand)
    if isinstance(node, (Call, ListLiteral)):
        children = node.args if isinstance(node, Call) else node.items
        paths: set[str] = set()
        for child in children:
            paths |= field_paths(child)
        return paths
    return set()


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_number(value: Any, context: str) -> float:
    if not _is_number(value):
        raise ExpressionTypeError(f"{context} expects a number, got {value!r}")
    return value


def _fn_num(value: Any) -> float:
    if _is_number(value):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
    raise ExpressionTypeError(f"num() cannot convert {value!r}")


def _fn_sqrt(value: Any) -> float:
    number = _require_number(value, "sqrt()")
    if number < 0:
        raise ExpressionTypeError("sqrt() of a negative number")
    return math.sqrt(number)


def _fn_round(value: Any, digits: Any = 0) -> float:
    return round(_require_number(value, "round()"), int(_require_number(digits, "round()")))


def _fn_minmax(fn: Callable[..., Any], name: str) -> Callable[..., Any]:
    def inner(*values: Any) -> Any:
        if not values:
            raise ExpressionTypeError(f"{name}() needs at least one argument")
        return fn(_require_number(v, f"{name}()") for v in values)

    return inner


_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "min": _fn_minmax(min, "min"),
    "max": _fn_minmax(max, "max"),
    "abs": lambda v: abs(_require_number(v, "abs()")),
    "ceil": lambda v: math.ceil(_require_number(v, "ceil()")),
    "floor": lambda v: math.floor(_require_number(v, "floor()")),
    "round": _fn_round,
    "sqrt": _fn_sqrt,
    "num": _fn_num,
    # default() is evaluated lazily by the interpreter
    "default": lambda value, fallback: value,
}

_ARITY: dict[str, tuple[int, int]] = {
    "abs": (1, 1),
    "ceil": (1, 1),
    "floor": (1, 1),
    "round": (1, 2),
    "sqrt": (1, 1),
    "num": (1, 1),
    "default": (2, 2),
}


def evaluate(node: Node, resolve: Resolver) -> Any:
    """Interpret *node*, resolving field paths through *resolve*.

    *resolve* must raise :class:`UndefinedFieldError` for unknown paths.
    """
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, FieldRef):
        return resolve(node.path)
    if isinstance(node, ListLiteral):
        return [evaluate(item, resolve) for item in node.items]
    if isinstance(node, Unary):
        operand = evaluate(node.operand, resolve)
        if node.op == "not":
            return not _truthy(operand)
        return -_require_number(operand, "unary '-'")
    if isinstance(node, Logical):
        left = _truthy(evaluate(node.left, resolve))
        if node.op == "and":
            return left and _truthy(evaluate(node.right, resolve))
        return left or _truthy(evaluate(node.right, resolve))
    if isinstance(node, Binary):
        return _arithmetic(node.op, evaluate(node.left, resolve), evaluate(node.right, resolve))
    if isinstance(node, Compare):
        return compare(node.op, evaluate(node.left, resolve), evaluate(node.right, resolve))
    if isinstance(node, Call):
        return _call(node, resolve)
    raise ExpressionSyntaxError(f"unsupported node {type(node).__name__}")


def _truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if _is_number(value):
        return value != 0
    if isinstance(value, (str, list)):
        return len(value) > 0
    raise ExpressionTypeError(f"cannot use {value!r} as a condition")


def _arithmetic(op: str, left: Any, right: Any) -> float:
    a = _require_number(left, f"'{op}'")
    b = _require_number(right, f"'{op}'")
    if op == "+":
        return a + b
    if op == "-":
        return a - b
    if op == "*":
        return a * b
    if b == 0:
        raise ExpressionTypeError("division by zero")
    return a / b


def compare(op: str, left: Any, right: Any) -> bool:
    """Apply a comparison operator with the language's typing rules."""
    if op in ("in", "not in"):
        if not isinstance(right, list):
            raise ExpressionTypeError(f"'{op}' expects a list on the right, got {right!r}")
        found = any(_equal(left, item) for item in right)
        return found if op == "in" else not found
    if op == "==":
        return _equal(left, right)
    if op == "!=":
        return not _equal(left, right)
    if _is_number(left) and _is_number(right):
        pass
    elif isinstance(left, str) and isinstance(right, str):
        pass
    else:
        raise ExpressionTypeError(f"cannot order {left!r} and {right!r}")
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    if op == ">=":
        return left >= right
    raise ExpressionSyntaxError(f"unknown comparison {op!r}")


def _equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if _is_number(left) and _is_number(right):
        return float(left) == float(right)
    return left == right


def _call(node: Call, resolve: Resolver) -> Any:
    low, high = _ARITY.get(node.name, (1, 255))
    if not low <= len(node.args) <= high:
        raise ExpressionTypeError(f"{node.name}() takes {low}..{high} arguments, got {len(node.args)}")
    if node.name == "default":
        try:
            value = evaluate(node.args[0], resolve)
        except UndefinedFieldError:
            value = None
        return evaluate(node.args[1], resolve) if value is None else value
    args = [evaluate(arg, resolve) for arg in node.args]
    return _FUNCTIONS[node.name](*args)


@dataclass(frozen=True)
class Outcome:
    """Result of evaluating a boolean rule expression."""

    passed: bool
    left: Any = None
    right: Any = None


def evaluate_condition(text: str, resolve: Resolver) -> Outcome:
    """Parse and evaluate a boolean expression.

    When the top-level node is a comparison, both operands are reported so
    the caller can show the actual and required values.
    """
    node = parse_expression(text)
    if isinstance(node, Compare):
        left = evaluate(node.left, resolve)
        right = evaluate(node.right, resolve)
        return Outcome(compare(node.op, left, right), left, right)
    value = evaluate(node, resolve)
    if not isinstance(value, bool):
        raise ExpressionTypeError(f"expression {text!r} does not yield true/false")
    return Outcome(value)


__all__ = [
    "Node",
    "Outcome",
    "RuleEvaluationError",
    "compare",
    "evaluate",
    "evaluate_condition",
    "field_paths",
    "parse_expression",
]
