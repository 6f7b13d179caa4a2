"""
Questionnaire Scoring Engine - Custom Formula Evaluator.

============================================================
PURPOSE
============================================================
Parses and evaluates the restricted arithmetic expressions
used by the CUSTOM scoring method.

Formulas are parsed into an AST and evaluated directly.
No host-language evaluation is ever involved, so a formula
can only compute numbers from the supplied variables.

============================================================
GRAMMAR
============================================================
    expression := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := ("+" | "-") unary | primary
    primary    := NUMBER | IDENTIFIER | "(" expression ")"

    NUMBER     := digits ["." digits] | "." digits
    IDENTIFIER := [A-Za-z_][A-Za-z0-9_]*

Identifiers are whole tokens: q_1 never matches inside q_10.
Nesting deeper than MAX_NESTING_DEPTH or formulas longer than
MAX_TOKENS tokens are syntax errors.

============================================================
USAGE
============================================================
    node = parse_formula("total * 2 + bonus")
    node.variables()                      # {"total", "bonus"}
    node.evaluate({"total": 5, "bonus": 3})   # 13.0

    evaluate_formula("(q_1 + q_2) / 2", {"q_1": 4, "q_2": 2})

============================================================
"""

import functools
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, NamedTuple, Set

from .types import FormulaEvaluationError, FormulaSyntaxError


# ============================================================
# TOKENIZER
# ============================================================


class Token(NamedTuple):
    kind: str  # NUMBER, IDENT, OP, LPAREN, RPAREN, END
    text: str
    position: int


_TOKEN_PATTERN = re.compile(
    r"""
    (?P<WS>\s+)
    |(?P<NUMBER>\d+(?:\.\d*)?|\.\d+)
    |(?P<IDENT>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<OP>[+\-*/])
    |(?P<LPAREN>\()
    |(?P<RPAREN>\))
    """,
    re.VERBOSE,
)


def tokenize(text: str) -> List[Token]:
    """
    Split a formula into tokens.

    Raises:
        FormulaSyntaxError: On any character outside the grammar
    """
    tokens: List[Token] = []
    position = 0

    while position < len(text):
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            raise FormulaSyntaxError(f"Unexpected character {text[position]!r}", position)

        kind = match.lastgroup
        if kind != "WS":
            tokens.append(Token(kind, match.group(), position))
        position = match.end()

    tokens.append(Token("END", "", len(text)))
    return tokens


# ============================================================
# AST
# ============================================================


class FormulaNode(ABC):
    """Base class for formula AST nodes."""

    @abstractmethod
    def evaluate(self, variables: Mapping[str, float]) -> float:
        pass

    @abstractmethod
    def variables(self) -> Set[str]:
        """Names of all variables referenced below this node."""
        pass


@dataclass(frozen=True)
class NumberNode(FormulaNode):
    value: float

    def evaluate(self, variables: Mapping[str, float]) -> float:
        return self.value

    def variables(self) -> Set[str]:
        return set()


@dataclass(frozen=True)
class VariableNode(FormulaNode):
    name: str

    def evaluate(self, variables: Mapping[str, float]) -> float:
        if self.name not in variables:
            raise FormulaEvaluationError(f"Unknown variable '{self.name}'")

        value = variables[self.name]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise FormulaEvaluationError(f"Variable '{self.name}' is not numeric: {value!r}")
        return float(value)

    def variables(self) -> Set[str]:
        return {self.name}


@dataclass(frozen=True)
class UnaryNode(FormulaNode):
    operator: str
    operand: FormulaNode

    def evaluate(self, variables: Mapping[str, float]) -> float:
        value = self.operand.evaluate(variables)
        return -value if self.operator == "-" else value

    def variables(self) -> Set[str]:
        return self.operand.variables()


@dataclass(frozen=True)
class BinaryNode(FormulaNode):
    operator: str
    left: FormulaNode
    right: FormulaNode

    def evaluate(self, variables: Mapping[str, float]) -> float:
        left = self.left.evaluate(variables)
        right = self.right.evaluate(variables)

        if self.operator == "+":
            return left + right
        if self.operator == "-":
            return left - right
        if self.operator == "*":
            return left * right
        if right == 0:
            raise FormulaEvaluationError("Division by zero")
        return left / right

    def variables(self) -> Set[str]:
        return self.left.variables() | self.right.variables()


# ============================================================
# PARSER
# ============================================================


MAX_NESTING_DEPTH = 64
MAX_TOKENS = 512


class _Parser:
    """
    Recursive-descent parser over a token list.

    Parenthesis and unary-sign nesting is capped at
    MAX_NESTING_DEPTH, and formulas at MAX_TOKENS tokens, so
    parsing and evaluation stay within the interpreter stack.
    """

    def __init__(self, tokens: List[Token]):
        if len(tokens) > MAX_TOKENS:
            raise FormulaSyntaxError(f"Formula is too long (more than {MAX_TOKENS} tokens)")
        self._tokens = tokens
        self._index = 0
        self._depth = 0

    def _enter(self, token: Token) -> None:
        self._depth += 1
        if self._depth > MAX_NESTING_DEPTH:
            raise FormulaSyntaxError("Formula nested too deeply", token.position)

    @property
    def _current(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def parse(self) -> FormulaNode:
        if self._current.kind == "END":
            raise FormulaSyntaxError("Formula is empty")

        node = self._expression()
        if self._current.kind != "END":
            raise FormulaSyntaxError(
                f"Unexpected token {self._current.text!r}", self._current.position
            )
        return node

    def _expression(self) -> FormulaNode:
        node = self._term()
        while self._current.kind == "OP" and self._current.text in "+-":
            operator = self._advance().text
            node = BinaryNode(operator, node, self._term())
        return node

    def _term(self) -> FormulaNode:
        node = self._unary()
        while self._current.kind == "OP" and self._current.text in "*/":
            operator = self._advance().text
            node = BinaryNode(operator, node, self._unary())
        return node

    def _unary(self) -> FormulaNode:
        if self._current.kind == "OP" and self._current.text in "+-":
            self._enter(self._current)
            operator = self._advance().text
            node = UnaryNode(operator, self._unary())
            self._depth -= 1
            return node
        return self._primary()

    def _primary(self) -> FormulaNode:
        token = self._current

        if token.kind == "NUMBER":
            self._advance()
            return NumberNode(float(token.text))

        if token.kind == "IDENT":
            self._advance()
            return VariableNode(token.text)

        if token.kind == "LPAREN":
            self._enter(token)
            self._advance()
            node = self._expression()
            if self._current.kind != "RPAREN":
                raise FormulaSyntaxError("Expected ')'", self._current.position)
            self._advance()
            self._depth -= 1
            return node

        if token.kind == "END":
            raise FormulaSyntaxError("Unexpected end of formula", token.position)
        raise FormulaSyntaxError(f"Unexpected token {token.text!r}", token.position)


# ============================================================
# PUBLIC API
# ============================================================


@functools.lru_cache(maxsize=256)
def parse_formula(text: str) -> FormulaNode:
    """
    Parse a formula into an AST.

    Raises:
        FormulaSyntaxError: If the formula is not in the grammar
    """
    return _Parser(tokenize(text)).parse()


def evaluate_formula(text: str, variables: Dict[str, float]) -> float:
    """
    Parse and evaluate a formula against a variable bag.

    Raises:
        FormulaSyntaxError: If the formula cannot be parsed
        FormulaEvaluationError: On unknown variables, division
            by zero or a non-finite result
    """
    result = parse_formula(text).evaluate(variables)
    if not math.isfinite(result):
        raise FormulaEvaluationError(f"Formula produced a non-finite result: {result}")
    return result
