# (c) Copyright Datacraft, 2026
"""
Parser for policy condition expressions.

Minimal boolean grammar over attribute comparisons:
    hour >= 18 and not (department == "finance")
    "admin" in groups or role in ["manager", "owner"]
    mfa_verified and region not in ["cn", "ru"]
"""
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from gatehouse.core.exceptions import MalformedCondition
from gatehouse.core.types import AttributeValue


@dataclass
class Token:
	"""Lexer token."""
	type: str
	value: str
	line: int
	column: int


class ConditionLexer:
	"""Tokenizer for condition expressions."""

	KEYWORDS = {"AND", "OR", "NOT", "IN", "TRUE", "FALSE"}

	OPERATORS = {
		"==": "EQ",
		"=": "EQ",
		"!=": "NE",
		"<>": "NE",
		">": "GT",
		">=": "GTE",
		"<": "LT",
		"<=": "LTE",
	}

	def __init__(self, text: str):
		self.text = text
		self.pos = 0
		self.line = 1
		self.column = 1
		self.tokens: list[Token] = []

	def tokenize(self) -> list[Token]:
		while self.pos < len(self.text):
			self._skip_whitespace()
			if self.pos >= len(self.text):
				break

			char = self.text[self.pos]

			if char in ('"', "'"):
				self.tokens.append(self._read_string())
				continue

			if char.isdigit() or (char == "-" and self._peek().isdigit()):
				self.tokens.append(self._read_number())
				continue

			# Operators (multi-char first)
			two_char = self.text[self.pos:self.pos + 2]
			if two_char in self.OPERATORS:
				self.tokens.append(Token("OPERATOR", self.OPERATORS[two_char], self.line, self.column))
				self._advance(2)
				continue
			if char in self.OPERATORS:
				self.tokens.append(Token("OPERATOR", self.OPERATORS[char], self.line, self.column))
				self._advance()
				continue

			if char in "()[],":
				self.tokens.append(Token("PUNCT", char, self.line, self.column))
				self._advance()
				continue

			if char.isalpha() or char == "_":
				self.tokens.append(self._read_identifier())
				continue

			raise MalformedCondition(f"Unexpected character: {char}", self.line, self.column)

		return self.tokens

	def _advance(self, count: int = 1):
		for _ in range(count):
			if self.pos < len(self.text):
				if self.text[self.pos] == "\n":
					self.line += 1
					self.column = 1
				else:
					self.column += 1
				self.pos += 1

	def _peek(self, offset: int = 1) -> str:
		pos = self.pos + offset
		return self.text[pos] if pos < len(self.text) else ""

	def _skip_whitespace(self):
		while self.pos < len(self.text) and self.text[self.pos] in " \t\n\r":
			self._advance()

	def _read_string(self) -> Token:
		quote = self.text[self.pos]
		start_line, start_col = self.line, self.column
		self._advance()  # Skip opening quote
		value = ""
		while self.pos < len(self.text) and self.text[self.pos] != quote:
			if self.text[self.pos] == "\\":
				self._advance()
				if self.pos < len(self.text):
					value += self.text[self.pos]
					self._advance()
			else:
				value += self.text[self.pos]
				self._advance()
		if self.pos >= len(self.text):
			raise MalformedCondition("Unterminated string", start_line, start_col)
		self._advance()  # Skip closing quote
		return Token("STRING", value, start_line, start_col)

	def _read_number(self) -> Token:
		start_line, start_col = self.line, self.column
		value = self.text[self.pos]
		self._advance()
		while self.pos < len(self.text) and (self.text[self.pos].isdigit() or self.text[self.pos] == "."):
			value += self.text[self.pos]
			self._advance()
		if value.count(".") > 1 or value.endswith("."):
			raise MalformedCondition(f"Invalid number: {value}", start_line, start_col)
		return Token("NUMBER", value, start_line, start_col)

	def _read_identifier(self) -> Token:
		start_line, start_col = self.line, self.column
		value = ""
		while self.pos < len(self.text) and (self.text[self.pos].isalnum() or self.text[self.pos] in "_."):
			value += self.text[self.pos]
			self._advance()
		if value.upper() in self.KEYWORDS:
			return Token("KEYWORD", value.upper(), start_line, start_col)
		return Token("IDENTIFIER", value, start_line, start_col)


class ComparisonOperator(str, Enum):
	EQUALS = "eq"
	NOT_EQUALS = "ne"
	GREATER_THAN = "gt"
	GREATER_THAN_OR_EQUAL = "gte"
	LESS_THAN = "lt"
	LESS_THAN_OR_EQUAL = "lte"
	IN = "in"
	NOT_IN = "not_in"


# Expression tree

@dataclass(frozen=True)
class Attribute:
	name: str


@dataclass(frozen=True)
class Literal:
	value: AttributeValue


Operand = Attribute | Literal


@dataclass(frozen=True)
class Comparison:
	left: Operand
	operator: ComparisonOperator
	right: Operand


@dataclass(frozen=True)
class Truthy:
	"""Bare operand used as a condition: true only for the boolean ``true``."""
	operand: Operand


@dataclass(frozen=True)
class And:
	items: tuple


@dataclass(frozen=True)
class Or:
	items: tuple


@dataclass(frozen=True)
class Not:
	item: object


Node = Comparison | Truthy | And | Or | Not

# Combined depth of parentheses and "not" accepted by the parser
MAX_NESTING_DEPTH = 64


class ConditionParser:
	"""
	Recursive descent parser for condition expressions.

	Grammar:
		expr      := and_expr (OR and_expr)*
		and_expr  := not_expr (AND not_expr)*
		not_expr  := NOT not_expr | primary
		primary   := '(' expr ')' | operand [comp_op operand]
		comp_op   := '==' | '=' | '!=' | '<>' | '<' | '<=' | '>' | '>=' | IN | NOT IN
		operand   := IDENTIFIER | STRING | NUMBER | TRUE | FALSE | list
		list      := '[' [STRING (',' STRING)*] ']'
	"""

	OPERATOR_MAP = {
		"EQ": ComparisonOperator.EQUALS,
		"NE": ComparisonOperator.NOT_EQUALS,
		"GT": ComparisonOperator.GREATER_THAN,
		"GTE": ComparisonOperator.GREATER_THAN_OR_EQUAL,
		"LT": ComparisonOperator.LESS_THAN,
		"LTE": ComparisonOperator.LESS_THAN_OR_EQUAL,
	}

	def __init__(self):
		self.tokens: list[Token] = []
		self.pos = 0
		self.depth = 0

	def parse(self, text: str) -> Node:
		self.tokens = ConditionLexer(text).tokenize()
		self.pos = 0
		self.depth = 0

		if not self.tokens:
			raise MalformedCondition("Empty condition", 1, 1)

		node = self._parse_or()
		token = self._current()
		if token is not None:
			raise MalformedCondition(f"Unexpected token: {token.value}", token.line, token.column)
		return node

	def _current(self) -> Token | None:
		return self.tokens[self.pos] if self.pos < len(self.tokens) else None

	def _lookahead(self, offset: int = 1) -> Token | None:
		pos = self.pos + offset
		return self.tokens[pos] if pos < len(self.tokens) else None

	def _advance(self) -> Token | None:
		token = self._current()
		self.pos += 1
		return token

	def _error(self, message: str) -> MalformedCondition:
		token = self._current()
		if token is None and self.tokens:
			last = self.tokens[-1]
			return MalformedCondition(f"{message} at end of expression", last.line, last.column + len(last.value))
		line, col = (token.line, token.column) if token else (0, 0)
		return MalformedCondition(message, line, col)

	def _check_keyword(self, keyword: str, token: Token | None = None) -> bool:
		token = token if token is not None else self._current()
		return token is not None and token.type == "KEYWORD" and token.value == keyword

	def _check_punct(self, char: str) -> bool:
		token = self._current()
		return token is not None and token.type == "PUNCT" and token.value == char

	def _expect_punct(self, char: str):
		if not self._check_punct(char):
			raise self._error(f"Expected '{char}'")
		self._advance()

	def _parse_or(self) -> Node:
		items = [self._parse_and()]
		while self._check_keyword("OR"):
			self._advance()
			items.append(self._parse_and())
		return items[0] if len(items) == 1 else Or(tuple(items))

	def _parse_and(self) -> Node:
		items = [self._parse_not()]
		while self._check_keyword("AND"):
			self._advance()
			items.append(self._parse_not())
		return items[0] if len(items) == 1 else And(tuple(items))

	def _enter(self):
		self.depth += 1
		if self.depth > MAX_NESTING_DEPTH:
			raise self._error("Expression nested too deeply")

	def _parse_not(self) -> Node:
		if self._check_keyword("NOT"):
			self._advance()
			self._enter()
			try:
				return Not(self._parse_not())
			finally:
				self.depth -= 1
		return self._parse_primary()

	def _parse_primary(self) -> Node:
		if self._check_punct("("):
			self._advance()
			self._enter()
			try:
				node = self._parse_or()
			finally:
				self.depth -= 1
			self._expect_punct(")")
			return node

		left = self._parse_operand()
		operator = self._parse_operator()
		if operator is None:
			return Truthy(left)
		right = self._parse_operand()
		return Comparison(left, operator, right)

	def _parse_operator(self) -> ComparisonOperator | None:
		token = self._current()
		if token is None:
			return None
		if token.type == "OPERATOR":
			self._advance()
			return self.OPERATOR_MAP[token.value]
		if self._check_keyword("IN"):
			self._advance()
			return ComparisonOperator.IN
		if self._check_keyword("NOT") and self._check_keyword("IN", self._lookahead()):
			self._advance()
			self._advance()
			return ComparisonOperator.NOT_IN
		return None

	def _parse_operand(self) -> Operand:
		token = self._current()
		if token is None:
			raise self._error("Expected attribute or value")

		if token.type == "IDENTIFIER":
			self._advance()
			return Attribute(token.value)

		if token.type == "STRING":
			self._advance()
			return Literal(AttributeValue.of(token.value))

		if token.type == "NUMBER":
			self._advance()
			number = float(token.value) if "." in token.value else int(token.value)
			return Literal(AttributeValue.of(number))

		if self._check_keyword("TRUE") or self._check_keyword("FALSE"):
			self._advance()
			return Literal(AttributeValue.of(token.value == "TRUE"))

		if self._check_punct("["):
			return Literal(AttributeValue.of(self._parse_list()))

		raise self._error(f"Unexpected token: {token.value}")

	def _parse_list(self) -> frozenset[str]:
		"""Parse a set literal: ["a", "b", ...]"""
		self._advance()  # Skip [
		items = []

		while self._current() and not self._check_punct("]"):
			token = self._current()
			if token.type != "STRING":
				raise self._error("Set literals may only contain strings")
			items.append(token.value)
			self._advance()

			if self._check_punct(","):
				self._advance()
			elif not self._check_punct("]"):
				raise self._error("Expected ',' or ']'")

		self._expect_punct("]")
		return frozenset(items)


@lru_cache(maxsize=1024)
def compile_condition(text: str | None) -> Node | None:
	"""
	Parse a condition into an expression tree.

	Returns None for an empty condition. Raises MalformedCondition when the
	text cannot be parsed; failures are not cached.
	"""
	if text is None or not text.strip():
		return None
	return ConditionParser().parse(text)


def iter_attributes(node: Node | None):
	"""Yield the attribute names referenced by an expression tree."""
	match node:
		case None:
			return
		case Comparison(left=left, right=right):
			for operand in (left, right):
				if isinstance(operand, Attribute):
					yield operand.name
		case Truthy(operand=Attribute(name=name)):
			yield name
		case And(items=items) | Or(items=items):
			for item in items:
				yield from iter_attributes(item)
		case Not(item=item):
			yield from iter_attributes(item)
