# (c) Copyright Datacraft, 2026
"""
Condition evaluation against a typed attribute context.

Evaluation is pure: no I/O, no clock. Comparing values of different kinds
is false. A comparison that references a missing attribute is unknown;
unknown survives "not", is absorbed by "and" with a false operand or "or"
with a true one, and otherwise makes the whole expression false. A missing
attribute therefore never satisfies a condition, negated or not.
"""
import logging
from typing import Any, Mapping

from gatehouse.core.exceptions import MalformedCondition, ValidationError
from gatehouse.core.types import AttributeKind, AttributeValue, build_context

from .parser import (
	And, Attribute, Comparison, ComparisonOperator, Literal, Node, Not, Or, Truthy,
	compile_condition, iter_attributes,
)

logger = logging.getLogger(__name__)


def evaluate_condition(expression: str | None, context: Mapping[str, AttributeValue]) -> bool:
	"""
	Evaluate a condition expression.

	Args:
		expression: Condition text; empty or None means unconditional
		context: Attribute context keyed by attribute name

	Returns:
		Boolean result of the expression

	Raises:
		MalformedCondition: If the expression cannot be parsed

	Examples:
		>>> evaluate_condition("hour >= 18", {"hour": AttributeValue.of(20)})
		True

		>>> evaluate_condition('"admin" in groups', {})
		False
	"""
	node = compile_condition(expression)
	if node is None:
		return True
	return _evaluate(node, context) is True


def evaluate_raw(expression: str | None, context: Mapping[str, Any]) -> bool:
	"""Evaluate against a plain dict, wrapping values into AttributeValue."""
	return evaluate_condition(expression, build_context(context))


def _evaluate(node: Node, context: Mapping[str, AttributeValue]) -> bool | None:
	"""Three-valued evaluation; None means a referenced attribute is missing."""
	match node:
		case Comparison(left=left, operator=operator, right=right):
			lhs = _resolve(left, context)
			rhs = _resolve(right, context)
			if lhs is None or rhs is None:
				return None
			return _compare(lhs, operator, rhs)
		case Truthy(operand=operand):
			value = _resolve(operand, context)
			if value is None:
				return None
			return value.kind == AttributeKind.BOOLEAN and value.value is True
		case And(items=items):
			results = [_evaluate(item, context) for item in items]
			if False in results:
				return False
			return None if None in results else True
		case Or(items=items):
			results = [_evaluate(item, context) for item in items]
			if True in results:
				return True
			return None if None in results else False
		case Not(item=item):
			result = _evaluate(item, context)
			return None if result is None else not result
	logger.warning(f"Unknown condition node: {node!r}")
	return False


def _resolve(operand, context: Mapping[str, AttributeValue]) -> AttributeValue | None:
	match operand:
		case Literal(value=value):
			return value
		case Attribute(name=name):
			value = context.get(name)
			if value is None or isinstance(value, AttributeValue):
				return value
			# Untyped values slipped in by a caller are wrapped, or treated as missing
			try:
				return AttributeValue.of(value)
			except ValidationError:
				return None
	return None


def _compare(lhs: AttributeValue, operator: ComparisonOperator, rhs: AttributeValue) -> bool:
	"""Compare two tagged values. Kind mismatches are false for every operator."""
	match operator:
		case ComparisonOperator.EQUALS:
			return lhs.kind == rhs.kind and lhs.value == rhs.value
		case ComparisonOperator.NOT_EQUALS:
			return lhs.kind == rhs.kind and lhs.value != rhs.value
		case ComparisonOperator.GREATER_THAN:
			return _both_numbers(lhs, rhs) and lhs.value > rhs.value
		case ComparisonOperator.GREATER_THAN_OR_EQUAL:
			return _both_numbers(lhs, rhs) and lhs.value >= rhs.value
		case ComparisonOperator.LESS_THAN:
			return _both_numbers(lhs, rhs) and lhs.value < rhs.value
		case ComparisonOperator.LESS_THAN_OR_EQUAL:
			return _both_numbers(lhs, rhs) and lhs.value <= rhs.value
		case ComparisonOperator.IN:
			if rhs.kind != AttributeKind.STRING_SET:
				return False
			if lhs.kind == AttributeKind.STRING:
				return lhs.value in rhs.value
			if lhs.kind == AttributeKind.STRING_SET:
				return lhs.value <= rhs.value
			return False
		case ComparisonOperator.NOT_IN:
			if rhs.kind != AttributeKind.STRING_SET or lhs.kind != AttributeKind.STRING:
				return False
			return lhs.value not in rhs.value
	return False


def _both_numbers(lhs: AttributeValue, rhs: AttributeValue) -> bool:
	return lhs.kind == AttributeKind.NUMBER and rhs.kind == AttributeKind.NUMBER


def validate_condition(expression: str | None) -> tuple[bool, str | None]:
	"""
	Validate an expression without evaluating it.

	Returns:
		Tuple of (is_valid, error_message)
	"""
	try:
		compile_condition(expression)
	except MalformedCondition as e:
		return False, str(e)
	return True, None


def extract_attributes(expression: str | None) -> set[str]:
	"""Attribute names referenced by an expression (empty set if it does not parse)."""
	try:
		node = compile_condition(expression)
	except MalformedCondition as e:
		logger.warning(f"Could not extract attributes from condition: {e}")
		return set()
	return set(iter_attributes(node))
