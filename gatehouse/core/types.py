# (c) Copyright Datacraft, 2026
"""Shared value types."""
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gatehouse.core.exceptions import ValidationError


class CacheBackendType(str, Enum):
	"""Supported decision cache backends."""
	MEMORY = "memory"
	REDIS = "redis"


class AttributeKind(str, Enum):
	"""Tag of an attribute context value."""
	STRING = "string"
	NUMBER = "number"
	BOOLEAN = "boolean"
	STRING_SET = "string_set"


@dataclass(frozen=True, slots=True)
class AttributeValue:
	"""
	Tagged attribute value: string | number | boolean | set of strings.

	Condition evaluation matches on ``kind`` so that comparisons across
	different kinds fail instead of relying on Python's loose equality
	(``True == 1``).
	"""
	kind: AttributeKind
	value: str | int | float | bool | frozenset[str]

	@classmethod
	def of(cls, raw: Any) -> "AttributeValue":
		"""Wrap a raw Python value."""
		if isinstance(raw, AttributeValue):
			return raw
		# bool first: bool is a subclass of int
		if isinstance(raw, bool):
			return cls(AttributeKind.BOOLEAN, raw)
		if isinstance(raw, (int, float)):
			return cls(AttributeKind.NUMBER, raw)
		if isinstance(raw, str):
			return cls(AttributeKind.STRING, raw)
		if isinstance(raw, (set, frozenset, list, tuple)):
			if not all(isinstance(item, str) for item in raw):
				raise ValidationError("Set attributes may only contain strings")
			return cls(AttributeKind.STRING_SET, frozenset(raw))
		raise ValidationError(f"Unsupported attribute value type: {type(raw).__name__}")

	def to_python(self) -> Any:
		if self.kind == AttributeKind.STRING_SET:
			return sorted(self.value)
		return self.value

	def to_dict(self) -> dict:
		return {"kind": self.kind.value, "value": self.to_python()}

	@classmethod
	def from_dict(cls, data: dict) -> "AttributeValue":
		value = cls.of(data["value"])
		if value.kind != AttributeKind(data["kind"]):
			raise ValidationError(f"Attribute value does not match kind {data['kind']}")
		return value


AttributeContext = Mapping[str, AttributeValue]


def build_context(raw: Mapping[str, Any] | Iterable[tuple[str, Any]] | None) -> dict[str, AttributeValue]:
	"""Convert a raw mapping into a typed attribute context."""
	if raw is None:
		return {}
	items = raw.items() if isinstance(raw, Mapping) else raw
	context = {}
	for key, value in items:
		if not isinstance(key, str) or not key:
			raise ValidationError("Attribute keys must be non-empty strings")
		context[key] = AttributeValue.of(value)
	return context
