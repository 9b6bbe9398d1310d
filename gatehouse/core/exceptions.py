# (c) Copyright Datacraft, 2026
"""Authorization error taxonomy."""


class AuthorizationError(Exception):
	"""Base class for errors raised by the authorization core."""
	code: str = "authorization_error"
	retryable: bool = False

	def __init__(self, message: str = ""):
		super().__init__(message or self.code)


class ValidationError(AuthorizationError):
	"""Invalid input to a factory or administrative operation."""
	code = "validation_error"


class NotFound(AuthorizationError):
	"""Referenced role, permission or policy does not exist."""
	code = "not_found"


class Conflict(AuthorizationError):
	"""Uniqueness violation or a delete blocked by existing references."""
	code = "conflict"


class PrincipalNotFound(AuthorizationError):
	"""Principal is absent from the authoritative store."""
	code = "principal_not_found"

	def __init__(self, principal_id):
		self.principal_id = principal_id
		super().__init__(f"Principal {principal_id} not found")


class StoreUnavailable(AuthorizationError):
	"""Authoritative store unreachable or timed out."""
	code = "store_unavailable"
	retryable = True


class CacheUnavailable(AuthorizationError):
	"""Cache backend failure; always handled by falling back to the store."""
	code = "cache_unavailable"
	retryable = True


class MalformedCondition(AuthorizationError):
	"""A policy condition expression cannot be parsed."""
	code = "malformed_condition"

	def __init__(self, message: str, line: int = 0, column: int = 0):
		self.line = line
		self.column = column
		super().__init__(f"Line {line}, col {column}: {message}")


class DeadlineExceeded(AuthorizationError):
	"""A decision did not complete within its deadline."""
	code = "deadline_exceeded"
	retryable = True
