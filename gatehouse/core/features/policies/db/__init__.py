# (c) Copyright Datacraft, 2026
"""Database models and operations for policies."""
from .orm import PolicyModel
from .api import PolicyDB

__all__ = [
	"PolicyModel",
	"PolicyDB",
]
