# (c) Copyright Datacraft, 2026
"""
Attribute-Based Access Control policies.

This module provides:
- Policy model with wildcard resource/action patterns and priorities
- Condition language parser and evaluator over typed attribute contexts
- Resolver selecting and ordering the policies applicable to a request
- Administrative service validating and storing policies
"""
from .models import Policy, PolicyEffect
from .parser import ConditionParser, ConditionLexer, ComparisonOperator, compile_condition
from .evaluator import evaluate_condition, evaluate_raw, validate_condition, extract_attributes
from .resolver import PolicyResolver, matches_pattern, matches_segment
from .service import PolicyService

__all__ = [
	# Models
	"Policy",
	"PolicyEffect",
	# Parser
	"ConditionParser",
	"ConditionLexer",
	"ComparisonOperator",
	"compile_condition",
	# Evaluator
	"evaluate_condition",
	"evaluate_raw",
	"validate_condition",
	"extract_attributes",
	# Resolver
	"PolicyResolver",
	"matches_pattern",
	"matches_segment",
	# Service
	"PolicyService",
]
