# (c) Copyright Datacraft, 2026
"""Tests for decision requests and decisions."""
import pytest
from uuid_extensions import uuid7

from gatehouse.core.exceptions import StoreUnavailable, ValidationError
from gatehouse.core.features.authorization.models import Decision, DecisionReason, DecisionRequest


def test_build_parses_principal_and_context(principal_id):
    """Test that raw inputs are validated and typed."""
    request = DecisionRequest.build(str(principal_id), " orders ", "read", {"hour": 10})
    assert request.principal_id == principal_id
    assert request.permission_key == "orders:read"
    assert request.context["hour"].value == 10


def test_build_rejects_invalid_input():
    """Test that malformed requests are validation errors."""
    with pytest.raises(ValidationError):
        DecisionRequest.build("not-a-uuid", "orders", "read")
    with pytest.raises(ValidationError):
        DecisionRequest.build(uuid7(), "", "read")
    with pytest.raises(ValidationError):
        DecisionRequest.build(uuid7(), "orders", " ")


def test_context_is_read_only(principal_id):
    """Test that the request context cannot be modified after construction."""
    request = DecisionRequest.build(principal_id, "orders", "read", {"hour": 10})
    with pytest.raises(TypeError):
        request.context["hour"] = 11


def test_fingerprint_is_stable(principal_id):
    """Test that equal requests share a fingerprint regardless of ordering."""
    first = DecisionRequest.build(principal_id, "orders", "read", {"a": 1, "groups": ["x", "y"]})
    second = DecisionRequest.build(principal_id, "orders", "read", {"groups": ["y", "x"], "a": 1})
    other = DecisionRequest.build(principal_id, "orders", "read", {"a": 2, "groups": ["x", "y"]})

    assert first.fingerprint() == second.fingerprint()
    assert first.fingerprint() != other.fingerprint()


def test_fingerprint_distinguishes_kinds(principal_id):
    """Test that a string and a number with the same text differ."""
    number = DecisionRequest.build(principal_id, "orders", "read", {"a": 1})
    text = DecisionRequest.build(principal_id, "orders", "read", {"a": "1"})
    assert number.fingerprint() != text.fingerprint()


def test_failure_decisions_are_not_cacheable():
    """Test that only outcomes from complete reads may be cached."""
    assert Decision(allowed=False, reason=DecisionReason.NO_MATCH).cacheable is True
    failure = Decision.deny(DecisionReason.STORE_UNAVAILABLE, error=StoreUnavailable("down"), retryable=True)
    assert failure.allowed is False
    assert failure.cacheable is False


def test_decision_serialization():
    """Test that a decision survives the decision cache."""
    decision = Decision(allowed=True, reason=DecisionReason.POLICY_ALLOW, source=uuid7())
    restored = Decision.from_dict(decision.to_dict())
    assert restored == decision
