# (c) Copyright Datacraft, 2026
"""Tests for the RBAC + ABAC decision engine."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from uuid_extensions import uuid7

from gatehouse.core.cache import DecisionCache, decision_key, permission_key
from gatehouse.core.cache.redis_backend import RedisCacheBackend
from gatehouse.core.config import Settings
from gatehouse.core.exceptions import (
    AuthorizationError, DeadlineExceeded, MalformedCondition, PrincipalNotFound, StoreUnavailable,
    ValidationError,
)
from gatehouse.core.features.authorization.engine import DecisionEngine
from gatehouse.core.features.authorization.models import DecisionReason, DecisionRequest
from gatehouse.core.features.policies.models import Policy
from gatehouse.core.features.policies.service import PolicyService
from gatehouse.core.features.policies.evaluator import evaluate_condition
from gatehouse.core.features.roles.service import PrincipalService, RoleService


async def make_reader(store, principal_id, resource="orders", action="read", cache=None):
    service = RoleService(store, cache)
    role = await service.create_role(f"{resource}-{action}")
    permission = await service.create_permission(resource, action)
    await service.grant_permission(role.id, permission.id)
    await service.assign_role(principal_id, role.id)
    return role, permission


async def make_night_policies(store, cache=None):
    """Deny writes after 18:00, otherwise allow."""
    service = PolicyService(store, cache)
    deny = await service.create_policy("night-freeze", "orders", "write", "Deny", "hour >= 18", 100)
    allow = await service.create_policy("writes", "orders", "write", "Allow", "", 50)
    return deny, allow


def slow_store_call(delay=1.0):
    async def call(*args, **kwargs):
        await asyncio.sleep(delay)
        return frozenset()
    return call


@pytest.mark.asyncio
async def test_rbac_match(store, settings, principal_id):
    """Test that a held permission allows and names the granting permission."""
    _, permission = await make_reader(store, principal_id)
    engine = DecisionEngine(store, settings=settings)

    decision = await engine.decide_for(principal_id, "orders", "read", {})

    assert decision.allowed is True
    assert decision.reason == DecisionReason.RBAC_MATCH
    assert decision.source == permission.id
    assert decision.evaluation_time_ms >= 0


@pytest.mark.asyncio
async def test_priority_deny_over_allow(store, settings, principal_id):
    """Test that a higher priority deny beats a lower priority allow when its condition holds."""
    await store.add_principal(principal_id)
    deny, allow = await make_night_policies(store)
    engine = DecisionEngine(store, settings=settings)

    night = await engine.decide_for(principal_id, "orders", "write", {"hour": 20})
    day = await engine.decide_for(principal_id, "orders", "write", {"hour": 10})
    unknown_hour = await engine.decide_for(principal_id, "orders", "write", {})

    assert (night.allowed, night.reason, night.source) == (False, DecisionReason.POLICY_DENY, deny.id)
    assert (day.allowed, day.reason, day.source) == (True, DecisionReason.POLICY_ALLOW, allow.id)
    assert unknown_hour.reason == DecisionReason.POLICY_ALLOW


@pytest.mark.asyncio
async def test_unknown_principal_is_denied(store, settings):
    """Test that an unknown principal fails closed with a typed error."""
    engine = DecisionEngine(store, settings=settings)

    decision = await engine.decide_for(uuid7(), "orders", "read")

    assert decision.allowed is False
    assert decision.reason == DecisionReason.PRINCIPAL_NOT_FOUND
    assert isinstance(decision.error, PrincipalNotFound)
    assert decision.retryable is False


@pytest.mark.asyncio
async def test_rbac_wins_over_conflicting_deny(store, settings, principal_id):
    """Test that an exact permission allows even when a deny policy matches."""
    await make_reader(store, principal_id, "orders", "delete")
    await PolicyService(store).create_policy("no-deletes", "orders", "*", "Deny", "", 1000)
    engine = DecisionEngine(store, settings=settings)

    decision = await engine.decide_for(principal_id, "orders", "delete")

    assert decision.allowed is True
    assert decision.reason == DecisionReason.RBAC_MATCH


@pytest.mark.asyncio
async def test_no_match_denies(store, settings, principal_id):
    """Test that nothing matching means deny."""
    await make_reader(store, principal_id, "orders", "read")
    await PolicyService(store).create_policy("users", "users", "*", "Allow")
    engine = DecisionEngine(store, settings=settings)

    decision = await engine.decide_for(principal_id, "orders", "write")

    assert decision.allowed is False
    assert decision.reason == DecisionReason.NO_MATCH
    assert decision.source is None


@pytest.mark.asyncio
async def test_decisions_are_repeatable(store, cache, settings, principal_id):
    """Test that the same request against unchanged data gives the same decision."""
    await store.add_principal(principal_id)
    await make_night_policies(store, cache)
    engine = DecisionEngine(store, cache, settings=settings)
    request = DecisionRequest.build(principal_id, "orders", "write", {"hour": 19})

    assert await engine.decide(request) == await engine.decide(request)


@pytest.mark.asyncio
async def test_revoke_is_visible_to_next_decision(store, cache, settings, principal_id):
    """Test that a revoke through the service is seen despite caching."""
    role, permission = await make_reader(store, principal_id, cache=cache)
    engine = DecisionEngine(store, cache, settings=settings)
    assert (await engine.decide_for(principal_id, "orders", "read")).allowed is True

    await RoleService(store, cache).revoke_permission(role.id, permission.id)

    decision = await engine.decide_for(principal_id, "orders", "read")
    assert decision.allowed is False
    assert decision.reason == DecisionReason.NO_MATCH


@pytest.mark.asyncio
async def test_new_assignment_is_visible_to_next_decision(store, cache, settings, principal_id):
    """Test that a role assigned after a cached deny takes effect."""
    await store.add_principal(principal_id)
    engine = DecisionEngine(store, cache, settings=settings)
    service = RoleService(store, cache)
    role = await service.create_role("reader")
    permission = await service.create_permission("orders", "read")
    await service.grant_permission(role.id, permission.id)
    assert (await engine.decide_for(principal_id, "orders", "read")).allowed is False

    await service.assign_role(principal_id, role.id)

    assert (await engine.decide_for(principal_id, "orders", "read")).allowed is True


@pytest.mark.asyncio
async def test_policy_change_is_visible_to_next_decision(store, cache, settings, principal_id):
    """Test that policy mutations invalidate the cached policy set."""
    await store.add_principal(principal_id)
    engine = DecisionEngine(store, cache, settings=settings)
    assert (await engine.decide_for(principal_id, "reports", "export")).reason == DecisionReason.NO_MATCH

    service = PolicyService(store, cache)
    policy = await service.create_policy("exports", "reports", "*", "Allow")
    assert (await engine.decide_for(principal_id, "reports", "export")).reason == DecisionReason.POLICY_ALLOW

    await service.set_policy_active(policy.id, False)
    assert (await engine.decide_for(principal_id, "reports", "export")).reason == DecisionReason.NO_MATCH


@pytest.mark.asyncio
async def test_malformed_policy_is_skipped(store, settings, principal_id):
    """Test that a stored policy with a broken condition never matches and is reported."""
    await store.add_principal(principal_id)
    broken = Policy.create("broken", "orders", "write", "Deny", "hour >=", 100)
    fallback = Policy.create("fallback", "orders", "write", "Allow", "", 1)
    await store.save_policy(broken)
    await store.save_policy(fallback)
    hook = MagicMock()
    engine = DecisionEngine(store, settings=settings, on_malformed_policy=hook)

    decision = await engine.decide_for(principal_id, "orders", "write", {"hour": 20})

    assert decision.reason == DecisionReason.POLICY_ALLOW
    assert decision.source == fallback.id
    hook.assert_called_once()
    policy, error = hook.call_args.args
    assert policy.id == broken.id
    assert isinstance(error, MalformedCondition)


@pytest.mark.asyncio
async def test_store_failure_denies_with_retry(store, settings, principal_id):
    """Test that an unavailable store fails closed and is retryable."""
    store.load_roles = AsyncMock(side_effect=StoreUnavailable("connection refused"))
    engine = DecisionEngine(store, settings=settings)

    decision = await engine.decide_for(principal_id, "orders", "read")

    assert decision.allowed is False
    assert decision.reason == DecisionReason.STORE_UNAVAILABLE
    assert decision.retryable is True
    assert isinstance(decision.error, StoreUnavailable)


@pytest.mark.asyncio
async def test_policy_store_failure_denies(store, settings, principal_id):
    """Test that a failure while loading policies also fails closed."""
    await store.add_principal(principal_id)
    store.load_active_policies = AsyncMock(side_effect=StoreUnavailable("timeout"))
    engine = DecisionEngine(store, settings=settings)

    decision = await engine.decide_for(principal_id, "orders", "read")

    assert decision.allowed is False
    assert decision.reason == DecisionReason.STORE_UNAVAILABLE


@pytest.mark.asyncio
async def test_unexpected_error_denies(store, settings, principal_id):
    """Test that any other failure becomes a non-retryable internal error deny."""
    store.load_roles = AsyncMock(side_effect=RuntimeError("boom"))
    engine = DecisionEngine(store, settings=settings)

    decision = await engine.decide_for(principal_id, "orders", "read")

    assert decision.allowed is False
    assert decision.reason == DecisionReason.INTERNAL_ERROR
    assert decision.retryable is False
    assert isinstance(decision.error, AuthorizationError)


@pytest.mark.asyncio
async def test_deadline_exceeded(store, settings, principal_id):
    """Test that a slow store past the deadline is a retryable deny."""
    store.load_roles = slow_store_call()
    engine = DecisionEngine(store, settings=settings)

    decision = await engine.decide_for(principal_id, "orders", "read", timeout=0.01)

    assert decision.allowed is False
    assert decision.reason == DecisionReason.DEADLINE_EXCEEDED
    assert decision.retryable is True
    assert isinstance(decision.error, DeadlineExceeded)


@pytest.mark.asyncio
async def test_deadline_from_settings(store, principal_id):
    """Test that the configured timeout applies when none is passed."""
    store.load_roles = slow_store_call()
    engine = DecisionEngine(store, settings=Settings(log_config=None, decision_timeout=0.01))

    decision = await engine.decide_for(principal_id, "orders", "read")

    assert decision.reason == DecisionReason.DEADLINE_EXCEEDED


@pytest.mark.asyncio
async def test_cancellation_propagates_without_caching(store, cache, settings, principal_id):
    """Test that cancelling the caller cancels the decision and caches nothing."""
    store.load_roles = slow_store_call()
    engine = DecisionEngine(store, cache, settings=settings)

    task = asyncio.create_task(engine.decide_for(principal_id, "orders", "read"))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert await cache.get(permission_key(principal_id)) is None


@pytest.mark.asyncio
async def test_invalid_request_raises(store, settings):
    """Test that malformed inputs are rejected before evaluation."""
    engine = DecisionEngine(store, settings=settings)
    with pytest.raises(ValidationError):
        await engine.decide_for("not-a-uuid", "orders", "read")


@pytest.mark.asyncio
async def test_decision_cache(store, cache, principal_id):
    """Test that full decisions are cached per request fingerprint when enabled."""
    await store.add_principal(principal_id)
    await make_night_policies(store, cache)
    engine = DecisionEngine(store, cache, settings=Settings(log_config=None, decision_cache_enabled=True))
    night = DecisionRequest.build(principal_id, "orders", "write", {"hour": 20})
    day = DecisionRequest.build(principal_id, "orders", "write", {"hour": 10})

    assert (await engine.decide(night)).reason == DecisionReason.POLICY_DENY
    assert (await engine.decide(day)).reason == DecisionReason.POLICY_ALLOW
    assert (await engine.decide(night)).reason == DecisionReason.POLICY_DENY

    cached = await cache.get(decision_key(principal_id, night.fingerprint()))
    assert cached["reason"] == "policy_deny"


@pytest.mark.asyncio
async def test_decision_cache_skips_failures(store, cache, principal_id):
    """Test that fail-closed decisions are never served from the decision cache."""
    engine = DecisionEngine(store, cache, settings=Settings(log_config=None, decision_cache_enabled=True))
    request = DecisionRequest.build(principal_id, "orders", "read")

    assert (await engine.decide(request)).reason == DecisionReason.PRINCIPAL_NOT_FOUND
    assert await cache.get(decision_key(principal_id, request.fingerprint())) is None

    await store.add_principal(principal_id)
    assert (await engine.decide(request)).reason == DecisionReason.NO_MATCH


@pytest.mark.asyncio
async def test_decision_cache_invalidated_by_revoke(store, cache, principal_id):
    """Test that cached decisions for a principal drop when their permissions change."""
    role, permission = await make_reader(store, principal_id, cache=cache)
    engine = DecisionEngine(store, cache, settings=Settings(log_config=None, decision_cache_enabled=True))
    assert (await engine.decide_for(principal_id, "orders", "read")).allowed is True

    await RoleService(store, cache).revoke_permission(role.id, permission.id)

    assert (await engine.decide_for(principal_id, "orders", "read")).allowed is False


@pytest.mark.asyncio
async def test_deeply_nested_policy_is_skipped(store, settings, principal_id):
    """Test that a stored condition nested past the parser limit is skipped, not an internal error."""
    await store.add_principal(principal_id)
    nested = Policy.create("nested", "orders", "write", "Deny", "(" * 400 + "hour >= 18" + ")" * 400, 100)
    allow = Policy.create("writes", "orders", "write", "Allow", "", 50)
    await store.save_policy(nested)
    await store.save_policy(allow)
    hook = MagicMock()
    engine = DecisionEngine(store, settings=settings, on_malformed_policy=hook)

    decision = await engine.decide_for(principal_id, "orders", "write", {"hour": 10})

    assert decision.reason == DecisionReason.POLICY_ALLOW
    assert decision.source == allow.id
    hook.assert_called_once()


@pytest.mark.asyncio
async def test_condition_evaluation_failure_is_skipped(store, settings, principal_id):
    """Test that an unexpected error while evaluating one condition only skips that policy."""
    await store.add_principal(principal_id)
    deny, allow = await make_night_policies(store)

    def flaky(expression, context):
        if expression == deny.condition:
            raise RuntimeError("evaluator bug")
        return evaluate_condition(expression, context)

    engine = DecisionEngine(store, settings=settings)
    with patch("gatehouse.core.features.authorization.engine.evaluate_condition", side_effect=flaky):
        decision = await engine.decide_for(principal_id, "orders", "write", {"hour": 20})

    assert decision.reason == DecisionReason.POLICY_ALLOW
    assert decision.source == allow.id


@pytest.mark.asyncio
async def test_failing_malformed_policy_hook_is_contained(store, settings, principal_id):
    """Test that an error raised by the reporting hook does not affect the decision."""
    await store.add_principal(principal_id)
    await store.save_policy(Policy.create("broken", "orders", "write", "Deny", "hour >=", 100))
    fallback = Policy.create("fallback", "orders", "write", "Allow", "", 1)
    await store.save_policy(fallback)
    hook = MagicMock(side_effect=RuntimeError("reporter down"))
    engine = DecisionEngine(store, settings=settings, on_malformed_policy=hook)

    decision = await engine.decide_for(principal_id, "orders", "write", {"hour": 20})

    assert decision.reason == DecisionReason.POLICY_ALLOW
    assert decision.source == fallback.id
    hook.assert_called_once()


@pytest.mark.asyncio
async def test_corrupt_cache_entries_fall_back_to_store(store, settings, principal_id):
    """Test that unreadable cached payloads are read as misses, not errors."""
    _, permission = await make_reader(store, principal_id)
    client = AsyncMock()
    client.get.return_value = "not-json{"
    engine = DecisionEngine(store, DecisionCache(RedisCacheBackend(client)), settings=settings)

    decision = await engine.decide_for(principal_id, "orders", "read")

    assert decision.reason == DecisionReason.RBAC_MATCH
    assert decision.source == permission.id


@pytest.mark.asyncio
async def test_principal_attributes_feed_conditions(store, cache, settings, principal_id):
    """Test that stored attributes are visible to conditions and request keys override them."""
    await store.add_principal(principal_id)
    await PolicyService(store, cache).create_policy(
        "finance-export", "reports", "export", "Allow", 'department == "finance"',
    )
    attributes = PrincipalService(store, cache)
    engine = DecisionEngine(store, cache, settings=settings)
    assert (await engine.decide_for(principal_id, "reports", "export")).reason == DecisionReason.NO_MATCH

    await attributes.set_attribute(principal_id, "department", "finance")
    assert (await engine.decide_for(principal_id, "reports", "export")).reason == DecisionReason.POLICY_ALLOW

    overridden = await engine.decide_for(principal_id, "reports", "export", {"department": "sales"})
    assert overridden.reason == DecisionReason.NO_MATCH

    await attributes.remove_attribute(principal_id, "department")
    assert (await engine.decide_for(principal_id, "reports", "export")).reason == DecisionReason.NO_MATCH


@pytest.mark.asyncio
async def test_negated_condition_on_missing_attribute_does_not_allow(store, settings, principal_id):
    """Test that an Allow written as a negation is not satisfied by an absent attribute."""
    await store.add_principal(principal_id)
    await PolicyService(store).create_policy("daytime", "orders", "write", "Allow", "not (hour >= 18)")
    engine = DecisionEngine(store, settings=settings)

    assert (await engine.decide_for(principal_id, "orders", "write", {})).reason == DecisionReason.NO_MATCH
    assert (await engine.decide_for(principal_id, "orders", "write", {"hour": 9})).reason == DecisionReason.POLICY_ALLOW
