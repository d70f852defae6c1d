"""Tests for spin configuration checks and rigging reconciliation."""

import pytest

from core.constants import RiggingStatus, SpinMode
from core.exceptions import RiggingConfigError, ValidationError
from services.entry_registry import Entry, EntryRegistry, IdentityTarget
from services.rigging import (
    RiggingReconciler,
    SpinConfig,
    target_identity_key,
    validate_assignment,
)


class StubFallback:
    """Records calls and answers with a fixed identity."""

    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    async def lookup(self, wheel_id, spin_number, target):
        self.calls.append((wheel_id, spin_number, target))
        if self.error is not None:
            raise self.error
        return self.answer


def _fixed(spin_number, ticket=None, name=None):
    return SpinConfig(spin_number, SpinMode.FIXED, IdentityTarget(ticket, name))


@pytest.fixture
def registry():
    return EntryRegistry([
        Entry("Sam", "T1"),
        Entry("Sam", "T2"),
        Entry("Ali"),
        Entry("Diya (1004)", "1004"),
    ])


def test_random_config_is_not_rigged():
    assert not SpinConfig(1).is_rigged
    assert not SpinConfig(1, SpinMode.FIXED).is_rigged
    assert not _fixed(1).is_rigged
    assert _fixed(1, name="Ali").is_rigged


def test_target_identity_key_prefers_ticket():
    assert target_identity_key(IdentityTarget("T1", "Sam")) == "ticket:T1"
    assert target_identity_key(IdentityTarget(None, " SAM ")) == "name:sam"
    assert target_identity_key(IdentityTarget()) is None


def test_validate_assignment_returns_normalized_spin():
    assert validate_assignment("3", IdentityTarget("T1"), spin_count=1, existing=[]) == 3


def test_validate_assignment_rejects_past_spins():
    with pytest.raises(RiggingConfigError):
        validate_assignment(2, IdentityTarget("T1"), spin_count=2, existing=[])


def test_validate_assignment_rejects_empty_target():
    with pytest.raises(RiggingConfigError):
        validate_assignment(3, IdentityTarget(" ", ""), spin_count=0, existing=[])


def test_validate_assignment_rejects_bad_spin_number():
    with pytest.raises(ValidationError):
        validate_assignment("zero", IdentityTarget("T1"), spin_count=0, existing=[])


def test_same_entry_cannot_win_two_spins():
    existing = [_fixed(4, ticket="T1")]
    with pytest.raises(RiggingConfigError):
        validate_assignment(5, IdentityTarget("T1", "Sam"), spin_count=0, existing=existing)


def test_reassigning_same_spin_is_allowed():
    existing = [_fixed(4, ticket="T1")]
    assert validate_assignment(4, IdentityTarget("T1"), spin_count=0, existing=existing) == 4


@pytest.mark.asyncio
async def test_reconcile_not_rigged(registry):
    outcome = await RiggingReconciler().reconcile(registry, SpinConfig(1))
    assert outcome.status is RiggingStatus.NOT_RIGGED
    assert outcome.target_index is None

    outcome = await RiggingReconciler().reconcile(registry, None)
    assert outcome.status is RiggingStatus.NOT_RIGGED


@pytest.mark.asyncio
async def test_reconcile_hits_by_ticket(registry):
    outcome = await RiggingReconciler().reconcile(registry, _fixed(1, ticket="T2", name="Sam"))
    assert outcome.status is RiggingStatus.HIT
    assert outcome.target_index == 1
    assert not outcome.used_fallback


@pytest.mark.asyncio
async def test_reconcile_misses_on_shared_name(registry):
    outcome = await RiggingReconciler().reconcile(registry, _fixed(1, name="Sam"))
    assert outcome.status is RiggingStatus.MISSED_AMBIGUOUS
    assert outcome.target_index is None


@pytest.mark.asyncio
async def test_reconcile_misses_on_unknown_ticket(registry):
    outcome = await RiggingReconciler().reconcile(registry, _fixed(1, ticket="T404"))
    assert outcome.status is RiggingStatus.MISSED_NOT_FOUND


@pytest.mark.asyncio
async def test_fallback_is_asked_once_after_local_miss(registry):
    fallback = StubFallback(answer=IdentityTarget("1004"))
    reconciler = RiggingReconciler(fallback=fallback)

    outcome = await reconciler.reconcile(registry, _fixed(2, name="Sam"), wheel_id="w1")

    assert outcome.status is RiggingStatus.HIT
    assert outcome.target_index == 3
    assert outcome.used_fallback
    assert len(fallback.calls) == 1
    assert fallback.calls[0][:2] == ("w1", 2)


@pytest.mark.asyncio
async def test_fallback_answer_may_be_a_unique_name(registry):
    reconciler = RiggingReconciler(fallback=StubFallback(answer=IdentityTarget("Ali")))
    outcome = await reconciler.reconcile(registry, _fixed(2, ticket="T404"))
    assert outcome.target_index == 2


@pytest.mark.asyncio
async def test_fallback_not_asked_when_local_hit(registry):
    fallback = StubFallback(answer=IdentityTarget("1004"))
    outcome = await RiggingReconciler(fallback=fallback).reconcile(registry, _fixed(1, ticket="T1"))
    assert outcome.target_index == 0
    assert fallback.calls == []


@pytest.mark.asyncio
async def test_failing_fallback_keeps_local_miss(registry):
    fallback = StubFallback(error=RuntimeError("down"))
    outcome = await RiggingReconciler(fallback=fallback).reconcile(registry, _fixed(1, name="Sam"))
    assert outcome.status is RiggingStatus.MISSED_AMBIGUOUS
    assert len(fallback.calls) == 1


@pytest.mark.asyncio
async def test_unusable_fallback_answer_keeps_local_miss(registry):
    fallback = StubFallback(answer=IdentityTarget("Sam"))
    outcome = await RiggingReconciler(fallback=fallback).reconcile(registry, _fixed(1, ticket="T9"))
    assert outcome.status is RiggingStatus.MISSED_NOT_FOUND
    assert not outcome.used_fallback
