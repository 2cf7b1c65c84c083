from datetime import timedelta

import pytest

from codegolden.core.errors import InvalidTierError
from codegolden.features.access.gate import FEATURE_TIERS, AccessGate, AccessResult
from codegolden.models.plan import Tier


@pytest.fixture
def gate(ledger):
    return AccessGate(ledger)


def test_free_user_denied_pro(gate):
    decision = gate.check_access("ada@example.com", Tier.PRO)
    assert decision.result == AccessResult.DENIED
    assert not decision.allowed
    assert decision.effective_tier == Tier.FREE
    assert decision.required_tier == Tier.PRO


def test_free_feature_allowed_for_everyone(gate):
    assert gate.check_access("ada@example.com", "free").allowed


def test_allowed_right_after_approval(gate, ledger):
    ledger.submit_upgrade("ada@example.com", "pro")
    ledger.approve("ada@example.com", "pro")
    assert gate.check_access("ada@example.com", Tier.PRO).allowed


def test_higher_tier_satisfies_lower_requirement(gate, ledger):
    ledger.submit_upgrade("ada@example.com", "pro")
    ledger.approve("ada@example.com", "pro")
    assert gate.check_access("ada@example.com", Tier.PLUS).allowed


def test_plus_does_not_satisfy_pro(gate, ledger):
    ledger.submit_upgrade("ada@example.com", "pro")
    ledger.approve("ada@example.com", "plus")
    decision = gate.check_access("ada@example.com", Tier.PRO)
    assert decision.result == AccessResult.DENIED
    assert decision.effective_tier == Tier.PLUS


def test_denied_once_plan_lapses(gate, ledger, clock):
    ledger.submit_upgrade("ada@example.com", "plus")
    ledger.approve("ada@example.com", "plus")
    clock.advance(days=30)
    decision = gate.check_access("ada@example.com", Tier.PLUS)
    assert not decision.allowed
    assert decision.effective_tier == Tier.FREE


def test_unknown_required_tier_rejected(gate):
    with pytest.raises(InvalidTierError):
        gate.check_access("ada@example.com", "platinum")


def test_feature_tier_table():
    assert FEATURE_TIERS["playground"] == Tier.FREE
    assert FEATURE_TIERS["advanced"] == Tier.PLUS
    assert FEATURE_TIERS["deepseek"] == Tier.PLUS
    assert FEATURE_TIERS["ultra"] == Tier.PRO
    assert FEATURE_TIERS["marketplace"] == Tier.PRO
