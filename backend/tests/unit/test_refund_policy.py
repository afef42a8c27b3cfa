"""Unit tests for RefundPolicyService calculation logic.

Tests verify the engine correctly calculates refunds from the time left
before check-in:
- Flexible/Moderate: 48h+ full refund, 24-48h 50%, under 24h nothing
- Strict: 7+ days 50%, otherwise nothing
- Partial refundable: the عربون deposit is always kept
- Host cancellations: guest gets everything back, host pays a penalty

Test categories:
- Guest refund tiers and boundaries
- Rounding and invariants
- Arboon (partial refundable) policies
- Host cancellation refund and penalty
- Policy resolution and description
"""

import datetime as dt
from decimal import Decimal

import pytest

from mukhymat.config import RefundPolicyConfig
from mukhymat.models import (
    NON_REFUNDABLE_REASON,
    FullRefundablePolicy,
    PartialRefundablePolicy,
    PolicyTier,
    RefundRule,
)
from mukhymat.services.refund_policy_service import (
    HOST_CANCELLATION_REASON,
    RefundPolicyService,
    calculate_host_penalty,
    calculate_refund,
)

# === Test Configuration ===

NOW = dt.datetime(2026, 11, 1, 12, 0, tzinfo=dt.UTC)


def check_in_after(hours: float) -> dt.datetime:
    return NOW + dt.timedelta(hours=hours)


@pytest.fixture
def engine() -> RefundPolicyService:
    return RefundPolicyService(RefundPolicyConfig())


# === Guest Refund Tiers ===


class TestFlexiblePolicy:
    """Tests for the Flexible preset."""

    def test_full_refund_49_hours_before(self, engine: RefundPolicyService) -> None:
        """49 hours before check-in gets 100% of the amount minus the service fee."""
        result = engine.calculate_refund(Decimal("100"), check_in_after(49), NOW, "flexible")

        assert result.refund_percentage == 100
        assert result.service_fee == Decimal("10.000")
        assert result.refund_amount == Decimal("90.000")
        assert result.policy_tier == PolicyTier.FULL
        assert result.eligibility_reason == "Full refund (48+ hours before check-in)"

    def test_half_refund_30_hours_before(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_refund(Decimal("100"), check_in_after(30), NOW, "flexible")

        assert result.refund_percentage == 50
        assert result.refund_amount == Decimal("45.000")
        assert result.policy_tier == PolicyTier.PARTIAL

    def test_no_refund_10_hours_before(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_refund(Decimal("100"), check_in_after(10), NOW, "flexible")

        assert result.refund_percentage == 0
        assert result.refund_amount == Decimal("0.000")
        assert result.policy_tier == PolicyTier.NONE
        assert result.eligibility_reason == "No refund (cancellation deadline passed)"
        assert not result.is_refundable

    def test_exactly_48_hours_selects_full_tier(self, engine: RefundPolicyService) -> None:
        """Exactly 48 hours is inclusive of the higher tier."""
        result = engine.calculate_refund(Decimal("100"), check_in_after(48), NOW, "flexible")

        assert result.refund_percentage == 100

    def test_exactly_24_hours_selects_half_tier(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_refund(Decimal("100"), check_in_after(24), NOW, "flexible")

        assert result.refund_percentage == 50

    def test_one_second_under_48_hours_drops_tier(self, engine: RefundPolicyService) -> None:
        check_in = NOW + dt.timedelta(hours=48) - dt.timedelta(seconds=1)

        result = engine.calculate_refund(Decimal("100"), check_in, NOW, "flexible")

        assert result.refund_percentage == 50

    def test_check_in_already_passed(self, engine: RefundPolicyService) -> None:
        """A past check-in yields a 0% refund, not an error."""
        result = engine.calculate_refund(Decimal("100"), check_in_after(-5), NOW, "flexible")

        assert result.refund_percentage == 0
        assert result.refund_amount == Decimal("0.000")
        assert result.hours_until_check_in == Decimal("-5.00")

    def test_hours_until_check_in_reported(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_refund(Decimal("100"), check_in_after(49.5), NOW, "flexible")

        assert result.hours_until_check_in == Decimal("49.50")

    def test_refund_deadline_is_tier_cutoff(self, engine: RefundPolicyService) -> None:
        check_in = check_in_after(30)

        result = engine.calculate_refund(Decimal("100"), check_in, NOW, "flexible")

        assert result.refund_deadline == check_in - dt.timedelta(hours=24)

    def test_no_deadline_without_refund(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_refund(Decimal("100"), check_in_after(3), NOW, "flexible")

        assert result.refund_deadline is None


class TestOtherPresets:
    """Tests for Moderate, Strict and full_refundable presets."""

    @pytest.mark.parametrize(
        ("hours", "expected_percentage"),
        [(72, 100), (48, 100), (30, 50), (24, 50), (10, 0)],
    )
    def test_moderate_tiers(
        self, engine: RefundPolicyService, hours: int, expected_percentage: int
    ) -> None:
        result = engine.calculate_refund(Decimal("100"), check_in_after(hours), NOW, "moderate")

        assert result.refund_percentage == expected_percentage

    @pytest.mark.parametrize(
        ("hours", "expected_percentage"),
        [(240, 50), (168, 50), (100, 0), (49, 0)],
    )
    def test_strict_tiers(
        self, engine: RefundPolicyService, hours: int, expected_percentage: int
    ) -> None:
        result = engine.calculate_refund(Decimal("100"), check_in_after(hours), NOW, "strict")

        assert result.refund_percentage == expected_percentage

    def test_full_refundable_cutoff_is_24_hours(self, engine: RefundPolicyService) -> None:
        before = engine.calculate_refund(
            Decimal("100"), check_in_after(24), NOW, "full_refundable"
        )
        after = engine.calculate_refund(
            Decimal("100"), check_in_after(23), NOW, "full_refundable"
        )

        assert before.refund_percentage == 100
        assert after.refund_percentage == 0

    @pytest.mark.parametrize("policy", ["non-refundable", "non_refundable"])
    @pytest.mark.parametrize("hours", [1000, 240, 49, 10, -5])
    def test_non_refundable_never_refunds(
        self, engine: RefundPolicyService, policy: str, hours: int
    ) -> None:
        result = engine.calculate_refund(Decimal("100"), check_in_after(hours), NOW, policy)

        assert result.refund_amount == Decimal("0.000")
        assert result.refund_percentage == 0
        assert result.policy_tier is PolicyTier.NONE
        assert result.refund_deadline is None
        assert result.eligibility_reason == NON_REFUNDABLE_REASON

    def test_moderate_table_configurable_independently(self) -> None:
        """Moderate thresholds can diverge from Flexible through configuration."""
        config = RefundPolicyConfig(
            moderate_rules=(
                RefundRule(hours_before_check_in=Decimal(120), refund_percentage=100,
                           description="Full refund (5+ days before check-in)"),
                RefundRule(hours_before_check_in=Decimal(0), refund_percentage=0,
                           description="No refund"),
            )
        )
        engine = RefundPolicyService(config)

        flexible = engine.calculate_refund(Decimal("100"), check_in_after(72), NOW, "flexible")
        moderate = engine.calculate_refund(Decimal("100"), check_in_after(72), NOW, "moderate")

        assert flexible.refund_percentage == 100
        assert moderate.refund_percentage == 0


# === Rounding and Invariants ===


class TestRoundingAndInvariants:
    """Tests for BHD precision and refund bounds."""

    def test_rounding_keeps_three_decimals(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_refund(Decimal("33.333"), check_in_after(30), NOW, "flexible")

        assert result.service_fee == Decimal("3.333")
        assert result.refund_amount == Decimal("15.000")
        assert result.refund_amount.as_tuple().exponent == -3

    def test_rounding_half_up(self, engine: RefundPolicyService) -> None:
        # fee 1.235; (12.345 - 1.235) * 50% = 5.555
        result = engine.calculate_refund(Decimal("12.345"), check_in_after(30), NOW, "flexible")

        assert result.service_fee == Decimal("1.235")
        assert result.refund_amount == Decimal("5.555")

    def test_configured_currency_exponent(self) -> None:
        engine = RefundPolicyService(RefundPolicyConfig(currency="USD", currency_exponent=2))

        # fee 3.3335 -> 3.33; (33.335 - 3.33) * 50% = 15.0025 -> 15.00
        result = engine.calculate_refund(Decimal("33.335"), check_in_after(30), NOW, "flexible")

        assert result.service_fee == Decimal("3.33")
        assert result.refund_amount == Decimal("15.00")
        assert result.refund_amount.as_tuple().exponent == -2

    def test_float_amount_has_no_float_artefacts(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_refund(33.333, check_in_after(49), NOW, "flexible")

        assert result.original_amount == Decimal("33.333")
        assert result.refund_amount == Decimal("30.000")

    def test_idempotent(self, engine: RefundPolicyService) -> None:
        """Same inputs produce identical results."""
        first = engine.calculate_refund(Decimal("75.5"), check_in_after(30), NOW, "moderate")
        second = engine.calculate_refund(Decimal("75.5"), check_in_after(30), NOW, "moderate")

        assert first == second

    def test_zero_amount_is_not_an_error(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_refund(Decimal("0"), check_in_after(72), NOW, "flexible")

        assert result.refund_amount == Decimal("0.000")
        assert result.refund_percentage == 100

    def test_refund_bounded_for_all_policies(self, engine: RefundPolicyService) -> None:
        """0 <= refund <= amount - service fee for every policy and timing."""
        policies = [
            "flexible",
            "moderate",
            "strict",
            "full_refundable",
            "partial_refundable",
            {"type": "partial_refundable", "arboonPercentage": 50},
        ]
        for amount in (Decimal("0.001"), Decimal("1"), Decimal("33.333"), Decimal("999.999")):
            for hours in (-48, 0, 1, 23.99, 24, 47, 48, 167, 168, 1000):
                for policy in policies:
                    result = engine.calculate_refund(amount, check_in_after(hours), NOW, policy)

                    assert Decimal(0) <= result.refund_amount
                    assert result.refund_amount <= amount - result.service_fee
                    assert 0 <= result.refund_percentage <= 100

    def test_module_level_calculate_refund(self) -> None:
        result = calculate_refund(Decimal("100"), check_in_after(49), NOW, "flexible")

        assert result.refund_amount == Decimal("90.000")


# === Arboon (Partial Refundable) ===


class TestPartialRefundablePolicy:
    """Tests for policies with a non-refundable عربون deposit."""

    def test_arboon_deducted_at_full_tier(self, engine: RefundPolicyService) -> None:
        policy = PartialRefundablePolicy(
            arboon_percentage=20, refund_rules=engine.config.partial_refund_rules
        )

        result = engine.calculate_refund(Decimal("100"), check_in_after(72), NOW, policy)

        assert result.arboon_amount == Decimal("20.000")
        assert result.refund_percentage == 100
        assert result.refund_amount == Decimal("80.000")

    def test_arboon_deducted_before_partial_tier(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_refund(
            Decimal("100"),
            check_in_after(30),
            NOW,
            {"type": "partial_refundable", "arboonPercentage": 30},
        )

        assert result.arboon_amount == Decimal("30.000")
        assert result.refund_amount == Decimal("35.000")

    def test_default_arboon_percentage(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_refund(
            Decimal("100"), check_in_after(72), NOW, "partial_refundable"
        )

        assert result.arboon_amount == Decimal("20.000")

    def test_arboon_below_service_fee_still_keeps_fee(self) -> None:
        config = RefundPolicyConfig(service_fee_percentage=Decimal("15"))
        engine = RefundPolicyService(config)

        result = engine.calculate_refund(
            Decimal("100"),
            check_in_after(72),
            NOW,
            {"type": "partial_refundable", "arboonPercentage": 10},
        )

        assert result.refund_amount == Decimal("85.000")

    def test_custom_rules_from_mapping(self, engine: RefundPolicyService) -> None:
        policy = {
            "type": "partial_refundable",
            "arboonPercentage": 25,
            "refundRules": [
                {"hoursBeforeCheckIn": 0, "refundPercentage": 0, "description": "None"},
                {"hoursBeforeCheckIn": 12, "refundPercentage": 100, "description": "Full"},
            ],
        }

        result = engine.calculate_refund(Decimal("200"), check_in_after(13), NOW, policy)

        assert result.refund_percentage == 100
        assert result.refund_amount == Decimal("150.000")

    @pytest.mark.parametrize("arboon", [5, 55, 22])
    def test_invalid_arboon_percentage_rejected(self, arboon: int) -> None:
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            PartialRefundablePolicy(
                arboon_percentage=arboon,
                refund_rules=(
                    RefundRule(
                        hours_before_check_in=Decimal(0), refund_percentage=0, description="x"
                    ),
                ),
            )


# === Host Cancellation ===


class TestHostCancellation:
    """Tests for host-initiated cancellation."""

    def test_guest_gets_full_refund(self, engine: RefundPolicyService) -> None:
        result = engine.calculate_host_cancellation_refund(Decimal("200"))

        assert result.refund_percentage == 100
        assert result.refund_amount == Decimal("200.000")
        assert result.service_fee == Decimal("0")
        assert result.eligibility_reason == HOST_CANCELLATION_REASON

    def test_penalty_at_maximum_tier_2_hours_before(self, engine: RefundPolicyService) -> None:
        penalty = engine.calculate_host_penalty(Decimal("200"), check_in_after(2), NOW)

        max_tier = max(rule.penalty_percentage for rule in engine.config.host_penalty_rules)
        assert penalty.penalty_percentage == max_tier == 50
        assert penalty.penalty_amount == Decimal("100.000")
        assert "maintain guest trust" in penalty.message

    def test_no_penalty_10_days_before(self, engine: RefundPolicyService) -> None:
        penalty = engine.calculate_host_penalty(Decimal("200"), check_in_after(240), NOW)

        assert penalty.penalty_percentage == 0
        assert penalty.penalty_amount == Decimal("0.000")
        assert "No penalty" in penalty.message

    @pytest.mark.parametrize(
        ("hours", "expected_percentage"),
        [(168, 0), (100, 10), (48, 10), (30, 25), (24, 25), (23, 50), (-3, 50)],
    )
    def test_penalty_tiers(
        self, engine: RefundPolicyService, hours: int, expected_percentage: int
    ) -> None:
        penalty = engine.calculate_host_penalty(Decimal("100"), check_in_after(hours), NOW)

        assert penalty.penalty_percentage == expected_percentage

    def test_within_penalty_period(self, engine: RefundPolicyService) -> None:
        assert engine.is_within_host_penalty_period(check_in_after(100), NOW)
        assert not engine.is_within_host_penalty_period(check_in_after(200), NOW)

    def test_module_level_calculate_host_penalty(self) -> None:
        penalty = calculate_host_penalty(Decimal("80"), check_in_after(30), NOW)

        assert penalty.penalty_amount == Decimal("20.000")


# === Policy Resolution and Description ===


class TestResolvePolicy:
    """Tests for normalizing stored policy representations."""

    def test_none_resolves_to_default_preset(self, engine: RefundPolicyService) -> None:
        assert engine.resolve_policy(None).name == "moderate"

    def test_preset_name_is_case_insensitive(self, engine: RefundPolicyService) -> None:
        assert engine.resolve_policy(" Strict ").name == "strict"

    def test_legacy_refundable_maps_to_flexible(self, engine: RefundPolicyService) -> None:
        assert engine.resolve_policy("refundable").name == "flexible"

    def test_legacy_non_refundable_has_no_refund_tier(self, engine: RefundPolicyService) -> None:
        policy = engine.resolve_policy("non-refundable")

        assert policy.name == "non_refundable"
        assert all(rule.refund_percentage == 0 for rule in policy.refund_rules)

    def test_unknown_name_falls_back_to_default(self, engine: RefundPolicyService) -> None:
        assert engine.resolve_policy("super_flexible").name == "moderate"

    def test_model_passes_through(self, engine: RefundPolicyService) -> None:
        policy = FullRefundablePolicy(refund_rules=engine.config.flexible_rules)

        assert engine.resolve_policy(policy) is policy

    def test_mapping_without_type_is_full_refundable(self, engine: RefundPolicyService) -> None:
        policy = engine.resolve_policy({})

        assert isinstance(policy, FullRefundablePolicy)
        assert policy.refund_rules == engine.config.full_refundable_rules

    def test_rules_sorted_descending(self) -> None:
        policy = FullRefundablePolicy(
            refund_rules=(
                RefundRule(hours_before_check_in=Decimal(0), refund_percentage=0, description="a"),
                RefundRule(hours_before_check_in=Decimal(72), refund_percentage=100, description="b"),
                RefundRule(hours_before_check_in=Decimal(24), refund_percentage=50, description="c"),
            )
        )

        assert [r.hours_before_check_in for r in policy.refund_rules] == [72, 24, 0]


class TestDescribePolicy:
    """Tests for human-readable policy text."""

    def test_flexible_description(self, engine: RefundPolicyService) -> None:
        text = engine.describe_policy("flexible")

        assert text.splitlines() == [
            "Cancellation Policy (Flexible):",
            "• 48 hours or more before check-in: Full refund (100%)",
            "• 24 hours or more before check-in: 50% refund",
            "• Less than 24 hours before check-in: No refund",
            "• After check-in: No refund",
            "• The 10% service fee is non-refundable",
        ]

    def test_strict_description_uses_days(self, engine: RefundPolicyService) -> None:
        text = engine.describe_policy("strict")

        assert "• 7 days or more before check-in: 50% refund" in text

    def test_non_refundable_description(self, engine: RefundPolicyService) -> None:
        assert engine.describe_policy("non-refundable").splitlines() == [
            "Cancellation Policy (Non Refundable):",
            "• No refund at any time",
        ]

    def test_partial_description_mentions_arboon(self, engine: RefundPolicyService) -> None:
        text = engine.describe_policy({"type": "partial_refundable", "arboonPercentage": 30})

        assert "عربون" in text
        assert "30%" in text
