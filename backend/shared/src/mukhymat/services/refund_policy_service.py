"""Refund policy engine for guest and host cancellations.

Computes deterministic refund and penalty breakdowns from a booking amount,
its check-in time, the evaluation time and a cancellation policy. Nothing
here reads the clock or touches storage: callers capture ``now`` once per
cancellation attempt and pass it in.

Guest cancellations (default tier tables, all configurable):
- Flexible / Moderate: 48h+ = 100%, 24-48h = 50%, <24h = 0%
- Strict: 7+ days = 50%, otherwise 0%
- Full refundable: 24h+ = 100%, otherwise 0%
- Partial refundable: the عربون deposit is always kept, the remainder is
  refunded per DEFAULT_PARTIAL_REFUND_RULES
- Non-refundable: nothing is refunded, whatever the timing

The 10% service fee is never refunded. Boundaries are inclusive of the higher
tier. Amounts are rounded half-up to the configured currency precision
(3 decimal places for BHD).
"""

import datetime as dt
from collections.abc import Iterable, Mapping
from decimal import Decimal
from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter

from mukhymat.config import RefundPolicyConfig, get_refund_policy_config
from mukhymat.models.cancellation import (
    NO_REFUND_REASON,
    NON_REFUNDABLE_REASON,
    CancellationPolicy,
    FullRefundablePolicy,
    HostPenaltyRule,
    PartialRefundablePolicy,
    RefundRule,
)
from mukhymat.models.enums import ListingRefundPolicy, PolicyPreset, PolicyTier
from mukhymat.models.refund import HostCancellationPenalty, RefundCalculationResult
from mukhymat.utils.logging import get_logger
from mukhymat.utils.money import (
    ZERO,
    Amount,
    hours_between,
    percentage_of,
    quantize_amount,
    to_decimal,
)

logger = get_logger(__name__)

_policy_adapter: TypeAdapter[CancellationPolicy] = TypeAdapter(CancellationPolicy)

# Legacy listing values written before presets existed
_LEGACY_PRESETS: dict[str, PolicyPreset] = {
    ListingRefundPolicy.REFUNDABLE.value: PolicyPreset.FLEXIBLE,
    ListingRefundPolicy.NON_REFUNDABLE.value: PolicyPreset.NON_REFUNDABLE,
}

HOST_CANCELLATION_REASON = "Full refund (host-initiated cancellation)"

PolicyInput = CancellationPolicy | PolicyPreset | str | Mapping[str, Any] | None


def _match_rule(rules: Iterable[RefundRule], hours: Decimal) -> RefundRule | None:
    """First rule whose threshold the booking still meets (rules sorted descending)."""
    for rule in rules:
        if hours >= rule.hours_before_check_in:
            return rule
    return None


def _tier_for(percentage: int) -> PolicyTier:
    if percentage >= 100:
        return PolicyTier.FULL
    if percentage > 0:
        return PolicyTier.PARTIAL
    return PolicyTier.NONE


def _format_hours(hours: Decimal) -> str:
    if hours >= 168 and hours % 24 == 0:
        return f"{int(hours / 24)} days"
    return f"{hours.normalize():f} hours"


def _refund_label(percentage: int) -> str:
    if percentage >= 100:
        return "Full refund (100%)"
    if percentage <= 0:
        return "No refund"
    return f"{percentage}% refund"


class RefundPolicyService:
    """Calculates refunds and host penalties from a RefundPolicyConfig.

    Usage:
        engine = RefundPolicyService()
        result = engine.calculate_refund(
            original_amount=Decimal("100"),
            check_in_date=check_in,
            evaluation_time=now,
            policy="flexible",
        )
    """

    def __init__(self, config: RefundPolicyConfig | None = None) -> None:
        """Initialize the engine.

        Args:
            config: Tier tables and rates. Defaults to the process-wide config.
        """
        self.config = config or get_refund_policy_config()

    def resolve_policy(self, policy: PolicyInput) -> CancellationPolicy:
        """Normalize any stored policy representation to a CancellationPolicy.

        Accepts a policy model, a preset name ("flexible", "moderate",
        "strict", "full_refundable", "partial_refundable", "non_refundable"),
        a legacy listing value ("refundable", "non-refundable"), or a stored
        mapping such as ``{"type": "partial_refundable", "arboonPercentage": 30}``.
        Missing or unknown names fall back to the configured default preset.

        Raises:
            pydantic.ValidationError: If a mapping describes an invalid policy.
        """
        if isinstance(policy, (FullRefundablePolicy, PartialRefundablePolicy)):
            return policy

        if policy is None:
            return self.config.preset(self.config.default_preset)

        if isinstance(policy, Mapping):
            return self._policy_from_mapping(policy)

        name = policy.value if isinstance(policy, PolicyPreset) else str(policy).strip().lower()
        if name in _LEGACY_PRESETS:
            return self.config.preset(_LEGACY_PRESETS[name])
        try:
            return self.config.preset(name)
        except ValueError:
            logger.warning(
                "Unknown cancellation policy %r, using %s",
                policy,
                self.config.default_preset.value,
            )
            return self.config.preset(self.config.default_preset)

    def _policy_from_mapping(self, data: Mapping[str, Any]) -> CancellationPolicy:
        document = dict(data)
        policy_type = document.get("type", PolicyPreset.FULL_REFUNDABLE.value)
        document["type"] = policy_type

        if "refundRules" not in document and "refund_rules" not in document:
            document["refund_rules"] = (
                self.config.partial_refund_rules
                if policy_type == PolicyPreset.PARTIAL_REFUNDABLE.value
                else self.config.full_refundable_rules
            )
        if (
            policy_type == PolicyPreset.PARTIAL_REFUNDABLE.value
            and "arboonPercentage" not in document
            and "arboon_percentage" not in document
        ):
            document["arboon_percentage"] = self.config.default_arboon_percentage

        return _policy_adapter.validate_python(document)

    def calculate_refund(
        self,
        original_amount: Amount,
        check_in_date: dt.datetime,
        evaluation_time: dt.datetime,
        policy: PolicyInput = None,
    ) -> RefundCalculationResult:
        """Calculate the refund for a guest-initiated cancellation.

        Args:
            original_amount: Guest's total booking price in BHD
            check_in_date: Check-in timestamp
            evaluation_time: When the cancellation is evaluated (normally now)
            policy: Cancellation policy or any form resolve_policy accepts

        Returns:
            RefundCalculationResult with the refund breakdown. Never raises for
            well-formed inputs; a check-in in the past yields a 0% refund.
        """
        amount = to_decimal(original_amount)
        exponent = self.config.currency_exponent
        resolved = self.resolve_policy(policy)
        hours_until_check_in = hours_between(evaluation_time, check_in_date)

        service_fee = max(
            ZERO, percentage_of(amount, self.config.service_fee_percentage, exponent)
        )

        rule = _match_rule(resolved.refund_rules, hours_until_check_in)
        percentage = rule.refund_percentage if rule else 0
        if resolved.name == PolicyPreset.NON_REFUNDABLE.value:
            reason = NON_REFUNDABLE_REASON
        else:
            reason = rule.description if rule else NO_REFUND_REASON

        if isinstance(resolved, PartialRefundablePolicy):
            # The service fee is carried inside the deposit
            arboon_amount = max(
                ZERO, percentage_of(amount, resolved.arboon_percentage, exponent)
            )
            forfeited = max(arboon_amount, service_fee)
        else:
            arboon_amount = quantize_amount(ZERO, exponent)
            forfeited = service_fee

        refund_amount = max(ZERO, percentage_of(amount - forfeited, percentage, exponent))

        refund_deadline = None
        if rule is not None and percentage > 0:
            refund_deadline = check_in_date - dt.timedelta(
                seconds=float(rule.hours_before_check_in * 3600)
            )

        return RefundCalculationResult(
            original_amount=amount,
            service_fee=service_fee,
            arboon_amount=arboon_amount,
            refund_percentage=percentage,
            refund_amount=quantize_amount(refund_amount, exponent),
            hours_until_check_in=hours_until_check_in.quantize(Decimal("0.01")),
            eligibility_reason=reason,
            policy_tier=_tier_for(percentage),
            refund_deadline=refund_deadline,
        )

    def calculate_host_cancellation_refund(self, total_price: Amount) -> RefundCalculationResult:
        """Refund owed to the guest when the host cancels.

        Host cancellations never cost the guest anything: 100% of the total,
        no service fee, no timing rules.
        """
        amount = to_decimal(total_price)
        exponent = self.config.currency_exponent
        return RefundCalculationResult(
            original_amount=amount,
            service_fee=quantize_amount(ZERO, exponent),
            refund_percentage=100,
            refund_amount=quantize_amount(max(ZERO, amount), exponent),
            eligibility_reason=HOST_CANCELLATION_REASON,
            policy_tier=PolicyTier.FULL,
        )

    def _match_penalty_rule(self, hours: Decimal) -> HostPenaltyRule:
        for rule in self.config.host_penalty_rules:
            if hours >= rule.hours_before_check_in:
                return rule
        # Past check-in: the harshest tier applies
        return max(self.config.host_penalty_rules, key=lambda r: r.penalty_percentage)

    def calculate_host_penalty(
        self,
        total_price: Amount,
        check_in_date: dt.datetime,
        evaluation_time: dt.datetime,
    ) -> HostCancellationPenalty:
        """Penalty deducted from the host's payout for a host-initiated cancellation.

        Args:
            total_price: Booking total in BHD
            check_in_date: Check-in timestamp
            evaluation_time: When the cancellation is evaluated

        Returns:
            HostCancellationPenalty with percentage, amount and explanation
        """
        amount = to_decimal(total_price)
        hours = hours_between(evaluation_time, check_in_date)
        rule = self._match_penalty_rule(hours)

        return HostCancellationPenalty(
            penalty_percentage=rule.penalty_percentage,
            penalty_amount=max(
                ZERO,
                percentage_of(amount, rule.penalty_percentage, self.config.currency_exponent),
            ),
            message=rule.message,
            hours_until_check_in=hours.quantize(Decimal("0.01")),
        )

    def is_within_host_penalty_period(
        self,
        check_in_date: dt.datetime,
        evaluation_time: dt.datetime,
    ) -> bool:
        """Whether a host cancelling now would incur any penalty."""
        hours = hours_between(evaluation_time, check_in_date)
        return self._match_penalty_rule(hours).penalty_percentage > 0

    def describe_policy(self, policy: PolicyInput = None) -> str:
        """Human-readable description of a cancellation policy.

        Returns:
            Multi-line policy text for listing pages and emails
        """
        resolved = self.resolve_policy(policy)
        lines = [f"Cancellation Policy ({resolved.name.replace('_', ' ').title()}):"]
        if not any(rule.refund_percentage for rule in resolved.refund_rules):
            lines.append("• No refund at any time")
            return "\n".join(lines)

        previous: Decimal | None = None
        for rule in resolved.refund_rules:
            label = _refund_label(rule.refund_percentage)
            if rule.hours_before_check_in > 0:
                lines.append(
                    f"• {_format_hours(rule.hours_before_check_in)} or more before check-in: {label}"
                )
            elif previous is not None:
                lines.append(f"• Less than {_format_hours(previous)} before check-in: {label}")
            previous = rule.hours_before_check_in

        lowest = resolved.refund_rules[-1].hours_before_check_in
        if lowest > 0:
            lines.append(f"• Less than {_format_hours(lowest)} before check-in: No refund")
        lines.append("• After check-in: No refund")

        if isinstance(resolved, PartialRefundablePolicy):
            lines.append(
                f"• عربون (non-refundable deposit): {resolved.arboon_percentage}% of the booking"
            )
        else:
            fee = self.config.service_fee_percentage.normalize()
            lines.append(f"• The {fee:f}% service fee is non-refundable")

        return "\n".join(lines)


@lru_cache(maxsize=1)
def get_refund_policy_service() -> RefundPolicyService:
    """Get the shared RefundPolicyService built from the process-wide config."""
    return RefundPolicyService()


def calculate_refund(
    original_amount: Amount,
    check_in_date: dt.datetime,
    evaluation_time: dt.datetime,
    policy: PolicyInput = None,
) -> RefundCalculationResult:
    """Module-level shortcut for RefundPolicyService.calculate_refund."""
    return get_refund_policy_service().calculate_refund(
        original_amount, check_in_date, evaluation_time, policy
    )


def calculate_host_cancellation_refund(total_price: Amount) -> RefundCalculationResult:
    """Module-level shortcut for RefundPolicyService.calculate_host_cancellation_refund."""
    return get_refund_policy_service().calculate_host_cancellation_refund(total_price)


def calculate_host_penalty(
    total_price: Amount,
    check_in_date: dt.datetime,
    evaluation_time: dt.datetime,
) -> HostCancellationPenalty:
    """Module-level shortcut for RefundPolicyService.calculate_host_penalty."""
    return get_refund_policy_service().calculate_host_penalty(
        total_price, check_in_date, evaluation_time
    )
