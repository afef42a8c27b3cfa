"""Runtime configuration for the refund policy engine.

Refund tiers, the service-fee rate and the host-penalty table live in one
``RefundPolicyConfig`` structure so the policy can be audited and tested on
its own. By default the built-in tables are used; set
``REFUND_POLICY_SOURCE=ssm`` to load a JSON override from
``/mukhymat/{ENVIRONMENT}/refund_policy`` in SSM Parameter Store.

Environment variables:
    ENVIRONMENT                 dev | staging | prod (default: dev)
    REFUND_POLICY_SOURCE        default | ssm (default: default)
    REFUND_SERVICE_FEE_PERCENT  overrides service_fee_percentage
"""

import logging
import os
from decimal import Decimal
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from mukhymat.models.cancellation import (
    DEFAULT_ARBOON_PERCENTAGE,
    DEFAULT_FLEXIBLE_RULES,
    DEFAULT_FULL_REFUNDABLE_RULES,
    DEFAULT_HOST_PENALTY_RULES,
    DEFAULT_MODERATE_RULES,
    DEFAULT_PARTIAL_REFUND_RULES,
    DEFAULT_STRICT_RULES,
    NON_REFUNDABLE_RULES,
    FullRefundablePolicy,
    HostPenaltyRule,
    PartialRefundablePolicy,
    RefundRule,
    sort_rules,
)
from mukhymat.models.enums import PolicyPreset
from mukhymat.utils.money import CURRENCY, CURRENCY_EXPONENT

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the refund policy configuration is invalid."""

    pass


def get_environment() -> str:
    """Current deployment environment name."""
    return os.environ.get("ENVIRONMENT", "dev")


def parameter_path(name: str, environment: str | None = None) -> str:
    """Build an SSM parameter path for this service.

    Args:
        name: Parameter name relative to the environment (e.g. "stripe/secret_key")
        environment: Environment override; defaults to ENVIRONMENT

    Returns:
        Full path like /mukhymat/dev/stripe/secret_key
    """
    return f"/mukhymat/{environment or get_environment()}/{name}"


class RefundPolicyConfig(BaseModel):
    """Tier tables and rates used by the refund policy engine."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    service_fee_percentage: Decimal = Field(default=Decimal("10"), ge=0, le=100)
    currency: str = CURRENCY
    currency_exponent: int = Field(default=CURRENCY_EXPONENT, ge=0, le=4)
    default_preset: PolicyPreset = PolicyPreset.MODERATE
    default_arboon_percentage: int = Field(
        default=DEFAULT_ARBOON_PERCENTAGE, ge=10, le=50, multiple_of=5
    )

    flexible_rules: tuple[RefundRule, ...] = Field(default=DEFAULT_FLEXIBLE_RULES, min_length=1)
    moderate_rules: tuple[RefundRule, ...] = Field(default=DEFAULT_MODERATE_RULES, min_length=1)
    strict_rules: tuple[RefundRule, ...] = Field(default=DEFAULT_STRICT_RULES, min_length=1)
    full_refundable_rules: tuple[RefundRule, ...] = Field(
        default=DEFAULT_FULL_REFUNDABLE_RULES, min_length=1
    )
    partial_refund_rules: tuple[RefundRule, ...] = Field(
        default=DEFAULT_PARTIAL_REFUND_RULES, min_length=1
    )
    host_penalty_rules: tuple[HostPenaltyRule, ...] = Field(
        default=DEFAULT_HOST_PENALTY_RULES, min_length=1
    )

    @field_validator(
        "flexible_rules",
        "moderate_rules",
        "strict_rules",
        "full_refundable_rules",
        "partial_refund_rules",
        "host_penalty_rules",
    )
    @classmethod
    def _order_rules(cls, rules: tuple[Any, ...]) -> tuple[Any, ...]:
        return sort_rules(rules)

    def preset(
        self,
        preset: PolicyPreset | str,
        *,
        arboon_percentage: int | None = None,
    ) -> FullRefundablePolicy | PartialRefundablePolicy:
        """Build a named policy preset from this configuration.

        Args:
            preset: Preset name
            arboon_percentage: Deposit percentage for partial_refundable

        Returns:
            The policy with this configuration's tier table.

        Raises:
            ValueError: If the preset name is unknown.
        """
        preset = PolicyPreset(preset)
        if preset is PolicyPreset.PARTIAL_REFUNDABLE:
            return PartialRefundablePolicy(
                arboon_percentage=(
                    self.default_arboon_percentage
                    if arboon_percentage is None
                    else arboon_percentage
                ),
                refund_rules=self.partial_refund_rules,
            )

        rules = {
            PolicyPreset.FLEXIBLE: self.flexible_rules,
            PolicyPreset.MODERATE: self.moderate_rules,
            PolicyPreset.STRICT: self.strict_rules,
            PolicyPreset.FULL_REFUNDABLE: self.full_refundable_rules,
            PolicyPreset.NON_REFUNDABLE: NON_REFUNDABLE_RULES,
        }[preset]
        return FullRefundablePolicy(name=preset.value, refund_rules=rules)


def load_refund_policy_config(environment: str | None = None) -> RefundPolicyConfig:
    """Load the refund policy configuration.

    Reads the SSM document when REFUND_POLICY_SOURCE=ssm, then applies
    REFUND_SERVICE_FEE_PERCENT if set.

    Raises:
        SSMServiceError: If the SSM document cannot be read.
        ConfigurationError: If the resulting configuration is invalid.
    """
    from mukhymat.services.ssm_service import get_ssm_service

    source = os.environ.get("REFUND_POLICY_SOURCE", "default").lower()
    overrides: dict[str, Any] = {}

    if source == "ssm":
        path = parameter_path("refund_policy", environment)
        overrides.update(get_ssm_service().get_json_parameter(path))
        logger.info("Loaded refund policy overrides from %s", path)

    fee = os.environ.get("REFUND_SERVICE_FEE_PERCENT")
    if fee:
        overrides.pop("serviceFeePercentage", None)
        overrides["service_fee_percentage"] = fee

    try:
        return RefundPolicyConfig.model_validate(overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid refund policy configuration: {e}") from e


@lru_cache(maxsize=1)
def get_refund_policy_config() -> RefundPolicyConfig:
    """Get the process-wide refund policy configuration."""
    return load_refund_policy_config()
