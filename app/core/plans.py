"""Subscription plans and their daily quotas.

The registry is built once from settings and handed to the services that
need it. It is never mutated afterwards, so concurrent reads need no locking.
"""
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from pydantic import BaseModel, Field

from app.core.config import Settings, get_settings

FREE_PLAN_ID = "free"


class Plan(BaseModel):
    """A subscription plan."""
    id: str
    name: str
    daily_limit: int = Field(..., gt=0)
    price_monthly: float = 0.0
    currency: str = "USD"
    billing_price_ref: Optional[str] = None
    features: Tuple[str, ...] = ()

    class Config:
        frozen = True

    @property
    def has_billing_price(self) -> bool:
        return bool(self.billing_price_ref)


class PlanRegistry:
    """Read-only lookup of plans by id or Stripe price id."""

    def __init__(self, plans: Iterable[Plan], free_plan_id: str = FREE_PLAN_ID):
        ordered = tuple(plans)
        by_id = {plan.id: plan for plan in ordered}
        if free_plan_id not in by_id:
            raise ValueError(f"Plan registry requires a '{free_plan_id}' plan")

        self._plans = ordered
        self._by_id: Mapping[str, Plan] = MappingProxyType(by_id)
        self._by_price_ref: Mapping[str, Plan] = MappingProxyType({
            plan.billing_price_ref: plan for plan in ordered if plan.billing_price_ref
        })
        self._free = by_id[free_plan_id]

    @property
    def free(self) -> Plan:
        return self._free

    def resolve(self, plan_id: Optional[str]) -> Plan:
        """Return the plan for ``plan_id``, or the free plan when it is unknown."""
        if not plan_id:
            return self._free
        return self._by_id.get(plan_id, self._free)

    def resolve_by_billing_price_ref(self, price_ref: Optional[str]) -> Plan:
        """Return the plan billed through ``price_ref``, or the free plan."""
        if not price_ref:
            return self._free
        return self._by_price_ref.get(price_ref, self._free)

    def all(self) -> Tuple[Plan, ...]:
        return self._plans

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlanRegistry":
        return cls([
            Plan(
                id=FREE_PLAN_ID,
                name="Free",
                daily_limit=5,
                price_monthly=0,
                features=(
                    "5 responses per day",
                    "All languages supported",
                    "Basic tones",
                ),
            ),
            Plan(
                id="basic",
                name="Basic",
                daily_limit=25,
                price_monthly=4.99,
                billing_price_ref=settings.STRIPE_BASIC_PRICE_ID,
                features=(
                    "25 responses per day",
                    "All languages supported",
                    "All tones available",
                    "Email support",
                ),
            ),
            Plan(
                id="premium",
                name="Premium",
                daily_limit=100,
                price_monthly=14.99,
                billing_price_ref=settings.STRIPE_PREMIUM_PRICE_ID,
                features=(
                    "100 responses per day",
                    "All languages supported",
                    "All tones available",
                    "Priority support",
                    "Advanced analytics",
                ),
            ),
            Plan(
                id="enterprise",
                name="Enterprise",
                daily_limit=500,
                price_monthly=49.99,
                billing_price_ref=settings.STRIPE_ENTERPRISE_PRICE_ID,
                features=(
                    "500 responses per day",
                    "All languages supported",
                    "All tones available",
                    "24/7 priority support",
                    "Custom integrations",
                    "Dedicated account manager",
                ),
            ),
        ])


@lru_cache()
def get_plan_registry() -> PlanRegistry:
    """Get the process-wide plan registry."""
    return PlanRegistry.from_settings(get_settings())
