"""
Credit plan catalog.

Single source of truth for purchasable credit bundles.
Amounts are in major currency units (rupees); the gateway expects minor units.
"""
from dataclasses import dataclass
from typing import Dict, Optional, List


@dataclass(frozen=True)
class PlanDetails:
    """Credits and price of a purchasable plan."""
    credits: int
    amount: int
    currency: str

    @property
    def amount_minor_units(self) -> int:
        return self.amount * 100


PLAN_CATALOG: Dict[str, PlanDetails] = {
    "basic": PlanDetails(credits=100, amount=300, currency="INR"),
    "premium": PlanDetails(credits=300, amount=800, currency="INR"),
}

SUPPORTED_PLANS: List[str] = list(PLAN_CATALOG)


def lookup(plan_name: Optional[str]) -> Optional[PlanDetails]:
    """
    Get the details of a plan.

    Args:
        plan_name: Plan name (basic, premium), case-insensitive

    Returns:
        PlanDetails, or None for an unknown plan
    """
    if not plan_name:
        return None
    return PLAN_CATALOG.get(plan_name.strip().lower())
