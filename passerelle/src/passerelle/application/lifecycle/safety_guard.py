"""
Safety guard - decides whether a quoted net amount is safe to deposit.

The trading venue destroys deposits below its burn threshold, so the
minimum keeps a buffer above it.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from passerelle.domain.services.i_route_engine import RouteQuote

BURN_THRESHOLD_USD = Decimal("5")
MINIMUM_DEPOSIT_USD = Decimal("5.10")
MAXIMUM_DEPOSIT_USD = Decimal("100000")
GAS_REFUEL_AMOUNT = Decimal("1.0")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class SafetyGuardPayload:
    """Fee breakdown shown before the bridge step is dispatched."""

    input_amount: Decimal
    bridge_fee: Decimal
    gas_cost: Decimal
    net_amount: Decimal
    is_safe: bool

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "input_amount": str(self.input_amount),
            "bridge_fee": str(self.bridge_fee),
            "gas_cost": str(self.gas_cost),
            "net_amount": str(self.net_amount),
            "is_safe": self.is_safe,
        }


def total_gas_cost(quote: RouteQuote) -> Decimal:
    """Quote-level gas cost when positive, else the sum over steps."""
    if quote.gas_cost_usd is not None and quote.gas_cost_usd > _ZERO:
        return quote.gas_cost_usd
    return sum((step.gas_cost_usd for step in quote.steps), _ZERO)


def evaluate(
    quote: RouteQuote,
    minimum_deposit: Optional[Decimal] = None,
) -> SafetyGuardPayload:
    """
    Evaluate a route quote.

    Args:
        quote: Priced route from the engine
        minimum_deposit: Override for MINIMUM_DEPOSIT_USD

    Returns:
        SafetyGuardPayload with is_safe = net >= minimum
    """
    minimum = MINIMUM_DEPOSIT_USD if minimum_deposit is None else minimum_deposit
    net_amount = quote.destination_amount_usd
    gas_cost = total_gas_cost(quote)
    bridge_fee = max(_ZERO, quote.source_amount_usd - net_amount - gas_cost)

    return SafetyGuardPayload(
        input_amount=quote.source_amount_usd,
        bridge_fee=bridge_fee,
        gas_cost=gas_cost,
        net_amount=net_amount,
        is_safe=net_amount >= minimum,
    )
