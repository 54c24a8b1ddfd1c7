"""
Unit tests for the safety guard.
"""

from decimal import Decimal

from helpers.fakes import quote
from passerelle.application.lifecycle.safety_guard import (
    BURN_THRESHOLD_USD,
    MINIMUM_DEPOSIT_USD,
    evaluate,
    total_gas_cost,
)
from passerelle.domain.services import RouteStep


class TestSafetyGuard:
    """Fee breakdown and the safe-minimum decision."""

    def test_minimum_sits_above_burn_threshold(self):
        assert MINIMUM_DEPOSIT_USD > BURN_THRESHOLD_USD

    def test_safe_quote_breakdown(self):
        payload = evaluate(
            quote(source_usd="10", destination_usd="9.80", gas_usd="0.05")
        )

        assert payload.is_safe
        assert payload.input_amount == Decimal("10")
        assert payload.net_amount == Decimal("9.80")
        assert payload.gas_cost == Decimal("0.05")
        assert payload.bridge_fee == Decimal("0.15")

    def test_net_exactly_at_minimum_is_safe(self):
        payload = evaluate(quote(destination_usd="5.10"))
        assert payload.is_safe

    def test_net_between_burn_and_minimum_is_unsafe(self):
        payload = evaluate(quote(destination_usd="5.05"))
        assert not payload.is_safe

    def test_custom_minimum(self):
        payload = evaluate(quote(destination_usd="9.80"), minimum_deposit=Decimal("10"))
        assert not payload.is_safe

    def test_gas_falls_back_to_step_sum(self):
        route_quote = quote(
            gas_usd="0",
            steps=[
                RouteStep(tool="swap", gas_cost_usd=Decimal("0.02")),
                RouteStep(tool="bridge", gas_cost_usd=Decimal("0.03")),
            ],
        )

        assert total_gas_cost(route_quote) == Decimal("0.05")

    def test_missing_gas_uses_steps(self):
        route_quote = quote(gas_usd=None, steps=[RouteStep(tool="bridge")])
        assert total_gas_cost(route_quote) == Decimal("0")

    def test_bridge_fee_never_negative(self):
        payload = evaluate(
            quote(source_usd="10", destination_usd="10.20", gas_usd="0.1")
        )
        assert payload.bridge_fee == Decimal("0")

    def test_to_dict_uses_strings(self):
        data = evaluate(quote()).to_dict()
        assert data["net_amount"] == "9.80"
        assert data["is_safe"] is True
