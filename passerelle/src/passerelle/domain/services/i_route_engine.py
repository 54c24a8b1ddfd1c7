"""
Route engine interface.

The bridge-routing engine is an external black box.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional


@dataclass(frozen=True)
class QuoteRequest:
    """Caller's request for a bridge route."""

    user_address: str
    source_chain: str
    source_token: str
    source_amount: str
    destination_address: str


@dataclass(frozen=True)
class RouteStep:
    """One hop of a route with its own gas estimate."""

    tool: str
    gas_cost_usd: Decimal = Decimal("0")


@dataclass(frozen=True)
class RouteQuote:
    """Priced route produced by the engine."""

    source_amount: str
    destination_amount: str
    source_amount_usd: Decimal
    destination_amount_usd: Decimal
    gas_cost_usd: Optional[Decimal] = None
    steps: List[RouteStep] = field(default_factory=list)
    route_id: Optional[str] = None


@dataclass(frozen=True)
class RouteResult:
    """Outcome reported by the engine after executing a route."""

    tx_hash: str
    destination_amount: int


class IRouteEngine(ABC):
    """Abstract interface for bridge quoting and execution."""

    @abstractmethod
    async def get_quote(self, request: QuoteRequest) -> RouteQuote:
        """
        Get a priced route.

        Raises:
            BridgeFailedError: If no route is available
        """

    @abstractmethod
    async def execute_route(self, quote: RouteQuote) -> RouteResult:
        """
        Execute the route and wait for it to complete.

        Raises:
            BridgeFailedError: If the route fails
        """
