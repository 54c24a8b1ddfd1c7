"""Domain service interfaces."""

from passerelle.domain.services.i_chain_reader import (
    IChainReader,
    TransactionVerification,
)
from passerelle.domain.services.i_deposit_event_source import (
    DepositEvent,
    IDepositEventSource,
)
from passerelle.domain.services.i_deposit_executor import IDepositExecutor
from passerelle.domain.services.i_route_engine import (
    IRouteEngine,
    QuoteRequest,
    RouteQuote,
    RouteResult,
    RouteStep,
)
from passerelle.domain.services.i_transfer_notifier import ITransferNotifier

__all__ = [
    "IChainReader",
    "TransactionVerification",
    "DepositEvent",
    "IDepositEventSource",
    "IDepositExecutor",
    "IRouteEngine",
    "QuoteRequest",
    "RouteQuote",
    "RouteResult",
    "RouteStep",
    "ITransferNotifier",
]
