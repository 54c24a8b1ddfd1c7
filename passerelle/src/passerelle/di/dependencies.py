"""
FastAPI dependency injection.

Provides dependencies for FastAPI routes using the application's DI
container.
"""

from fastapi import Depends, Request

from passerelle.application.use_cases import (
    ConfirmBridgeSuccess,
    ConfirmDepositSuccess,
    CreateTransfer,
    GetRecentTransfers,
    GetTransfer,
    GetTransferStats,
    ListUserTransfers,
    UpdateTransferStatus,
    VerifyTransaction,
)
from passerelle.di.container import DIContainer


def get_container(request: Request) -> DIContainer:
    """Get the container built for this application."""
    return request.app.state.container


# ================================================================
# Use Case Dependencies
# ================================================================


def get_create_transfer(
    container: DIContainer = Depends(get_container),
) -> CreateTransfer:
    return container.get_create_transfer()


def get_get_transfer(
    container: DIContainer = Depends(get_container),
) -> GetTransfer:
    return container.get_get_transfer()


def get_list_user_transfers(
    container: DIContainer = Depends(get_container),
) -> ListUserTransfers:
    return container.get_list_user_transfers()


def get_update_transfer_status(
    container: DIContainer = Depends(get_container),
) -> UpdateTransferStatus:
    return container.get_update_transfer_status()


def get_confirm_bridge_success(
    container: DIContainer = Depends(get_container),
) -> ConfirmBridgeSuccess:
    return container.get_confirm_bridge_success()


def get_confirm_deposit_success(
    container: DIContainer = Depends(get_container),
) -> ConfirmDepositSuccess:
    return container.get_confirm_deposit_success()


def get_get_transfer_stats(
    container: DIContainer = Depends(get_container),
) -> GetTransferStats:
    return container.get_transfer_stats()


def get_get_recent_transfers(
    container: DIContainer = Depends(get_container),
) -> GetRecentTransfers:
    return container.get_recent_transfers()


def get_verify_transaction(
    container: DIContainer = Depends(get_container),
) -> VerifyTransaction:
    return container.get_verify_transaction()
