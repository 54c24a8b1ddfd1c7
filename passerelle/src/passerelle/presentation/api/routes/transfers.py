"""
Transfer API routes.

Records transfers, accepts lifecycle webhooks and serves history,
statistics and on-chain verification.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

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
from passerelle.di.dependencies import (
    get_confirm_bridge_success,
    get_confirm_deposit_success,
    get_create_transfer,
    get_get_recent_transfers,
    get_get_transfer,
    get_get_transfer_stats,
    get_list_user_transfers,
    get_update_transfer_status,
    get_verify_transaction,
)
from passerelle.infrastructure.monitoring import get_logger
from passerelle.presentation.api.middleware.rate_limit_middleware import (
    strict_rate_limit,
    transfer_rate_limit,
    wallet_rate_limit,
)
from passerelle.presentation.schemas.transfer_schemas import (
    CreateTransferRequest,
    StatsResponse,
    TransferResponse,
    UpdateStatusRequest,
    UserTransfersResponse,
    VerificationResponse,
    VerifyRequest,
    WebhookRequest,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/transfers", tags=["transfers"])


# ================================================================
# Create Transfer
# ================================================================


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a new transfer",
    dependencies=[Depends(transfer_rate_limit), Depends(wallet_rate_limit)],
)
async def create_transfer(
    request: CreateTransferRequest,
    use_case: CreateTransfer = Depends(get_create_transfer),
):
    """Record a transfer in PENDING before any transaction is sent."""
    record = await use_case.execute(
        user_address=request.user_address,
        source_chain=request.source_chain,
        source_token=request.source_token,
        source_amount=request.source_amount,
        expected_destination_amount=request.expected_destination_amount,
    )
    return TransferResponse.from_entity(record)


# ================================================================
# Queries
# ================================================================


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Aggregate transfer statistics",
)
async def get_stats(
    use_case: GetTransferStats = Depends(get_get_transfer_stats),
):
    stats = await use_case.execute()
    return StatsResponse.from_stats(stats)


@router.get(
    "/recent",
    response_model=List[TransferResponse],
    summary="Most recent transfers",
)
async def get_recent(
    limit: int = Query(default=50, description="Maximum records (capped at 100)"),
    use_case: GetRecentTransfers = Depends(get_get_recent_transfers),
):
    records = await use_case.execute(limit=limit)
    return [TransferResponse.from_entity(record) for record in records]


@router.get(
    "/user/{address}",
    response_model=UserTransfersResponse,
    summary="Transfers for a wallet",
    dependencies=[Depends(wallet_rate_limit)],
)
async def get_user_transfers(
    address: str,
    page: int = Query(default=1, description="1-based page number"),
    limit: int = Query(default=20, description="Page size (capped at 100)"),
    use_case: ListUserTransfers = Depends(get_list_user_transfers),
):
    """Paginated history, newest first."""
    result = await use_case.execute(user_address=address, page=page, limit=limit)
    return UserTransfersResponse(
        transfers=[TransferResponse.from_entity(r) for r in result.transfers],
        total=result.total,
        page=result.page,
        limit=result.limit,
    )


# ================================================================
# Webhooks
# ================================================================


@router.post(
    "/bridge-success",
    response_model=TransferResponse,
    summary="Bridge leg confirmed",
    dependencies=[Depends(strict_rate_limit)],
)
async def bridge_success(
    request: WebhookRequest,
    use_case: ConfirmBridgeSuccess = Depends(get_confirm_bridge_success),
):
    """
    Verify the bridge transaction on-chain and move the transfer to
    DEPOSITING with the realized amount.
    """
    record = await use_case.execute(
        transfer_id=request.transfer_id,
        tx_hash=request.tx_hash,
        amount=int(request.amount),
    )
    return TransferResponse.from_entity(record)


@router.post(
    "/l1-success",
    response_model=TransferResponse,
    summary="Deposit to the trading venue confirmed",
    dependencies=[Depends(strict_rate_limit)],
)
async def l1_success(
    request: WebhookRequest,
    use_case: ConfirmDepositSuccess = Depends(get_confirm_deposit_success),
):
    """Verify the deposit transaction on-chain and complete the transfer."""
    record = await use_case.execute(
        transfer_id=request.transfer_id,
        tx_hash=request.tx_hash,
        amount=int(request.amount),
    )
    return TransferResponse.from_entity(record)


@router.post(
    "/verify",
    response_model=VerificationResponse,
    summary="Verify a stablecoin transfer transaction",
)
async def verify_transaction(
    request: VerifyRequest,
    use_case: VerifyTransaction = Depends(get_verify_transaction),
):
    result = await use_case.execute(
        tx_hash=request.tx_hash,
        expected_amount=(
            int(request.expected_amount)
            if request.expected_amount is not None
            else None
        ),
        expected_recipient=request.expected_recipient,
    )
    return VerificationResponse.from_result(result)


# ================================================================
# Single Transfer
# ================================================================


@router.get(
    "/{transfer_id}",
    response_model=TransferResponse,
    summary="Get transfer by ID",
)
async def get_transfer(
    transfer_id: UUID,
    use_case: GetTransfer = Depends(get_get_transfer),
):
    record = await use_case.execute(transfer_id)
    return TransferResponse.from_entity(record)


@router.patch(
    "/{transfer_id}/status",
    response_model=TransferResponse,
    summary="Advance transfer status",
    dependencies=[Depends(strict_rate_limit)],
)
async def update_status(
    transfer_id: UUID,
    request: UpdateStatusRequest,
    use_case: UpdateTransferStatus = Depends(get_update_transfer_status),
):
    """
    Forward-only status update.

    A backward move is rejected with 409; a terminal record is returned
    unchanged.
    """
    record = await use_case.execute(
        transfer_id=transfer_id,
        status=request.status,
        tx_hash=request.tx_hash,
        error_message=request.error_message,
    )
    return TransferResponse.from_entity(record)
