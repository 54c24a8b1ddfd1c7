"""Application use cases."""

from passerelle.application.use_cases.confirm_bridge_success import (
    ConfirmBridgeSuccess,
)
from passerelle.application.use_cases.confirm_deposit_success import (
    ConfirmDepositSuccess,
)
from passerelle.application.use_cases.create_transfer import CreateTransfer
from passerelle.application.use_cases.get_recent_transfers import (
    GetRecentTransfers,
)
from passerelle.application.use_cases.get_transfer import GetTransfer
from passerelle.application.use_cases.get_transfer_stats import GetTransferStats
from passerelle.application.use_cases.list_user_transfers import (
    ListUserTransfers,
    UserTransfersResult,
)
from passerelle.application.use_cases.update_transfer_status import (
    UpdateTransferStatus,
)
from passerelle.application.use_cases.verify_transaction import VerifyTransaction

__all__ = [
    "ConfirmBridgeSuccess",
    "ConfirmDepositSuccess",
    "CreateTransfer",
    "GetRecentTransfers",
    "GetTransfer",
    "GetTransferStats",
    "ListUserTransfers",
    "UserTransfersResult",
    "UpdateTransferStatus",
    "VerifyTransaction",
]
