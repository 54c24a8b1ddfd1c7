"""
RecoveryAction value object - what the caller should do after a failure.
"""

from enum import Enum


class RecoveryAction(str, Enum):
    """Recovery offered for each lifecycle error."""

    TRY_AGAIN = "try_again"
    RETRY_DEPOSIT = "retry_deposit"
    GET_GAS_THEN_RETRY_DEPOSIT = "get_gas_then_retry_deposit"
    INCREASE_AMOUNT = "increase_amount"
