"""
Transfer API notifications.
"""

from passerelle.infrastructure.notifications.transfer_api_client import (
    TransferApiClient,
)

__all__ = ["TransferApiClient"]
