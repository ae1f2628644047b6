"""
Gateway connectors.

`GatewayClient` is the collaborator contract the ingestion layer consumes;
`waha` provides the HTTP implementation for a WAHA gateway.
"""

from .base import GatewayClient
from .http import call_with_retry

__all__ = ["GatewayClient", "call_with_retry"]
