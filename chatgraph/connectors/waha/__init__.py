"""WAHA (WhatsApp HTTP API) gateway connector."""

from .client import WahaGatewayClient

__all__ = ["WahaGatewayClient"]
