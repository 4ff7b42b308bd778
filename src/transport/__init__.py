"""Outbound message transport — protocol, address rules, WhatsApp channel."""

from src.transport.address import normalize_address
from src.transport.base import MessageTransport
from src.transport.green_api import GreenApiClient
from src.transport.whatsapp import WhatsAppChannel

__all__ = [
    "GreenApiClient",
    "MessageTransport",
    "WhatsAppChannel",
    "normalize_address",
]
