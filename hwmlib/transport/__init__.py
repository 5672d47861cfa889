"""Transports to the devices and the identification commands sent over them"""

from .base import DISCONNECT, UNRESPONSIVE, Transport
from .client import TransportClient
from .tcp_client import SIMULATOR_PATH, TCPTransport

__all__ = [
    "DISCONNECT",
    "UNRESPONSIVE",
    "SIMULATOR_PATH",
    "Transport",
    "TransportClient",
    "TCPTransport",
]
