"""Data models for pystars."""

from .message import StarsMessage
from .connection import ConnectionConfig, ConnectionState, ConnectionStatus

__all__ = [
    'StarsMessage',
    'ConnectionConfig',
    'ConnectionState',
    'ConnectionStatus',
]
