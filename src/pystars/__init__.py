# pystars package
"""Client library for the STARS line-oriented message protocol."""

__version__ = "0.1.0"

from .core.errors import (
    StarsError,
    ConfigError,
    ConnectionError,
    ProtocolError,
    TimeoutError,
    ReceiveError,
    TransmitError,
)
from .core.frame_decoder import FrameDecoder, LegacyFrameDecoder, parse_line
from .core.stars_connection import StarsConnection
from .models.connection import ConnectionConfig
from .models.message import StarsMessage

__all__ = [
    "StarsConnection",
    "StarsMessage",
    "ConnectionConfig",
    "FrameDecoder",
    "LegacyFrameDecoder",
    "parse_line",
    "StarsError",
    "ConfigError",
    "ConnectionError",
    "ProtocolError",
    "TimeoutError",
    "ReceiveError",
    "TransmitError",
]
