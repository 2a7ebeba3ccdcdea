"""
Core layer for STARS communication.

This package contains the wire framing, connection management and the
background reader used in callback mode.
"""

from .frame_decoder import FrameDecoder, LegacyFrameDecoder, parse_line, encode_line
from .stars_connection import StarsConnection, select_keyword
from .socket_reader import SocketReader, MessageDispatcher, ReaderState

__all__ = [
    'FrameDecoder',
    'LegacyFrameDecoder',
    'parse_line',
    'encode_line',
    'StarsConnection',
    'select_keyword',
    'SocketReader',
    'MessageDispatcher',
    'ReaderState',
]
