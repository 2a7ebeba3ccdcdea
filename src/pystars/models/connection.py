"""
Connection models for pystars.

Classes:
    ConnectionConfig: Immutable configuration for one STARS connection
    ConnectionState: Enumeration of connection states
    ConnectionStatus: Snapshot of a connection's current status
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

DEFAULT_PORT = 6057
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Immutable configuration for a STARS connection.

    Attributes:
        node_name: Name this client registers under
        host: Server host name or IP address
        port: Server port (default: 6057)
        keyword: Inline keyword list, space separated. When non-empty the
            keyword file is never read.
        key_file: Path to a keyword file with one keyword per line
            (defaults to ``<node_name>.key``)
        timeout: Default receive timeout in seconds (default: 30.0, 0 = no limit)

    Example:
        >>> config = ConnectionConfig("term1", "127.0.0.1", keyword="stars")
        >>> valid, errors = config.validate()
    """

    node_name: str
    host: str
    port: int = DEFAULT_PORT
    keyword: str = ""
    key_file: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    @property
    def resolved_key_file(self) -> str:
        """Keyword file path, falling back to ``<node_name>.key``."""
        return self.key_file or f"{self.node_name}.key"

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate the connection configuration.

        Returns:
            Tuple of (is_valid, list_of_error_messages)

        Validation rules:
            - Node name must be non-empty and free of whitespace and '>'
            - Host must be non-empty
            - Port must be an integer in range 1-65535
            - Timeout must not be negative (0 waits without a limit)
        """
        errors = []

        if not self.node_name or not self.node_name.strip():
            errors.append("Node name must not be empty")
        elif any(c.isspace() for c in self.node_name) or ">" in self.node_name:
            errors.append(f"Node name must not contain whitespace or '>': {self.node_name!r}")

        if not self.host or not self.host.strip():
            errors.append("Host must not be empty")

        if isinstance(self.port, bool) or not isinstance(self.port, int):
            errors.append(f"Port must be an integer: {self.port!r}")
        elif not (1 <= self.port <= 65535):
            errors.append(f"Port out of range (1-65535): {self.port}")

        if self.timeout < 0:
            errors.append(f"Timeout must not be negative: {self.timeout}")

        return (len(errors) == 0, errors)


class ConnectionState(Enum):
    """
    Enumeration of possible connection states.

    States:
        DISCONNECTED: No socket open
        CONNECTING: Socket open, handshake in progress
        CONNECTED: Handshake accepted by the server
        ERROR: Last connect attempt or an established session failed
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass
class ConnectionStatus:
    """
    Current status of a connection.

    Attributes:
        state: Current connection state
        host: Server host if connected, None otherwise
        port: Server port if connected, None otherwise
        callback_mode: Whether the background reader owns receiving
        connected_at: Timestamp of the accepted handshake
        last_error: Last error message, if any
    """

    state: ConnectionState
    host: Optional[str] = None
    port: Optional[int] = None
    callback_mode: bool = False
    connected_at: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED
