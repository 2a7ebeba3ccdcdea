"""
Connection management for the STARS protocol.

StarsConnection owns one TCP socket to a STARS server. It performs the
challenge/keyword handshake and then exchanges newline terminated frames.

Supports two receive modes:
- Synchronous: the caller blocks in receive() until a frame arrives or the
  timeout expires
- Callback: a background SocketReader decodes every frame and pushes it to
  subscribers. Once enabled it owns receiving for the rest of the
  connection's lifetime; receive() then raises RuntimeError.

Sends are serialized per connection and may come from any thread.
"""

import logging
import re
import socket
import threading
import time
from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Optional, Sequence, Tuple

from ..models.connection import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    ConnectionConfig,
    ConnectionState,
    ConnectionStatus,
)
from ..models.message import StarsMessage
from ..utils.keywords import read_keyword_file, split_keywords
from .errors import (
    ConfigError,
    ConnectionError,
    ErrorCodes,
    ProtocolError,
    ReceiveError,
    TimeoutError,
    TransmitError,
    wrap_external_error,
)
from .frame_decoder import DEFAULT_ENCODING, FrameDecoder, encode_line
from .socket_reader import MessageDispatcher, MessageHandler, SocketReader

HANDSHAKE_OK = "Ok:"
# Plain ASCII decimal, optionally signed
CHALLENGE_PATTERN = re.compile(r"[+-]?[0-9]+")


def select_keyword(keywords: Sequence[str], challenge: int) -> str:
    """
    Pick the handshake keyword for a server challenge.

    Example:
        >>> select_keyword(["k0", "k1", "k2"], 7)
        'k1'

    Raises:
        ConfigError: If the keyword list is empty
    """
    if not keywords:
        raise ConfigError(
            "Keyword list is empty",
            error_code=ErrorCodes.KEYWORD_LIST_EMPTY
        )
    return keywords[challenge % len(keywords)]


class StarsConnection:
    """
    Client connection to a STARS server.

    Example:
        >>> with StarsConnection("term1", "127.0.0.1", keyword="stars") as stars:
        ...     stars.connect()
        ...     stars.send("System", "hello")
        ...     reply = stars.receive(timeout=5.0)
        ...     print(reply.wire_form)
    """

    READ_SIZE = 4096

    def __init__(
        self,
        node_name: str,
        host: str,
        key_file: Optional[str] = None,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        keyword: str = "",
        encoding: str = DEFAULT_ENCODING
    ):
        """
        Initialize a STARS connection (does not connect).

        Args:
            node_name: Name this client registers under
            host: Server host name or IP address
            key_file: Keyword file, one keyword per line
                (default: ``<node_name>.key``)
            port: Server port (default: 6057)
            timeout: Default receive timeout in seconds (default: 30.0). 0 waits
                without a limit.
            keyword: Inline, space separated keyword list. Takes precedence
                over ``key_file`` when non-empty.
            encoding: Text encoding used on the wire (default: utf-8)
        """
        self.logger = logging.getLogger(__name__)

        self.node_name = node_name
        self.server_host = host
        self.server_port = port
        self.key_file = key_file if key_file is not None else f"{node_name}.key"
        self.keyword = keyword
        self.encoding = encoding
        self._default_timeout_ms = 0
        self.default_timeout = timeout

        self._socket: Optional[socket.socket] = None
        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._receive_lock = threading.Lock()
        self._connected = False
        self._state = ConnectionState.DISCONNECTED
        self._connected_at: Optional[datetime] = None
        self._last_error: Optional[str] = None

        self._decoder = FrameDecoder(encoding)
        self._received: Deque[StarsMessage] = deque()

        # Exists before connect() so handlers can subscribe early
        self._dispatcher = MessageDispatcher()
        self._reader: Optional[SocketReader] = None

    @classmethod
    def from_config(cls, config: ConnectionConfig, **kwargs) -> "StarsConnection":
        """
        Create a connection from a ConnectionConfig.

        Raises:
            ConfigError: If the configuration does not validate
        """
        valid, problems = config.validate()
        if not valid:
            raise ConfigError(
                f"Invalid connection configuration: {'; '.join(problems)}",
                error_code=ErrorCodes.CONFIG_INVALID
            )
        return cls(
            node_name=config.node_name,
            host=config.host,
            key_file=config.resolved_key_file,
            port=config.port,
            timeout=config.timeout,
            keyword=config.keyword,
            **kwargs
        )

    def __repr__(self) -> str:
        return (f"StarsConnection(node_name={self.node_name!r}, "
                f"host={self.server_host!r}, port={self.server_port}, "
                f"state={self._state.value})")

    def __enter__(self) -> "StarsConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    # ========== Properties ==========

    @property
    def default_timeout(self) -> float:
        """Default receive timeout in seconds (millisecond resolution, 0 = no limit)."""
        return self._default_timeout_ms / 1000

    @default_timeout.setter
    def default_timeout(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"Timeout must not be negative, got {value}")
        self._default_timeout_ms = int(value * 1000)

    @property
    def dispatcher(self) -> MessageDispatcher:
        """Dispatcher used in callback mode."""
        return self._dispatcher

    @property
    def callback_mode(self) -> bool:
        """True while the background reader is listening."""
        return self._reader is not None and self._reader.is_running()

    @property
    def status(self) -> ConnectionStatus:
        connected = self._connected
        return ConnectionStatus(
            state=self._state,
            host=self.server_host if connected else None,
            port=self.server_port if connected else None,
            callback_mode=self.callback_mode,
            connected_at=self._connected_at if connected else None,
            last_error=self._last_error
        )

    def is_connected(self) -> bool:
        """
        Check whether the handshake succeeded and the session is alive.

        Turns False after disconnect(), after a send/receive failure, and
        when the background reader sees the socket close.
        """
        return self._connected

    def get_connection_info(self) -> Tuple[Optional[str], Optional[int]]:
        """
        Get current connection information.

        Returns:
            Tuple of (host, port) or (None, None) if not connected
        """
        if not self._connected:
            return None, None
        return self.server_host, self.server_port

    # ========== Connect / disconnect ==========

    def connect(self, callback_mode: bool = False) -> None:
        """
        Connect to the server and perform the keyword handshake.

        Args:
            callback_mode: Start the background reader once connected

        Raises:
            ConfigError: Keyword file unreadable or keyword list empty
            ConnectionError: Host lookup or TCP connect failed
            ProtocolError: Challenge not numeric or handshake rejected
            TimeoutError: Server did not answer within the default timeout
            ReceiveError: Server closed the connection during the handshake
            TransmitError: Credentials could not be sent
        """
        with self._lock:
            if self._socket is not None:
                self.logger.warning("Already connected. Disconnecting first.")
                self._disconnect_unsafe()

            keywords = self._load_keywords()

            self._state = ConnectionState.CONNECTING
            self._socket = self._open_socket()

            try:
                self._handshake(keywords)
            except Exception as e:
                self.logger.error(f"Handshake with {self.server_host}:{self.server_port} failed: {e}")
                self._disconnect_unsafe()
                self._state = ConnectionState.ERROR
                self._last_error = str(e)
                raise

            self._connected = True
            self._state = ConnectionState.CONNECTED
            self._connected_at = datetime.now()
            self._last_error = None
            self.logger.info(
                f"Connected to {self.server_host}:{self.server_port} as '{self.node_name}'"
            )

        if callback_mode:
            self.enable_callback_mode()

    def disconnect(self) -> None:
        """
        Stop the background reader and close the socket.

        Can be called any number of times. A receive() blocked in another
        thread, or a connect() still waiting for the handshake, fails with
        ReceiveError.
        """
        # Wake a blocked receive or handshake before waiting for the lock
        self._interrupt_io()
        with self._lock:
            self._disconnect_unsafe()

    def _interrupt_io(self) -> None:
        """Stop the reader and shut the socket down; takes no lock."""
        reader = self._reader
        sock = self._socket

        if reader is not None:
            reader.request_stop()

        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError as e:
                # Peer already gone
                self.logger.debug(f"Socket shutdown: {e}")

    def _disconnect_unsafe(self) -> None:
        """Disconnect; caller must hold self._lock."""
        self._interrupt_io()
        reader = self._reader
        sock = self._socket

        if reader is not None:
            reader.stop()
            self._reader = None
            self.logger.info("Stopped async reader")

        if sock is not None:
            try:
                sock.close()
                self.logger.info("Closed STARS socket")
            except OSError as e:
                self.logger.error(f"Error closing socket: {e}")
            finally:
                self._socket = None

        self._connected = False
        self._state = ConnectionState.DISCONNECTED
        self._connected_at = None
        self._received.clear()
        self._decoder.reset()

    def _load_keywords(self) -> List[str]:
        if self.keyword:
            keywords = split_keywords(self.keyword)
        else:
            try:
                keywords = read_keyword_file(self.key_file)
            except (OSError, UnicodeDecodeError) as e:
                raise wrap_external_error(
                    e,
                    f"Could not open keyword file: {self.key_file}: {e}",
                    ConfigError,
                    error_code=ErrorCodes.KEYWORD_FILE_UNREADABLE,
                    suggestions=[
                        f"Create {self.key_file} with one keyword per line",
                        "Or pass the keywords inline with keyword=..."
                    ],
                    setting='key_file',
                    path=str(self.key_file)
                ) from e

        if not keywords:
            raise ConfigError(
                "Keyword list is empty",
                setting_name='keyword',
                error_code=ErrorCodes.KEYWORD_LIST_EMPTY
            )
        return keywords

    def _open_socket(self) -> socket.socket:
        port = self.server_port
        if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
            raise ValueError(f"Port must be an integer in 1-65535, got {port!r}")

        self.logger.info(f"Connecting to {self.server_host}:{port}")
        try:
            return socket.create_connection(
                (self.server_host, port),
                timeout=self.default_timeout or None
            )
        except OSError as e:
            if isinstance(e, socket.gaierror):
                code = ErrorCodes.HOST_NOT_FOUND
            elif isinstance(e, socket.timeout):
                code = ErrorCodes.CONNECTION_TIMEOUT
            else:
                code = ErrorCodes.CONNECTION_REFUSED
            self._state = ConnectionState.ERROR
            self._last_error = str(e)
            raise ConnectionError(
                f"Could not establish TCP/IP connection to {self.server_host}:{port}: {e}",
                host=self.server_host,
                port=port,
                error_code=code,
                cause=e
            ) from e

    def _handshake(self, keywords: List[str]) -> None:
        challenge_message = self._receive_frame(self.default_timeout)
        challenge_text = challenge_message.from_.strip()
        if not CHALLENGE_PATTERN.fullmatch(challenge_text):
            raise ProtocolError(
                f"Server did not send a numeric challenge: '{challenge_message.wire_form}'",
                server_message=challenge_message.wire_form,
                error_code=ErrorCodes.INVALID_CHALLENGE
            )
        challenge = int(challenge_text)

        self.logger.debug(f"Received challenge {challenge}, sending keyword for '{self.node_name}'")
        self._send_line(f"{self.node_name} {select_keyword(keywords, challenge)}")

        reply = self._receive_frame(self.default_timeout)
        if reply.command != HANDSHAKE_OK:
            raise ProtocolError(
                f"Could not connect to server: {reply.combined_command}",
                server_message=reply.combined_command,
                error_code=ErrorCodes.HANDSHAKE_REJECTED
            )

    # ========== Send ==========

    def send(self, *parts: str) -> None:
        """
        Send one frame.

        Accepted forms:
            send(from_, to, command)  -> "from_>to command"
            send(to, command)         -> "to command" (server adds the sender)
            send(text)                -> text as is

        ``command`` may include parameters ("GetValue 1 2").

        Raises:
            ValueError: If the text contains a line terminator
            ConnectionError: If not connected
            TransmitError: If writing to the socket fails
        """
        if len(parts) == 3:
            sender, to, command = parts
            text = f"{sender}>{to} {command}"
        elif len(parts) == 2:
            to, command = parts
            text = f"{to} {command}"
        elif len(parts) == 1:
            text = parts[0]
        else:
            raise TypeError(f"send() takes 1 to 3 parts, got {len(parts)}")

        self._send_connected(text)

    def send_message(self, message: StarsMessage) -> None:
        """Send a StarsMessage in its wire form."""
        self._send_connected(message.wire_form)

    def _send_connected(self, text: str) -> None:
        if not self._connected:
            raise ConnectionError(
                "Not connected to STARS server",
                error_code=ErrorCodes.NOT_CONNECTED
            )
        self._send_line(text)

    def _send_line(self, text: str) -> None:
        data = encode_line(text, self.encoding)

        sock = self._socket
        if sock is None:
            raise ConnectionError(
                "Not connected to STARS server",
                error_code=ErrorCodes.NOT_CONNECTED
            )

        with self._send_lock:
            try:
                sock.sendall(data)
            except OSError as e:
                self.logger.error(f"Failed to send data: {e}")
                self._connected = False
                raise TransmitError(
                    f"Send error: {e}",
                    error_code=ErrorCodes.SOCKET_ERROR,
                    cause=e
                ) from e

        self.logger.debug(f"Sent: {text}")

    # ========== Receive ==========

    def receive(self, timeout: Optional[float] = None) -> StarsMessage:
        """
        Block until one message arrives.

        Args:
            timeout: Seconds to wait (default: default_timeout). 0 waits
                without a limit.

        Returns:
            The next decoded message

        Raises:
            RuntimeError: If callback mode was enabled on this connection
            ConnectionError: If not connected
            TimeoutError: If no complete frame arrived in time
            ReceiveError: If the socket closed or failed
        """
        if self._reader is not None:
            raise RuntimeError(
                "Synchronous receive is unavailable: callback mode was enabled "
                "for this connection"
            )
        if timeout is None:
            timeout = self.default_timeout
        return self._receive_frame(timeout)

    def _receive_frame(self, timeout: float) -> StarsMessage:
        with self._receive_lock:
            if self._received:
                return self._received.popleft()

            sock = self._socket
            if sock is None:
                raise ConnectionError(
                    "Not connected to STARS server",
                    error_code=ErrorCodes.NOT_CONNECTED
                )

            # A timeout of 0 blocks until data arrives or the socket closes
            deadline = time.monotonic() + timeout if timeout else None
            while True:
                remaining = None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise TimeoutError(
                            f"No message received within {timeout:.3f} s",
                            timeout_seconds=timeout,
                            error_code=ErrorCodes.RECEIVE_TIMEOUT
                        )

                try:
                    sock.settimeout(remaining)
                    data = sock.recv(self.READ_SIZE)
                except socket.timeout as e:
                    # Keep any partial frame; the next receive continues it
                    raise TimeoutError(
                        f"No message received within {timeout:.3f} s",
                        timeout_seconds=timeout,
                        error_code=ErrorCodes.RECEIVE_TIMEOUT,
                        cause=e
                    ) from e
                except OSError as e:
                    self._decoder.reset()
                    self._connected = False
                    raise ReceiveError(
                        f"Receive error: {e}",
                        error_code=ErrorCodes.SOCKET_ERROR,
                        cause=e
                    ) from e

                if not data:
                    self._decoder.reset()
                    self._connected = False
                    raise ReceiveError(
                        "Connection closed by server",
                        error_code=ErrorCodes.CONNECTION_LOST
                    )

                messages = self._decoder.feed(data)
                if messages:
                    for message in messages:
                        self.logger.debug(f"Received: {message.wire_form}")
                    self._received.extend(messages[1:])
                    return messages[0]

    # ========== Callback mode ==========

    def enable_callback_mode(self) -> bool:
        """
        Hand receiving over to the background reader.

        Frames already decoded but not yet returned by receive() are
        dispatched first.

        Returns:
            True if the reader is listening, False if not connected
        """
        with self._lock:
            if self._socket is None or not self._connected:
                self.logger.warning("Cannot enable callback mode: not connected")
                return False

            if self._reader is not None:
                return self._reader.is_running()

            with self._receive_lock:
                backlog = list(self._received)
                self._received.clear()
                self._reader = SocketReader(
                    self._socket,
                    self._decoder,
                    self._dispatcher,
                    on_stopped=self._handle_reader_stopped,
                    backlog=backlog
                )
                self._reader.start()

        self.logger.info("Callback mode enabled")
        return True

    def _handle_reader_stopped(self, failure: Optional[BaseException]) -> None:
        # Runs on the reader thread; must not take self._lock
        self._connected = False
        self._state = ConnectionState.ERROR
        self._last_error = str(failure) if failure else "Connection closed by server"

    def subscribe(self, handler: MessageHandler) -> None:
        """Register a handler called with every message in callback mode."""
        self._dispatcher.subscribe(handler)

    def unsubscribe(self, handler: MessageHandler) -> bool:
        """Remove a handler. Returns True if it was registered."""
        return self._dispatcher.unsubscribe(handler)

    def get_async_stats(self) -> Optional[Dict[str, Dict[str, int]]]:
        """
        Get statistics from the background reader.

        Returns:
            Dict with reader and dispatcher stats, or None if not active
        """
        if self._reader is None:
            return None
        return {
            'reader': self._reader.get_stats(),
            'dispatcher': self._dispatcher.get_stats(),
        }
