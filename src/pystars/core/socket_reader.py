"""
Background socket reader for STARS callback mode.

Architecture:
    SocketReader (background thread)
        └── Reads whatever bytes are available
        └── Feeds them through the frame decoder
        └── Hands every completed message to the MessageDispatcher

    MessageDispatcher
        └── Ordered registry of subscriber callables
        └── Calls each subscriber once per message, in registration order

The reader is fire-and-forget: when the socket closes or fails, the loop
stops and logs the reason. Nothing is raised to the application; the owner
is told through the ``on_stopped`` callback so it can update its connected
flag.
"""

import logging
import socket
import threading
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Union

from ..models.message import StarsMessage
from .frame_decoder import FrameDecoder, LegacyFrameDecoder

logger = logging.getLogger(__name__)

MessageHandler = Callable[[StarsMessage], None]


class ReaderState(Enum):
    """Lifecycle of a SocketReader."""
    IDLE = "idle"
    LISTENING = "listening"
    STOPPED = "stopped"


class MessageDispatcher:
    """
    Fans decoded messages out to subscribers.

    Handlers are called synchronously on the dispatching thread. A handler
    that raises is logged and skipped; the remaining handlers still receive
    the message. Messages are never redelivered.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: List[MessageHandler] = []

        self._stats = {
            'messages_dispatched': 0,
            'handler_calls': 0,
            'handler_errors': 0,
        }

    def subscribe(self, handler: MessageHandler) -> None:
        """
        Register a handler for decoded messages.

        Args:
            handler: Callable taking a StarsMessage
        """
        if not callable(handler):
            raise TypeError(f"Handler must be callable, got {type(handler).__name__}")
        with self._lock:
            self._handlers.append(handler)
        logger.debug(f"Subscribed handler {handler!r}")

    def unsubscribe(self, handler: MessageHandler) -> bool:
        """
        Remove the first registration of a handler.

        Returns:
            True if the handler was registered
        """
        with self._lock:
            try:
                self._handlers.remove(handler)
            except ValueError:
                return False
        logger.debug(f"Unsubscribed handler {handler!r}")
        return True

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def dispatch(self, message: StarsMessage) -> None:
        """
        Deliver a message to every current subscriber.

        Args:
            message: Decoded message to deliver
        """
        # Call handlers outside the lock so they may (un)subscribe
        with self._lock:
            handlers = list(self._handlers)

        self._stats['messages_dispatched'] += 1
        for handler in handlers:
            try:
                handler(message)
                self._stats['handler_calls'] += 1
            except Exception as e:
                self._stats['handler_errors'] += 1
                logger.error(f"Subscriber {handler!r} failed on '{message.wire_form}': {e}",
                             exc_info=True)

    def get_stats(self) -> Dict[str, int]:
        """Get dispatch statistics."""
        return self._stats.copy()


class SocketReader:
    """
    Background thread that continuously reads from the STARS socket.

    The loop is receive -> decode all available frames -> dispatch all ->
    repeat. It ends when stop() is called, the peer closes the connection,
    or the socket raises.
    """

    READ_SIZE = 4096
    # Socket timeout used inside the loop so stop() is noticed promptly
    POLL_INTERVAL = 0.5

    def __init__(
        self,
        sock: socket.socket,
        decoder: Union[FrameDecoder, LegacyFrameDecoder],
        dispatcher: MessageDispatcher,
        on_stopped: Optional[Callable[[Optional[BaseException]], None]] = None,
        backlog: Iterable[StarsMessage] = ()
    ):
        """
        Initialize the socket reader.

        Args:
            sock: Connected socket to read from
            decoder: Frame decoder; owned by the reader while it runs
            dispatcher: Dispatcher receiving every decoded message
            on_stopped: Called once from the reader thread when the loop ends
                because of closure or an error (not after stop()). Receives
                the exception, or None when the peer closed the connection.
            backlog: Messages already decoded before the reader started;
                dispatched first, in order
        """
        self._socket = sock
        self._decoder = decoder
        self._dispatcher = dispatcher
        self._on_stopped = on_stopped
        self._backlog = list(backlog)

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._state = ReaderState.IDLE

        self._stats = {
            'messages_read': 0,
            'bytes_read': 0,
            'socket_errors': 0,
        }

    @property
    def state(self) -> ReaderState:
        return self._state

    def start(self) -> None:
        """Start the background reader thread."""
        with self._lock:
            if self._state == ReaderState.LISTENING:
                logger.warning("SocketReader already running")
                return
            if self._state == ReaderState.STOPPED:
                raise RuntimeError("SocketReader cannot be restarted once stopped")

            self._state = ReaderState.LISTENING
            self._thread = threading.Thread(
                target=self._read_loop,
                name="StarsSocketReader",
                daemon=True
            )
            self._thread.start()
            logger.info("SocketReader background thread started")

    def request_stop(self) -> None:
        """Ask the loop to exit without waiting for it."""
        self._stop_event.set()

    def stop(self, timeout: float = 2.0) -> None:
        """
        Stop the background reader thread.

        Safe to call from a subscriber running on the reader thread; in that
        case the loop exits after the current dispatch without joining.

        Args:
            timeout: Seconds to wait for the thread to stop
        """
        self.request_stop()

        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("SocketReader thread did not stop cleanly")

        with self._lock:
            self._state = ReaderState.STOPPED

    def is_running(self) -> bool:
        """Check if reader is running."""
        return self._state == ReaderState.LISTENING

    def _read_loop(self):
        """Main read loop - runs in background thread."""
        logger.info("SocketReader read loop starting")
        failure: Optional[BaseException] = None
        closed_by_peer = False

        try:
            self._socket.settimeout(self.POLL_INTERVAL)
        except OSError as e:
            failure = e

        try:
            for message in self._backlog:
                self._dispatch(message)
            self._backlog = []

            while failure is None and not self._stop_event.is_set():
                try:
                    data = self._socket.recv(self.READ_SIZE)
                except socket.timeout:
                    continue
                except OSError as e:
                    failure = e
                    break

                if not data:
                    closed_by_peer = True
                    break

                self._stats['bytes_read'] += len(data)
                for message in self._decoder.feed(data):
                    self._dispatch(message)
        finally:
            with self._lock:
                self._state = ReaderState.STOPPED

        if self._stop_event.is_set():
            logger.info(f"SocketReader read loop exiting. Stats: {self._stats}")
            return

        if failure is not None:
            self._stats['socket_errors'] += 1
            logger.error(f"Socket error in reader, listening stopped: {failure}")
        elif closed_by_peer:
            logger.warning("Socket closed by server - reader stopping")
        logger.info(f"SocketReader read loop exiting. Stats: {self._stats}")

        if self._on_stopped is not None:
            try:
                self._on_stopped(failure)
            except Exception as e:
                logger.error(f"Reader stop callback failed: {e}")

    def _dispatch(self, message: StarsMessage) -> None:
        self._stats['messages_read'] += 1
        logger.debug(f"Received: {message.wire_form}")
        self._dispatcher.dispatch(message)

    def get_stats(self) -> Dict[str, int]:
        """Get reader statistics."""
        return self._stats.copy()
