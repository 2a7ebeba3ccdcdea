# Mock STARS server for testing
import queue
import socket
import threading
import time
import logging

logger = logging.getLogger(__name__)


class MockStarsServer:
    """
    Mock STARS server for testing.

    Accepts one client at a time on an ephemeral port, sends a challenge,
    checks the "<node> <keyword>" reply against its keyword list and answers
    "System>node Ok:" or a rejection. After the handshake every line the
    client sends is put on ``received``; tests push lines with send_line().
    """

    def __init__(self, host='127.0.0.1', port=0, challenge="7",
                 keywords=("k0", "k1", "k2"), accept=True, greeting=None):
        """
        Args:
            challenge: Text sent as the first frame
            keywords: Keyword list used to check the client's reply
            accept: If False, reject every handshake
            greeting: Optional raw bytes sent right after "Ok:"
        """
        self.host = host
        self.port = port
        self.challenge = challenge
        self.keywords = list(keywords)
        self.accept = accept
        self.greeting = greeting

        self.running = False
        self.server = None
        self.client = None
        self.handshake_lines = []
        self.received = queue.Queue()
        self.client_connected = threading.Event()
        self.handshake_done = threading.Event()
        self.client_closed = threading.Event()
        self._thread = None

    def start(self):
        """Start the mock server and return the bound port."""
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server.bind((self.host, self.port))
        self.server.listen(1)
        self.server.settimeout(0.1)
        self.port = self.server.getsockname()[1]

        self.running = True
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        logger.info(f"Mock STARS server started on {self.host}:{self.port}")
        return self.port

    def expected_keyword(self):
        return self.keywords[int(self.challenge) % len(self.keywords)]

    def _run(self):
        while self.running:
            try:
                client, addr = self.server.accept()
            except socket.timeout:
                continue
            except OSError:
                break

            logger.info(f"STARS connection from {addr}")
            client.settimeout(None)
            self.client = client
            self.client_connected.set()
            try:
                self._handle(client)
            except OSError as e:
                if self.running:
                    logger.debug(f"Client handler ended: {e}")
            finally:
                self.client_closed.set()

    def _handle(self, client):
        buffer = b""

        def read_line():
            nonlocal buffer
            while b"\n" not in buffer:
                chunk = client.recv(1024)
                if not chunk:
                    return None
                buffer += chunk
            line, buffer = buffer.split(b"\n", 1)
            return line.decode("utf-8").rstrip("\r")

        client.sendall(f"{self.challenge}\n".encode("utf-8"))

        line = read_line()
        if line is None:
            return
        self.handshake_lines.append(line)
        node, _, keyword = line.partition(" ")

        try:
            valid = self.accept and keyword == self.expected_keyword()
        except ValueError:
            valid = False

        if not valid:
            client.sendall(f"System>{node} Er: Bad node name or key\n".encode("utf-8"))
            client.close()
            return

        client.sendall(f"System>{node} Ok:\n".encode("utf-8"))
        if self.greeting:
            client.sendall(self.greeting)
        self.handshake_done.set()

        while self.running:
            line = read_line()
            if line is None:
                break
            self.received.put(line)

    def send_line(self, text):
        """Send one frame to the connected client."""
        self.send_raw((text + "\n").encode("utf-8"))

    def send_raw(self, data):
        self.client.sendall(data)

    def next_line(self, timeout=2.0):
        """Next line sent by the client after the handshake."""
        return self.received.get(timeout=timeout)

    def close_client(self):
        """Close the current client connection from the server side."""
        if self.client:
            try:
                self.client.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self.client.close()

    def stop(self):
        """Stop the mock server."""
        self.running = False
        self.close_client()
        if self.server:
            self.server.close()
        if self._thread:
            self._thread.join(timeout=2.0)
        logger.info("Mock server stopped")


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    server = MockStarsServer(port=6057)
    server.start()

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        server.stop()
