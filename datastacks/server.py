"""TCP server that accepts clients and hands their messages to a callback."""

from __future__ import annotations

import hashlib
import logging
import socket
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)

RECV_BUFFER_LEN = 1024

MessageHandler = Callable[[str, "Client"], None]
NewClientHandler = Callable[["Client"], None]


def sha256(text: str) -> str:
    """Return the lower-case hexadecimal SHA-256 digest of ``text``."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(eq=False)
class Client:
    """A connected client socket and its session state."""

    sock: socket.socket
    commands_executed: int = 0
    authorized: bool = False

    def increment_commands_executed(self) -> None:
        """Count one more executed command for this client."""
        self.commands_executed += 1


class Server:
    """Listens on a TCP port and serves each client on its own thread."""

    def __init__(
        self,
        port: Union[int, str],
        host: str = "",
        on_message: Optional[MessageHandler] = None,
        on_new_client: Optional[NewClientHandler] = None,
    ) -> None:
        self.on_message = on_message
        self.on_new_client = on_new_client
        self.clients: list[Client] = []
        self._lock = threading.Lock()
        self._closed = False
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
        try:
            self._socket.bind((host, int(port)))
        except OSError as err:
            logger.error("bind() failed: %s", err)
            self._socket.close()
            raise
        self.address = self._socket.getsockname()
        logger.info("Server initialized successfully!")

    def run(self) -> None:
        """Accept clients until the server is closed."""
        if self._closed:
            raise RuntimeError("cannot run server: it is closed")
        self._socket.listen(socket.SOMAXCONN)
        self._socket.settimeout(0.2)
        logger.info("Listening...")
        while not self._closed:
            try:
                conn, _ = self._socket.accept()
            except (socket.timeout, TimeoutError):
                continue
            except OSError as err:
                if self._closed:
                    return
                logger.warning("Failed to accept client! Error: %s", err)
                continue
            conn.settimeout(None)
            logger.info("Client connected!")
            client = Client(conn)
            with self._lock:
                self.clients.append(client)
            if self.on_new_client is not None:
                self.on_new_client(client)
            threading.Thread(target=self.serve_client, args=(client,), daemon=True).start()

    def serve_client(self, client: Client) -> None:
        """Read messages from ``client`` until it disconnects."""
        sock = client.sock
        while True:
            try:
                data = sock.recv(RECV_BUFFER_LEN)
            except ConnectionResetError:
                sock.close()
                logger.info("Client manually disconnected!")
                return
            except OSError as err:
                logger.error("recv() FAIL! Error: %s", err)
                return
            if not data:
                logger.info("Client disconnected!")
                return
            message = data.decode("utf-8", errors="replace").split("\0", 1)[0]
            if self.on_message is not None:
                self.on_message(message, client)

    def send_string(self, message: str, sock: socket.socket) -> None:
        """Send ``message`` to ``sock``; failures are logged."""
        try:
            sock.sendall(message.encode("utf-8"))
        except OSError as err:
            logger.error("Failed to send! Error: %s", err)

    def disconnect_client(self, sock: socket.socket) -> None:
        """Shut down the sending side of the connection to ``sock``."""
        try:
            sock.shutdown(socket.SHUT_WR)
        except OSError:
            logger.info("Failed to disconnect client!")
        else:
            logger.info("Disconnected client from server!")

    def close(self) -> None:
        """Disconnect every client and stop listening."""
        if self._closed:
            return
        self._closed = True
        logger.info("Beginning shutdown procedure...")
        with self._lock:
            clients = list(self.clients)
        for client in clients:
            self.disconnect_client(client.sock)
        try:
            self._socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._socket.close()

    def __enter__(self) -> "Server":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()