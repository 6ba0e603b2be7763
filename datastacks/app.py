"""Key-value store that answers text commands from authenticated TCP clients."""

from __future__ import annotations

import argparse
import json
import logging
import re
import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from datastacks.server import RECV_BUFFER_LEN, Client, Server, sha256

logger = logging.getLogger(__name__)

_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass
class Entry:
    """A stored value: either a string or an array of strings, with optional TTL."""

    array_val: Optional[list[str]] = None
    string_val: Optional[str] = None
    ttl: int = 0
    when_set: float = field(default_factory=time.time)

    def is_array(self) -> bool:
        return self.array_val is not None

    def is_string(self) -> bool:
        return self.string_val is not None

    def expired(self, now: float) -> bool:
        """Whether more than ``ttl`` whole seconds have passed by ``now``."""
        if self.ttl == 0:
            return False
        return int(now) - int(self.when_set) > self.ttl


def parse_string_template(text: str) -> list[str]:
    """Split ``text`` on spaces, keeping double-quoted runs together.

    ``GET key "abc 123"`` gives ``["GET", "key", "abc 123"]``.
    """
    result: list[str] = []
    latest: list[str] = []
    in_quotes = False
    for char in text:
        if char == '"':
            in_quotes = not in_quotes
            continue
        if char == " " and not in_quotes:
            if latest:
                result.append("".join(latest))
                latest.clear()
            continue
        latest.append(char)
    if latest:
        result.append("".join(latest))
    return result


def _parse_int(text: str) -> int:
    """Read a leading 32-bit integer from ``text``, ignoring trailing characters."""
    match = _LEADING_INT.match(text)
    if match is None:
        raise ValueError(f"not an integer: {text!r}")
    value = int(match.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


class App:
    """The data store, wired to a :class:`Server` that feeds it client messages."""

    def __init__(self, port: Union[int, str], password: str, host: str = "") -> None:
        self._password_hash = sha256(password)
        self.data: dict[str, Entry] = {}
        self._data_lock = threading.Lock()
        self.server = Server(
            port,
            host,
            on_message=lambda message, client: self.handle_client_message(client, message),
            on_new_client=self.handle_new_client,
        )
        self._handlers: dict[str, Callable[[list[str]], Optional[str]]] = {
            "GET": self._get,
            "SET": self._set,
            "SETEX": self._setex,
            "PUSHBACK": self._pushback,
            "PUSHFRONT": self._pushfront,
            "DEL": self._delete,
            "PING": lambda parts: "PONG",
            "DROPALL": self._drop_all,
        }

    def authenticate(self, payload: str) -> bool:
        """Check a JSON payload's ``password`` against the stored hash.

        Raises ValueError when the payload is not JSON or holds no string password.
        """
        document = json.loads(payload)
        if not isinstance(document, dict) or "password" not in document:
            raise ValueError("payload has no password")
        candidate = document["password"]
        if not isinstance(candidate, str):
            raise ValueError("password is not a string")
        return sha256(candidate) == self._password_hash

    def execute(self, message: str) -> Optional[str]:
        """Run one command line and return the reply, or None for unknown commands."""
        parts = parse_string_template(message)
        if len(parts) < 2:
            return "ERROR"
        handler = self._handlers.get(parts[0])
        if handler is None:
            return None
        with self._data_lock:
            return handler(parts)

    def handle_client_message(self, client: Client, message: str) -> None:
        """Execute ``message`` and send the reply back to ``client``."""
        logger.info("[client] > %s", message)
        reply = self.execute(message)
        if reply is not None:
            self.server.send_string(reply, client.sock)

    def handle_new_client(self, client: Client) -> None:
        """Read the first message of a new client and authorize it."""
        sock = client.sock
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
        payload = data.decode("utf-8", errors="replace").split("\0", 1)[0]
        try:
            accepted = self.authenticate(payload)
        except ValueError:
            self.server.disconnect_client(sock)
            return
        if accepted:
            client.authorized = True
            self.server.send_string("OK", sock)

    def run(self) -> None:
        """Serve clients until the server is closed."""
        self.server.run()

    def _get(self, parts: list[str]) -> str:
        entry = self.data.get(parts[1])
        if entry is None or entry.expired(time.time()):
            return "NULL"
        if entry.string_val is not None:
            return f'"{entry.string_val}"'
        return " ".join(f'"{item}"' for item in entry.array_val or [])

    def _set(self, parts: list[str]) -> str:
        key = parts[1]
        if len(parts) == 3:
            self.data[key] = Entry(string_val=parts[2])
        else:
            self.data[key] = Entry(array_val=parts[2:])
        return "OK"

    def _setex(self, parts: list[str]) -> str:
        if len(parts) < 3:
            return "ERROR"
        key = parts[1]
        try:
            seconds = _parse_int(parts[2])
        except ValueError:
            return "ERROR"
        if len(parts) == 3:
            self.data[key] = Entry(string_val=parts[2], ttl=seconds)
        else:
            self.data[key] = Entry(array_val=parts[3:], ttl=seconds)
        logger.info("Set for %d seconds", seconds)
        return "OK"

    def _push(self, parts: list[str], front: bool) -> str:
        key = parts[1]
        entry = self.data.get(key)
        if entry is None:
            self.data[key] = Entry(array_val=parts[2:])
            return "OK"
        if entry.array_val is None or len(parts) < 3:
            return "ERROR"
        if front:
            entry.array_val.insert(0, parts[2])
        else:
            entry.array_val.append(parts[2])
        return "OK"

    def _pushback(self, parts: list[str]) -> str:
        return self._push(parts, front=False)

    def _pushfront(self, parts: list[str]) -> str:
        return self._push(parts, front=True)

    def _delete(self, parts: list[str]) -> str:
        self.data.pop(parts[1], None)
        return "OK"

    def _drop_all(self, parts: list[str]) -> str:
        self.data.clear()
        return "OK"


def main(argv: Optional[list[str]] = None) -> int:
    """Start a data store server from the command line."""
    parser = argparse.ArgumentParser(prog="datastacks", description="Run a DataStacks server.")
    parser.add_argument("port", help="TCP port to listen on")
    parser.add_argument("password", help="password clients must send to authorize")
    parser.add_argument("--host", default="", help="address to bind (default: all)")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    try:
        app = App(args.port, args.password, args.host)
    except (OSError, ValueError) as err:
        parser.exit(1, f"datastacks: cannot start server: {err}\n")
    try:
        app.run()
    except KeyboardInterrupt:
        pass
    finally:
        app.server.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())