"""In-memory key-value TCP server with string and list values and per-key expiry."""

__version__ = "0.1.0"
__all__ = ["app", "server"]