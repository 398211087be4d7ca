"""
=============================================================================
ROUTING TABLE
=============================================================================

Maps an exact (method, path) pair to the handler registered for it.

=============================================================================
STRUCTURE
=============================================================================

Two levels of dict, method first:

    {
        "GET":  {"/messages": list_messages},
        "POST": {"/messages": post_message},
    }

Looking up the method first lets the connection worker tell apart two
kinds of miss:

    method unknown      "BREW /pot HTTP/1.1"        → 400 Bad Request
    method known,       "GET /index.html HTTP/1.1"  → fall through to
    path unknown                                      static files

Matching is exact on both keys: no wildcards, no path parameters, no
trailing-slash or case normalization. "/messages" and "/messages/" are
different routes, and "get" is not "GET".

=============================================================================
THREAD SAFETY
=============================================================================

The table is built before start() and then read by every worker
thread at once. Registration after start is still allowed, so every
read and write goes through one lock. The critical sections are a
couple of dict operations each, and handlers are called outside the
lock.

=============================================================================
"""

import threading
from typing import Callable, Dict, List, Optional, Tuple

from .request import Request
from .response import ResponseWriter


# A handler answers one request completely, writing its own response
# through the writer it is given.
Handler = Callable[[Request, ResponseWriter], None]


class RoutingTable:
    """
    Thread-safe (method, path) → handler mapping.

    Usage:
        table = RoutingTable()
        table.register("POST", "/messages", post_message)

        @table.get("/messages")
        def list_messages(request, writer):
            writer.write_status_only(HTTPStatus.NOT_FOUND)

        table.lookup("GET", "/messages")   # → list_messages
        table.lookup("GET", "/nope")       # → None
        table.has_method("DELETE")         # → False
    """

    def __init__(self):
        self._handlers: Dict[str, Dict[str, Handler]] = {}
        self._lock = threading.RLock()

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(self, method: str, path: str, handler: Handler) -> None:
        """
        Register handler for an exact (method, path) pair.

        Registering the same pair again replaces the earlier handler.
        """
        if not method or any(ch.isspace() for ch in method):
            raise ValueError(f"Invalid method: {method!r}")
        if not path.startswith("/"):
            raise ValueError(f"Path must start with '/': {path!r}")

        with self._lock:
            self._handlers.setdefault(method, {})[path] = handler

    def route(self, method: str, path: str) -> Callable[[Handler], Handler]:
        """
        Decorator form of register().

            @table.route("PUT", "/messages")
            def replace_messages(request, writer):
                ...
        """
        def decorator(handler: Handler) -> Handler:
            self.register(method, path, handler)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        """Register a GET handler."""
        return self.route("GET", path)

    def post(self, path: str) -> Callable[[Handler], Handler]:
        """Register a POST handler."""
        return self.route("POST", path)

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def lookup(self, method: str, path: str) -> Optional[Handler]:
        """Return the handler for (method, path), or None if there is none."""
        with self._lock:
            paths = self._handlers.get(method)
            if paths is None:
                return None
            return paths.get(path)

    def has_method(self, method: str) -> bool:
        """True if at least one handler is registered for method."""
        with self._lock:
            return bool(self._handlers.get(method))

    def routes(self) -> List[Tuple[str, str]]:
        """Snapshot of every registered (method, path), sorted."""
        with self._lock:
            return sorted(
                (method, path)
                for method, paths in self._handlers.items()
                for path in paths
            )

    def __len__(self) -> int:
        with self._lock:
            return sum(len(paths) for paths in self._handlers.values())
