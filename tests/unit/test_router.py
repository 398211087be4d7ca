"""
Unit tests for the routing table.
"""

import threading

import pytest

from minihttp.http.router import RoutingTable


def dummy_handler(request, writer):
    """Dummy handler for testing."""


def other_handler(request, writer):
    """Another dummy handler."""


class TestRoutingTable:
    """Tests for RoutingTable class."""

    def test_register_and_lookup(self):
        table = RoutingTable()
        table.register("GET", "/messages", dummy_handler)

        assert table.lookup("GET", "/messages") is dummy_handler

    def test_lookup_miss(self):
        """Test that an unknown path returns None."""
        table = RoutingTable()
        table.register("GET", "/messages", dummy_handler)

        assert table.lookup("GET", "/other") is None
        assert table.lookup("POST", "/messages") is None

    def test_method_based_routing(self):
        table = RoutingTable()
        table.register("GET", "/messages", dummy_handler)
        table.register("POST", "/messages", other_handler)

        assert table.lookup("GET", "/messages") is dummy_handler
        assert table.lookup("POST", "/messages") is other_handler

    def test_last_registration_wins(self):
        table = RoutingTable()
        table.register("GET", "/messages", dummy_handler)
        table.register("GET", "/messages", other_handler)

        assert table.lookup("GET", "/messages") is other_handler
        assert len(table) == 1

    def test_exact_match_only(self):
        """No trailing-slash, case or prefix normalization."""
        table = RoutingTable()
        table.register("GET", "/messages", dummy_handler)

        assert table.lookup("GET", "/messages/") is None
        assert table.lookup("GET", "/Messages") is None
        assert table.lookup("GET", "/messages?x=1") is None
        assert table.lookup("get", "/messages") is None

    def test_has_method(self):
        """Test telling an unknown method apart from an unknown path."""
        table = RoutingTable()
        table.register("POST", "/messages", dummy_handler)

        assert table.has_method("POST") is True
        assert table.has_method("GET") is False
        assert table.has_method("post") is False

    def test_decorators(self):
        table = RoutingTable()

        @table.get("/a")
        def handler_a(request, writer):
            pass

        @table.post("/b")
        def handler_b(request, writer):
            pass

        @table.route("PUT", "/c")
        def handler_c(request, writer):
            pass

        assert table.lookup("GET", "/a") is handler_a
        assert table.lookup("POST", "/b") is handler_b
        assert table.lookup("PUT", "/c") is handler_c

    def test_routes_snapshot(self):
        table = RoutingTable()
        table.register("POST", "/messages", dummy_handler)
        table.register("GET", "/messages", dummy_handler)
        table.register("GET", "/about", dummy_handler)

        assert table.routes() == [
            ("GET", "/about"),
            ("GET", "/messages"),
            ("POST", "/messages"),
        ]

    @pytest.mark.parametrize("method", ["", " ", "GET POST", "GE\tT"])
    def test_rejects_invalid_method(self, method: str):
        with pytest.raises(ValueError):
            RoutingTable().register(method, "/messages", dummy_handler)

    def test_rejects_relative_path(self):
        with pytest.raises(ValueError):
            RoutingTable().register("GET", "messages", dummy_handler)

    def test_concurrent_registration(self):
        """Registration from many threads loses nothing."""
        table = RoutingTable()

        def register_many(prefix: str):
            for i in range(100):
                table.register("GET", f"/{prefix}/{i}", dummy_handler)

        threads = [
            threading.Thread(target=register_many, args=(f"t{n}",))
            for n in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(table) == 800
