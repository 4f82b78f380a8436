"""Tests for the server entry point's bind guard."""

from __future__ import annotations

import pytest

from smoothwalker.core.server import main


class TestLoopbackGuard:
    @pytest.mark.parametrize("host", ["127.0.0.1", "::1", "localhost"])
    def test_loopback_hosts(self, host):
        assert main._is_loopback_host(host)

    @pytest.mark.parametrize("host", ["0.0.0.0", "192.168.1.20", "example.com"])
    def test_other_hosts(self, host):
        assert not main._is_loopback_host(host)

    def test_run_refuses_public_bind(self, monkeypatch):
        monkeypatch.setenv("SMOOTHWALKER_HOST", "0.0.0.0")
        monkeypatch.setenv("SMOOTHWALKER_ALLOW_INSECURE_BIND", "false")
        monkeypatch.setattr(main, "create_app", lambda: pytest.fail("app must not be created"))
        with pytest.raises(RuntimeError, match="non-loopback"):
            main.run()
