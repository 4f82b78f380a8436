"""SmoothWalker server entry point — ``python -m smoothwalker.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from smoothwalker.core.config.settings import get_settings
from smoothwalker.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the SmoothWalker MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.smoothwalker_log_level.upper(), logging.INFO)
    )

    logger = logging.getLogger(__name__)
    if not settings.smoothwalker_allow_insecure_bind and not _is_loopback_host(
        settings.smoothwalker_host
    ):
        raise RuntimeError(
            "Refusing to bind SmoothWalker server to a non-loopback host without an "
            "auth layer. Set SMOOTHWALKER_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting SmoothWalker Mobility server on %s:%d",
        settings.smoothwalker_host,
        settings.smoothwalker_port,
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.smoothwalker_host,
        port=settings.smoothwalker_port,
    )


if __name__ == "__main__":
    run()
