"""SmoothWalker MCP Server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastmcp import FastMCP

from smoothwalker.core.config.settings import get_settings
from smoothwalker.core.storage.database import DatabaseError, SampleDatabase
from smoothwalker.core.storage.encryption import EncryptionError, FieldEncryptor
from smoothwalker.core.storage.repository import SampleRepository
from smoothwalker.domains.mobility.connectors import HealthStore, PushSink
from smoothwalker.domains.mobility.connectors.anchors import InMemoryAnchorStore
from smoothwalker.domains.mobility.connectors.apple_health import (
    AppleHealthParseError,
    load_apple_health_export,
)
from smoothwalker.domains.mobility.connectors.memory_store import InMemoryHealthStore
from smoothwalker.domains.mobility.connectors.mock_data import seed_mock_mobility_data
from smoothwalker.domains.mobility.connectors.push import LoggingPushSink, RepositoryPushSink
from smoothwalker.domains.mobility.controllers.mobility_chart import MobilityChartController
from smoothwalker.domains.mobility.tools.mobility_chart_tools import (
    register_mobility_chart_tools,
)

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _create_store(export_path: str) -> tuple[InMemoryHealthStore, str]:
    store = InMemoryHealthStore()
    if export_path:
        try:
            count = load_apple_health_export(export_path, store)
            logger.info("Loaded %d samples from Apple Health export %s", count, export_path)
            return store, "apple_health"
        except AppleHealthParseError:
            logger.exception("Failed to load Apple Health export; using mock data")

    count = seed_mock_mobility_data(store, datetime.now().astimezone())
    logger.info("Seeded %d mock mobility samples", count)
    return store, "mock"


def create_app(
    *,
    health_store_override: HealthStore | None = None,
    repository_override: SampleRepository | None = None,
) -> FastMCP:
    """Create and configure the SmoothWalker MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Initializes the health store (Apple Health export or mock data)
    3. Initializes the encrypted sample bank, if a key is configured
    4. Creates one chart controller per chart mode
    5. Registers all tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        "SmoothWalker Mobility",
        instructions=(
            "Mobility health data charts. Provides daily, weekly and monthly "
            "series for step count, walking + running distance and walking "
            "speed, kept current by background change subscriptions."
        ),
    )

    # --- Initialize health store ---
    if health_store_override is not None:
        store = health_store_override
        data_source = "override"
    else:
        store, data_source = _create_store(settings.apple_health_export_path)

    # --- Initialize encrypted storage (pushed-sample bank) ---
    repository: SampleRepository | None = None
    if repository_override is not None:
        repository = repository_override
    elif settings.encryption_key:
        try:
            encryptor = FieldEncryptor(settings.encryption_key)
            sample_db = SampleDatabase(settings.db_path)
            sample_db.initialize()
            repository = SampleRepository(sample_db, encryptor)
            logger.info(
                "Sample bank initialized: %s (schema v%d)",
                settings.db_path,
                sample_db.get_schema_version(),
            )
        except (EncryptionError, DatabaseError) as exc:
            logger.error("Failed to initialize storage: %s", exc)
            logger.warning("Continuing without persistence — pushed samples will only be logged")
    else:
        logger.info(
            "No ENCRYPTION_KEY configured — pushed samples will only be logged. "
            "Set ENCRYPTION_KEY to enable the sample bank."
        )

    push_sink: PushSink
    if repository is not None:
        push_sink = RepositoryPushSink(repository)
    else:
        push_sink = LoggingPushSink()

    # --- Chart controllers ---
    anchor_store = InMemoryAnchorStore()
    controllers: dict[bool, MobilityChartController] = {}
    for speed_mode in (False, True):
        controller = MobilityChartController(
            store,
            anchor_store,
            push_sink,
            speed_mode=speed_mode,
            first_weekday=settings.first_weekday,
        )
        controller.load()
        controllers[speed_mode] = controller

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": "SmoothWalker Mobility",
            "version": VERSION,
            "data_source": data_source,
            "storage_enabled": repository is not None,
        }
        if repository is not None:
            status["samples_stored"] = repository.count_samples()
        return status

    register_mobility_chart_tools(server, controllers, anchor_store)
    logger.info("Mobility chart tools registered")

    if repository is not None:

        @server.tool
        def stored_sample_count(data_type: str = "") -> dict:
            """Count pushed samples in the sample bank.

            Args:
                data_type: Optional HealthKit identifier to filter by.
            """
            return {
                "data_type": data_type or "all",
                "count": repository.count_samples(sample_type=data_type or None),
            }

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when accessed (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
