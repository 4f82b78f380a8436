"""MCP tools exposing mobility chart data.

One controller is kept per chart mode, so authorization and background
subscriptions happen once per server; later calls only re-run the
aggregation.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from smoothwalker.domains.mobility.models import ControllerState

if TYPE_CHECKING:
    from smoothwalker.domains.mobility.connectors.anchors import InMemoryAnchorStore
    from smoothwalker.domains.mobility.controllers.mobility_chart import (
        MobilityChartController,
    )

logger = logging.getLogger(__name__)

# How long a tool call waits for the reload signal after aggregating.
_READY_TIMEOUT_S = 10.0


def register_mobility_chart_tools(
    mcp: FastMCP,
    controllers: dict[bool, MobilityChartController],
    anchor_store: InMemoryAnchorStore,
) -> None:
    """Register chart tools on the MCP server.

    Args:
        mcp: Server to register on.
        controllers: Controller per speed mode (``False`` = steps/distance,
            ``True`` = walking speed at three intervals).
        anchor_store: Shared anchor store, reported by the sync status tool.
    """

    @mcp.tool
    async def mobility_charts(
        ctx: Context,
        speed_mode: bool = False,
    ) -> str:
        """Return chart series for mobility health data.

        The default mode charts daily step count and walking + running
        distance over the last week. Speed mode charts walking speed daily
        (last week), weekly (last month) and monthly (last year).

        Args:
            speed_mode: Chart walking speed instead of steps and distance.
        """
        controller = controllers[speed_mode]
        start_time = time.monotonic()

        if controller.state is ControllerState.UNLOADED:
            await controller.view_will_appear()
        elif controller.state is not ControllerState.AWAITING_AUTHORIZATION:
            await controller.load_data()

        if controller.state is ControllerState.AWAITING_AUTHORIZATION:
            return json.dumps({
                "status": "unauthorized",
                "message": "Access to the requested health data was not granted.",
            })

        await controller.wait_until_ready(_READY_TIMEOUT_S)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        return json.dumps({
            "status": "ok",
            "speed_mode": speed_mode,
            "series": [series.as_dict() for series in controller.data],
            "duration_ms": round(elapsed_ms, 1),
        })

    @mcp.tool
    async def mobility_sync_status(ctx: Context) -> str:
        """Report background subscriptions and their current anchors."""
        return json.dumps({
            "controllers": {
                ("speed" if mode else "mobility"): {
                    "state": controller.state.value,
                    "subscriptions": [q.sample_type.identifier for q in controller.queries],
                    "reloads": controller.reload_count,
                    "background_updates": controller.background_update_count,
                }
                for mode, controller in controllers.items()
            },
            "anchors": anchor_store.snapshot(),
        })
