"""Periodic digest ticker driving NotificationDispatcher.tick."""

from __future__ import annotations

import asyncio

import structlog

from alerts.dispatcher import NotificationDispatcher

logger = structlog.get_logger()


async def run_digest_ticker(
    dispatcher: NotificationDispatcher,
    interval_seconds: float,
    stop: asyncio.Event,
) -> int:
    """
    Call dispatcher.tick every interval until `stop` is set.

    A failing tick is logged and the loop keeps going. Returns the number
    of ticks run.
    """
    ticks = 0
    logger.info("ticker.started", interval_seconds=interval_seconds)
    while not stop.is_set():
        try:
            await dispatcher.tick()
        except Exception as exc:  # noqa: BLE001
            logger.error("ticker.tick_failed", error=str(exc), exc_info=True)
        ticks += 1
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue
    logger.info("ticker.stopped", ticks=ticks)
    return ticks
