"""Background sweep for reputation and the blacklist cache.

Runs as an asyncio task during the application lifespan. Each cycle
recomputes every member's score from the event log, which also picks up
events whose recompute failed at write time, then reloads the blacklist
snapshot.
"""

import asyncio

from trust_engine.config import get_settings
from trust_engine.database import get_db_session, get_session_factory
from trust_engine.logging_config import get_logger
from trust_engine.services.keyword_filter import refresh_blacklist_snapshot
from trust_engine.services.reputation_service import recompute_all

logger = get_logger(__name__)

_sweep_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


async def run_sweep_cycle() -> dict[str, int]:
    """Single cycle: recompute all members, then refresh the blacklist snapshot."""
    counts = await recompute_all(get_session_factory())

    async with get_db_session() as session:
        snapshot = await refresh_blacklist_snapshot(session)
    counts["blacklist_keywords"] = len(snapshot.keywords)
    return counts


async def scheduler_loop(stop_event: asyncio.Event, interval_seconds: float | None = None):
    """Main scheduler loop. Runs until stop_event is set."""
    if interval_seconds is None:
        interval_seconds = get_settings().reputation_sweep_interval_hours * 3600
    logger.info("scheduler_started", interval_seconds=interval_seconds)

    while not stop_event.is_set():
        try:
            await run_sweep_cycle()
        except Exception:
            logger.exception("scheduler_cycle_error")

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            break
        except asyncio.TimeoutError:
            pass


async def start_scheduler() -> None:
    global _sweep_task, _stop_event
    _stop_event = asyncio.Event()
    _sweep_task = asyncio.create_task(scheduler_loop(_stop_event))


async def stop_scheduler() -> None:
    """Stop the sweep gracefully."""
    global _sweep_task, _stop_event
    if _stop_event is not None:
        _stop_event.set()
    if _sweep_task is not None:
        _sweep_task.cancel()
        try:
            await _sweep_task
        except asyncio.CancelledError:
            pass
    _sweep_task = None
    _stop_event = None
    logger.info("scheduler_stopped")
