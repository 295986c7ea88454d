import logging
from datetime import datetime, timedelta
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from config import get_settings
from services.relationship_store import RelationshipStore
from utils.time_utils import utc_now

logger = logging.getLogger(__name__)
settings = get_settings()

scheduler = AsyncIOScheduler(timezone="UTC")

_scheduler_enabled: bool = settings.SCHEDULER_ENABLED


def set_scheduler_enabled(enabled: bool) -> None:
    global _scheduler_enabled
    _scheduler_enabled = enabled
    if scheduler.running:
        if enabled:
            scheduler.resume()
        else:
            scheduler.pause()
    elif enabled:
        start_scheduler()


def is_scheduler_enabled() -> bool:
    return _scheduler_enabled


def retention_cutoff(retention_days: int | None = None) -> datetime:
    days = settings.REQUEST_HISTORY_RETENTION_DAYS if retention_days is None else retention_days
    return utc_now() - timedelta(days=days)


async def prune_request_history_job(store: RelationshipStore | None = None,
                                    retention_days: int | None = None) -> int:
    """Delete accepted/declined requests resolved longer ago than the retention window."""
    if store is None:
        from api.deps import get_services
        store = get_services().store
    cutoff = retention_cutoff(retention_days)
    try:
        deleted = await store.prune_history(cutoff)
    except Exception as e:
        logger.error(f"prune_request_history_job failed: {e}", exc_info=True)
        return 0
    logger.info(f"Pruned {deleted} resolved friend requests resolved before {cutoff.isoformat()}")
    return deleted


def start_scheduler() -> None:
    scheduler.add_job(prune_request_history_job, "interval",
                      minutes=settings.HISTORY_PRUNE_INTERVAL_MINUTES,
                      id="prune_request_history", replace_existing=True)
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
