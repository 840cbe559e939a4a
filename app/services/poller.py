# app/services/poller.py
"""
Telemetry polling service — keeps every dashboard feature's view model fresh.

Each feature (monitoring, alerts, access-safety) gets its own repeating task on the
office scheduler, running its reconciler's tick at the feature's cadence. A tick
never raises: telemetry failures degrade to safe defaults inside the reconciler,
and anything unexpected is logged by the scheduler and retried on the next tick.
"""

from app.services.smart_office import SmartOffice
from app.utils.logger import get_logger

logger = get_logger(__name__)

POLL_KEY_PREFIX = "poll:"


def poll_key(feature: str) -> str:
    return f"{POLL_KEY_PREFIX}{feature}"


def start_polling(office: SmartOffice, intervals: dict):
    """
    Launch one polling task per feature. Called once at backend startup
    (must run inside the event loop).
    """
    if not office.client.enabled:
        logger.warning("No ThingSpeak channel configured — views use local state and fallback readings only.")

    for name, reconciler in office.reconcilers.items():
        interval = intervals.get(name)
        if not interval:
            logger.warning(f"No poll interval for '{name}' — polling disabled for it")
            continue
        reconciler.start()
        office.scheduler.every(poll_key(name), interval, reconciler.tick, overlap=True)
        logger.info(f"📡 Polling {name} every {interval}s (fields {reconciler.field_ids})")


def stop_polling(office: SmartOffice) -> int:
    """Cancel the poll loops. In-flight ticks finish but their results are discarded."""
    for reconciler in office.reconcilers.values():
        reconciler.stop()
    stopped = office.scheduler.cancel_prefix(POLL_KEY_PREFIX)
    logger.info(f"🛑 Stopped {stopped} poll loops")
    return stopped
