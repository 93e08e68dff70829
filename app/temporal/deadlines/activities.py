"""Temporal activity running one deadline reconciliation pass."""

from datetime import datetime
from typing import Optional

from temporalio import activity

from app.services.deadlines.scheduler import run_scheduled_deadline_check
from app.temporal.core.activity_registry import ActivityRegistry
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


@ActivityRegistry.register("deadlines", "run_deadline_check_activity")
@activity.defn(name="run_deadline_check_activity")
async def run_deadline_check_activity(now_iso: Optional[str] = None) -> dict:
    """Run the deadline check and return its result as a JSON-safe dict.

    Args:
        now_iso: Evaluation time in ISO-8601; defaults to the current time
    """
    now = datetime.fromisoformat(now_iso) if now_iso else None
    result = await run_scheduled_deadline_check(now)
    LOGGER.info(
        f"Deadline check activity done: created={result.alerts_created}, "
        f"escalated={result.alerts_escalated}, failed={len(result.failed_entities)}"
    )
    return result.model_dump(mode="json")
