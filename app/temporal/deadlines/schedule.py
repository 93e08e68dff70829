"""Registration of the daily deadline check schedule."""

from typing import Optional

from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleOverlapPolicy,
    SchedulePolicy,
    ScheduleSpec,
)

from app.core.config import settings
from app.core.temporal_client import get_temporal_client
from app.temporal.core.constants import DEADLINES_TASK_QUEUE
from app.temporal.deadlines.workflows import DeadlineCheckWorkflow
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


def build_deadline_schedule(cron: Optional[str] = None) -> Schedule:
    """Daily schedule that skips a run while the previous one is still going."""
    return Schedule(
        action=ScheduleActionStartWorkflow(
            DeadlineCheckWorkflow.run,
            {},
            id=f"{settings.deadlines.schedule_id}-run",
            task_queue=DEADLINES_TASK_QUEUE,
        ),
        spec=ScheduleSpec(cron_expressions=[cron or settings.deadlines.schedule_cron]),
        policy=SchedulePolicy(overlap=ScheduleOverlapPolicy.SKIP),
    )


async def ensure_deadline_schedule(client: Optional[Client] = None) -> bool:
    """Create the schedule if it does not exist yet.

    Returns:
        True if the schedule was created, False if it already existed
    """
    client = client or await get_temporal_client()
    try:
        await client.create_schedule(settings.deadlines.schedule_id, build_deadline_schedule())
    except ScheduleAlreadyRunningError:
        LOGGER.info(f"Schedule '{settings.deadlines.schedule_id}' already exists")
        return False

    LOGGER.info(
        f"Created schedule '{settings.deadlines.schedule_id}' ({settings.deadlines.schedule_cron})"
    )
    return True
