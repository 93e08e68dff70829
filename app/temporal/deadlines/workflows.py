"""Temporal workflow wrapping the deadline check activity."""

from datetime import timedelta
from typing import Dict, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy

from app.temporal.core.constants import DEADLINE_CHECK_ACTIVITY_TIMEOUT_SECONDS
from app.temporal.core.workflow_registry import WorkflowRegistry


@WorkflowRegistry.register()
@workflow.defn
class DeadlineCheckWorkflow:
    """Runs one deadline check pass, evaluated at the workflow's start time."""

    @workflow.run
    async def run(self, payload: Optional[Dict] = None) -> dict:
        payload = payload or {}
        now_iso = payload.get("now") or workflow.now().isoformat()

        # A failed pass waits for the next scheduled run instead of retrying
        return await workflow.execute_activity(
            "run_deadline_check_activity",
            args=[now_iso],
            start_to_close_timeout=timedelta(seconds=DEADLINE_CHECK_ACTIVITY_TIMEOUT_SECONDS),
            retry_policy=RetryPolicy(maximum_attempts=1),
        )
