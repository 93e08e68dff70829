"""Temporal worker for the daily deadline check.

This worker:
- Connects to the Temporal server configured in settings
- Registers the deadline workflow and activity
- Makes sure the daily schedule exists before polling
"""

import asyncio

from temporalio.client import Client
from temporalio.worker import Worker
from temporalio.worker.workflow_sandbox import SandboxedWorkflowRunner, SandboxRestrictions

from app.core.config import settings

# Importing the modules registers their workflows and activities
import app.temporal.deadlines.activities  # noqa: F401
import app.temporal.deadlines.workflows  # noqa: F401

from app.temporal.core.activity_registry import ActivityRegistry
from app.temporal.core.workflow_registry import WorkflowRegistry
from app.temporal.deadlines.schedule import ensure_deadline_schedule
from app.utils.logging import get_logger

logger = get_logger(__name__)


async def connect_with_retries(max_retries: int = 5, retry_delay: int = 5) -> Client:
    """Connect to Temporal, retrying a few times while the server starts up."""
    for attempt in range(max_retries):
        try:
            logger.info(
                f"Connecting to Temporal server at {settings.temporal_host}:{settings.temporal_port} "
                f"(Attempt {attempt + 1}/{max_retries})"
            )
            return await Client.connect(
                target_host=f"{settings.temporal_host}:{settings.temporal_port}",
                namespace=settings.temporal_namespace,
            )
        except Exception as e:
            if attempt < max_retries - 1:
                logger.warning(f"Connection attempt {attempt + 1} failed: {e}. Retrying in {retry_delay}s...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error(f"Failed to connect to Temporal server after {max_retries} attempts: {e}")
                raise


async def run_workers():
    """Connect to Temporal, register the schedule and run one worker per queue."""
    client = await connect_with_retries()
    logger.info("Successfully connected to Temporal server")

    await ensure_deadline_schedule(client)

    all_activities = ActivityRegistry.get_all_activities()
    queues = WorkflowRegistry.workflows_by_queue()
    logger.info(
        f"Registered {sum(len(w) for w in queues.values())} workflows and {len(all_activities)} activities"
    )

    workers = []
    for queue_name, workflows in queues.items():
        worker = Worker(
            client,
            task_queue=queue_name,
            workflows=workflows,
            activities=list(all_activities.values()),
            # A single deadline pass at a time per worker
            max_concurrent_activities=1,
            workflow_runner=SandboxedWorkflowRunner(
                restrictions=SandboxRestrictions.default.with_passthrough_all_modules()
            ),
        )
        workers.append(worker.run())

    logger.info(f"Workers polling queues {list(queues.keys())}")
    await asyncio.gather(*workers)


if __name__ == "__main__":
    try:
        asyncio.run(run_workers())
    except KeyboardInterrupt:
        logger.info("Workers stopped by user")
    except Exception as e:
        logger.error(f"Worker failed: {e}", exc_info=True)
        raise
