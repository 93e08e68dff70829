"""Shared constants for Temporal workflows."""

from app.core.config import settings

# Task Queues
DEADLINES_TASK_QUEUE = settings.temporal_task_queue

# Timeouts
DEADLINE_CHECK_ACTIVITY_TIMEOUT_SECONDS = 1800  # 30 minutes
