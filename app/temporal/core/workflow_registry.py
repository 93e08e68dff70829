from typing import Dict, List, Type

from app.temporal.core.constants import DEADLINES_TASK_QUEUE


class WorkflowRegistry:
    """Workflow classes grouped by the task queue their worker polls."""

    _queues: Dict[str, List[Type]] = {}

    @classmethod
    def register(cls, task_queue: str = DEADLINES_TASK_QUEUE):
        """Decorator to register a workflow class on a task queue."""
        def decorator(workflow_class):
            workflows = cls._queues.setdefault(task_queue, [])
            if workflow_class not in workflows:
                workflows.append(workflow_class)
            return workflow_class
        return decorator

    @classmethod
    def workflows_by_queue(cls) -> Dict[str, List[Type]]:
        return {queue: list(workflows) for queue, workflows in cls._queues.items()}
