"""
Task operations for the tdi CLI.

There is no task backend yet: listing returns nothing and the mutating
operations only log what they would do. The CLI reports success for all of
them.
"""

import logging
from typing import List

from .models import Task

logger = logging.getLogger(__name__)

# Placeholder id handed to new tasks until ids come from a backend
NEW_TASK_ID = 99


class TaskManager:
    """Pass-through task operations."""

    def list_tasks(self) -> List[Task]:
        return []

    def add_task(self, text: str) -> Task:
        task = Task(id=NEW_TASK_ID, text=text)
        logger.info(f"Adding new task: {task}")
        return task

    def complete_task(self, task_id: int) -> int:
        logger.info(f"Completing task: {task_id}")
        return task_id

    def reopen_task(self, task_id: int) -> int:
        logger.info(f"Reopening task: {task_id}")
        return task_id

    def delete_task(self, task_id: int) -> int:
        logger.info(f"Deleting task: {task_id}")
        return task_id
