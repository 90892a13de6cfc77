"""To-do task model and operations."""

from .manager import TaskManager
from .models import Task, TaskState

__all__ = ["Task", "TaskManager", "TaskState"]
