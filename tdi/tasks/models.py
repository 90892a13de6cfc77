"""Data models for to-do tasks."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class TaskState(Enum):
    """Lifecycle of a task. Only TODO is produced today."""

    TODO = "todo"
    DONE = "done"
    DELETED = "deleted"


@dataclass
class Task:
    """
    A single to-do item.

    Attributes:
        id: Task identifier (non-negative)
        text: Task description
        state: Lifecycle state
        updated_at: Last modification time (UTC)
    """

    id: int
    text: str
    state: TaskState = TaskState.TODO
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.id < 0:
            raise ValueError(f"task id must be non-negative, got {self.id}")

    def to_dict(self) -> dict:
        """JSON-ready representation; ``updated_at`` as epoch seconds."""
        return {
            "id": self.id,
            "text": self.text,
            "state": self.state.value,
            "updated_at": int(self.updated_at.timestamp()),
        }
