"""
Task commands for the tdi CLI.

These commands are wired to TaskManager, which has no backend yet; they
always succeed.
"""

import json

import click

from tdi.tasks import TaskManager, TaskState

from .utils import print_success

TASK_ID = click.IntRange(min=0)


@click.command()
@click.option("--json", "output_json", is_flag=True, help="JSON output")
def show(output_json: bool) -> None:
    """List tasks."""
    tasks = TaskManager().list_tasks()

    if output_json:
        click.echo(json.dumps([task.to_dict() for task in tasks]))
        return

    if not tasks:
        click.echo("No tasks.")
        return

    for task in tasks:
        marker = "x" if task.state == TaskState.DONE else " "
        click.echo(f"[{marker}] {task.id:>4}  {task.text}")


@click.command()
@click.argument("task")
def add(task: str) -> None:
    """
    Add a new task.

    Example: tdi add "buy milk"
    """
    created = TaskManager().add_task(task)
    print_success(f"Added task {created.id}: {created.text}")


@click.command()
@click.argument("task_id", type=TASK_ID)
def complete(task_id: int) -> None:
    """Mark a task as done."""
    TaskManager().complete_task(task_id)
    print_success(f"Completed task {task_id}")


@click.command()
@click.argument("task_id", type=TASK_ID)
def reopen(task_id: int) -> None:
    """Reopen a completed task."""
    TaskManager().reopen_task(task_id)
    print_success(f"Reopened task {task_id}")


@click.command()
@click.argument("task_id", type=TASK_ID)
def delete(task_id: int) -> None:
    """Delete a task."""
    TaskManager().delete_task(task_id)
    print_success(f"Deleted task {task_id}")
