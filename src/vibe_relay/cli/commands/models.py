"""Models command: task-based model recommendations."""

from typing import Optional

import click

from vibe_relay.cli.logging import cli_command, get_cli_logger
from vibe_relay.cli.output import emit_error, emit_success
from vibe_relay.cli.resilience import handle_keyboard_interrupt
from vibe_relay.core.providers.recommendations import (
    AGENT_ROLES,
    APIZH_TASK_MODELS,
    list_tasks,
    recommend_model,
)

logger = get_cli_logger()


@click.command("models")
@click.argument("task", required=False)
@click.pass_context
@cli_command("models")
@handle_keyboard_interrupt()
def models_cmd(ctx: click.Context, task: Optional[str]) -> None:
    """Show recommended models, or the model recommended for TASK."""
    if task is None:
        emit_success(
            {
                "tasks": dict(APIZH_TASK_MODELS),
                "agent_roles": [role.to_dict() for role in AGENT_ROLES.values()],
            }
        )
        return

    model = recommend_model(task)
    if model is None:
        emit_error(
            f"No recommendation for task: {task}",
            code="NOT_FOUND",
            error_type="not_found",
            remediation=f"Use one of: {', '.join(list_tasks())}",
            details={"task": task, "known_tasks": list_tasks()},
        )

    emit_success({"task": task.strip().lower(), "model": model})
