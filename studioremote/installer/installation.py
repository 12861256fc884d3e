"""Plan execution and confirmation."""

import logging
from typing import Callable

import click

from ..config import ConfigRecord
from ..context import HostContext
from ..errors import ActionError
from .actions import get_action
from .models import Plan, PlanStep, StepResult

_logging = logging.getLogger(__name__)


def confirm_repair(plan: Plan, skip_confirmation: bool = False) -> bool:
    if plan.is_empty() or skip_confirmation:
        return True

    click.echo("")
    click.echo("=" * 60)
    click.echo("Components to repair:")
    for step in plan.steps:
        click.echo(f"  • {step.display_name} ({step.name})")
    click.echo("=" * 60)

    return click.confirm("\nRepair now?", default=True)


async def apply_plan(
    ctx: HostContext,
    plan: Plan,
    record: ConfigRecord,
    dry_run: bool = False,
    on_step: Callable[[PlanStep], None] | None = None,
) -> list[StepResult]:
    """Run each step's action in order, stopping at the first failure.

    Steps completed before a failure are left in place; the failed step is
    the last entry in the returned list.
    """
    results = []

    for step in plan.steps:
        if on_step:
            on_step(step)

        if dry_run:
            results.append(StepResult(step.component, "dry-run"))
            continue

        action = get_action(step.component)
        try:
            output = await action(ctx, record)
        except ActionError as e:
            _logging.error(f"Step {step.name} failed: {e}")
            results.append(StepResult(step.component, "failed", e.output or str(e)))
            break

        _logging.info(f"Step {step.name} applied")
        results.append(StepResult(step.component, "success", output))

    return results


def failed_step(results: list[StepResult]) -> StepResult | None:
    return next((r for r in results if r.status == "failed"), None)


__all__ = [
    "confirm_repair",
    "apply_plan",
    "failed_step",
]
