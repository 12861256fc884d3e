"""Repair planning and rendering."""

from .components import (
    Component,
    ComponentState,
    InstallationState,
    get_all_components,
)
from .models import Plan, PlanStep


def _dependency_order(components: list[Component]) -> list[Component]:
    """Topologically sort ``components`` over the static dependency graph.

    Only edges between members of ``components`` are considered. Ties are
    broken by registry declaration order so the result is deterministic.
    """
    specs = get_all_components()
    declared = [c for c in specs if c in components]
    selected = set(declared)

    pending = {
        c: {dep for dep in specs[c].dependencies if dep in selected} for c in declared
    }
    ordered: list[Component] = []

    while pending:
        ready = [c for c in declared if c in pending and not pending[c]]
        if not ready:
            cycle = ", ".join(c.value for c in pending)
            raise ValueError(f"Dependency cycle between components: {cycle}")
        current = ready[0]
        ordered.append(current)
        del pending[current]
        for deps in pending.values():
            deps.discard(current)

    return ordered


def plan_repair(state: InstallationState) -> Plan:
    """Return the missing components of ``state`` in dependency order.

    An empty plan means the host is fully healthy.
    """
    specs = get_all_components()
    missing = [c for c, s in state.states.items() if s == ComponentState.MISSING]

    steps = [
        PlanStep(
            component=component,
            display_name=specs[component].display_name,
            dependencies=list(specs[component].dependencies),
        )
        for component in _dependency_order(missing)
    ]
    return Plan(steps=steps)


def plan_components(components: list[Component]) -> Plan:
    """Plan an explicit list of components regardless of their state."""
    specs = get_all_components()
    return Plan(
        steps=[
            PlanStep(
                component=component,
                display_name=specs[component].display_name,
                dependencies=list(specs[component].dependencies),
            )
            for component in _dependency_order(components)
        ]
    )


def render_plan(plan: Plan) -> str:
    if plan.is_empty():
        return "All components are healthy."

    lines = ["Repair Plan:", ""]
    for i, step in enumerate(plan.steps, 1):
        lines.append(f"  {i}. {step.display_name} ({step.name})")
        if step.dependencies:
            deps = ", ".join(dep.value for dep in step.dependencies)
            lines.append(f"     after: {deps}")
    return "\n".join(lines)


__all__ = [
    "plan_repair",
    "plan_components",
    "render_plan",
]
