"""Installation reconciler: probe, plan and apply."""

from .components import (
    Component,
    ComponentSpec,
    ComponentState,
    InstallationState,
    get_all_components,
    get_component,
    get_missing_components,
    has_any_installation,
    optional_components,
    probe_components,
    required_components,
)
from .installation import apply_plan, confirm_repair, failed_step
from .models import Plan, PlanStep, StepResult
from .planning import plan_components, plan_repair, render_plan

__all__ = [
    "Component",
    "ComponentSpec",
    "ComponentState",
    "InstallationState",
    "Plan",
    "PlanStep",
    "StepResult",
    "get_all_components",
    "get_component",
    "required_components",
    "optional_components",
    "probe_components",
    "get_missing_components",
    "has_any_installation",
    "plan_repair",
    "plan_components",
    "render_plan",
    "confirm_repair",
    "apply_plan",
    "failed_step",
]
