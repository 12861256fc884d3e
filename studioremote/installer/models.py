"""Data models for the reconciler."""

from dataclasses import dataclass, field

from .components import Component


@dataclass
class PlanStep:
    component: Component
    display_name: str
    dependencies: list[Component] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.component.value


@dataclass
class Plan:
    steps: list[PlanStep]

    @property
    def components(self) -> list[Component]:
        return [step.component for step in self.steps]

    def is_empty(self) -> bool:
        return len(self.steps) == 0


@dataclass
class StepResult:
    component: Component
    status: str
    output: str = ""


__all__ = [
    "PlanStep",
    "Plan",
    "StepResult",
]
