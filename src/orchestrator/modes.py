"""Catalogue of workflow topologies with model-count limits."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WorkflowMode(BaseModel):
    mode: str
    name: str
    description: str
    min_models: int
    max_models: int
    characteristics: list[str]


class ModeValidation(BaseModel):
    valid: bool
    error: str | None = None


WORKFLOW_MODES: dict[str, WorkflowMode] = {
    m.mode: m
    for m in (
        WorkflowMode(
            mode="single",
            name="Single Model",
            description="Execute with a single AI model",
            min_models=1,
            max_models=1,
            characteristics=["Simple", "Fast", "Cost-effective"],
        ),
        WorkflowMode(
            mode="agentic",
            name="Agentic Workflow",
            description="3-stage workflow: Planner -> Executor -> Reviewer",
            min_models=1,
            max_models=3,
            characteristics=["Structured", "Quality-focused", "Autonomous"],
        ),
        WorkflowMode(
            mode="parallel",
            name="Parallel Execution",
            description="All models run independently and compare results",
            min_models=2,
            max_models=10,
            characteristics=["Fast", "Comparative", "Diverse perspectives"],
        ),
        WorkflowMode(
            mode="chain",
            name="Sequential Chain",
            description="Models refine output sequentially, each building on previous",
            min_models=2,
            max_models=10,
            characteristics=["Iterative refinement", "Progressive improvement", "Context routing"],
        ),
        WorkflowMode(
            mode="all-to-all",
            name="All-to-All Mesh",
            description="All models communicate with each other in mesh network",
            min_models=2,
            max_models=10,
            characteristics=["Collaborative", "Emergent solutions", "Most expensive"],
        ),
    )
}


def get_workflow_modes() -> list[dict[str, Any]]:
    return [m.model_dump() for m in WORKFLOW_MODES.values()]


def validate_workflow_mode(workflow_mode: str, model_count: int) -> ModeValidation:
    mode = WORKFLOW_MODES.get(workflow_mode)
    if mode is None:
        return ModeValidation(valid=False, error=f"Unknown workflow mode: {workflow_mode}")
    if model_count < mode.min_models:
        return ModeValidation(
            valid=False,
            error=f"{mode.name} requires at least {mode.min_models} model(s). Provided: {model_count}",
        )
    if model_count > mode.max_models:
        return ModeValidation(
            valid=False,
            error=f"{mode.name} supports up to {mode.max_models} models. Provided: {model_count}",
        )
    return ModeValidation(valid=True)


def recommend_workflow(model_count: int, goal: str = "quality") -> WorkflowMode | None:
    """Goal is one of speed, quality, cost. None when no mode fits the model count."""
    compatible = {k: m for k, m in WORKFLOW_MODES.items() if m.min_models <= model_count <= m.max_models}
    if not compatible:
        return None
    if goal == "speed" and model_count > 1 and "parallel" in compatible:
        return compatible["parallel"]
    if goal == "quality" and model_count >= 2:
        for preferred in ("all-to-all", "chain"):
            if preferred in compatible:
                return compatible[preferred]
    if goal == "cost" and model_count == 1 and "single" in compatible:
        return compatible["single"]
    return next(iter(compatible.values()))
