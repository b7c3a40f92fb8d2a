from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.core.contracts.orchestrator import Step, WorkflowOptions


class PresetRequest(BaseModel):
    code: str
    options: WorkflowOptions = Field(default_factory=WorkflowOptions)


class CustomRequest(BaseModel):
    goal: str
    code: str
    options: WorkflowOptions = Field(default_factory=WorkflowOptions)


class MultiModelRequest(BaseModel):
    prompt: str
    code: str
    models: list[str] = Field(min_length=1)
    options: WorkflowOptions = Field(default_factory=WorkflowOptions)


class MeshRequest(MultiModelRequest):
    iterations: int = Field(default=2, ge=1)


class StepsRequest(BaseModel):
    steps: list[Step]
    context: dict[str, Any] = Field(default_factory=dict)
    remove_redundant: bool = True


class StepwiseRequest(BaseModel):
    code: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)


class ModeValidationRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    workflow_mode: str
    model_count: int


class RecommendRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_count: int
    goal: str = "quality"


class RunResponse(BaseModel):
    """Envelope returned by every topology endpoint."""

    run_id: str | None = None
    status: str  # "completed" | "failed" | "partial"
    result: dict[str, Any]
