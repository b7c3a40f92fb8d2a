from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Step(BaseModel):
    """Unit of work. Extra keys from planners or callers are kept as-is."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str = ""
    description: str = ""
    action: str = "analyze"
    priority: str = "medium"
    estimated_complexity: str = "moderate"
    dependencies: list[str] = Field(default_factory=list)
    type: str | None = None
    prompt: str | None = None
    target: str | None = None
    file: str | None = None
    model: str | None = None
    is_bottleneck: bool = False
    bottleneck_info: dict[str, Any] | None = None

    def step_id(self, index: int) -> str:
        return self.id or f"step-{index}"


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: Usage) -> Usage:
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class StepResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    output: str | dict[str, Any] | None = None
    usage: Usage | None = None
    error: str | None = None
    step_name: str = ""
    action: str | None = None
    model: str | None = None
    latency_ms: int | None = None
    timestamp: str | None = None


class ModelRunResult(StepResult):
    """A StepResult tagged with the model that produced it (comparison, chain, mesh)."""

    position: int | None = None  # 1-based chain position
    round: int | None = None  # mesh round
    collaborated_with: list[str] | None = None


class ExecutionSummary(BaseModel):
    results: list[StepResult] = Field(default_factory=list)
    final_code: str | dict[str, Any] | None = None
    success_count: int = 0
    failure_count: int = 0
    total_usage: Usage = Field(default_factory=Usage)


class WorkflowOptions(BaseModel):
    """Caller options shared by every topology. Unset values take the topology default."""

    model_config = ConfigDict(extra="allow")

    stop_on_error: bool | None = None
    read_only: bool = False
    dry_run: bool = False
    strategy: str = "balanced"
    planner_model: str | None = None
    executor_model: str | None = None
    reviewer_model: str | None = None
    enable_review: bool = True
    enable_refinement: bool = True
    optimize_context: bool = True
    delay_between_steps_ms: int = 0
    max_concurrency: int = 4

    @property
    def is_read_only(self) -> bool:
        return self.read_only or self.dry_run


class WorkflowResult(BaseModel):
    results: list[StepResult] = Field(default_factory=list)
    final_output: str | dict[str, Any] | None = None
    success: bool = False
    duration_ms: int = 0
    total_usage: Usage = Field(default_factory=Usage)


class PresetWorkflowResult(WorkflowResult):
    workflow_id: str
    workflow_name: str
    output_format: str | None = None


class ComparisonResult(WorkflowResult):
    prompt: str
    models: list[str]
    results: list[ModelRunResult] = Field(default_factory=list)
    success_count: int = 0


class ChainResult(WorkflowResult):
    prompt: str
    models: list[str]
    results: list[ModelRunResult] = Field(default_factory=list)
    context_routing: dict[str, Any] | None = None


class MeshMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    round: int
    sender: str
    recipient: str
    chars: int


class ModelStateSnapshot(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    current_output: str | None = None
    history: list[str] = Field(default_factory=list)
    messages_received: list[MeshMessage] = Field(default_factory=list)
    messages_sent: list[MeshMessage] = Field(default_factory=list)


class MeshResult(WorkflowResult):
    model_config = ConfigDict(protected_namespaces=())

    prompt: str
    models: list[str]
    iterations: int
    results: list[ModelRunResult] = Field(default_factory=list)
    model_states: list[ModelStateSnapshot] = Field(default_factory=list)
    messages: list[MeshMessage] = Field(default_factory=list)


class BatchRunResult(WorkflowResult):
    batches_executed: int = 0
    stopped_early: bool = False
