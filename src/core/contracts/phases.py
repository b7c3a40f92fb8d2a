"""Records exchanged with the planner, reviewer and context manager."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.core.contracts.orchestrator import ExecutionSummary, Step, Usage, WorkflowResult


class PlanResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    steps: list[Step] = Field(default_factory=list)
    strategy: str = ""
    estimated_steps: int | None = None
    model: str | None = None
    usage: Usage | None = None


class PlanValidation(BaseModel):
    valid: bool
    issues: list[str] = Field(default_factory=list)
    step_count: int = 0


class ReviewIssue(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = "other"
    severity: str = "medium"
    description: str = ""
    location: str | None = None


class ReviewImprovement(BaseModel):
    model_config = ConfigDict(extra="allow")

    category: str = "other"
    suggestion: str = ""
    priority: str = "medium"


class ReviewResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    goal_achieved: bool | None = None
    quality: str | None = None
    issues: list[ReviewIssue] = Field(default_factory=list)
    improvements: list[ReviewImprovement] = Field(default_factory=list)
    summary: str = ""
    confidence: float | None = None
    model: str | None = None
    usage: Usage | None = None


class RefinementResult(BaseModel):
    refined_code: str | dict[str, Any] | None = None
    improved: bool = False
    changes: list[dict[str, Any]] = Field(default_factory=list)
    usage: Usage | None = None
    error: str | None = None


class ContextMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    compression_ratio: float = 1.0
    original_tokens: int = 0
    optimized_tokens: int = 0
    chunks_used: int = 0


class ContextResult(BaseModel):
    context: str
    metadata: ContextMetadata = Field(default_factory=ContextMetadata)


class RoutedContext(BaseModel):
    model_config = ConfigDict(extra="allow")

    context: str
    shared_with_steps: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChainContextMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_chunks: int = 0
    reuse_efficiency: float = 0.0


class ChainContextResult(BaseModel):
    context_map: dict[str, RoutedContext] = Field(default_factory=dict)
    metadata: ChainContextMetadata = Field(default_factory=ChainContextMetadata)


class CustomWorkflowResult(WorkflowResult):
    goal: str
    plan: PlanResult
    execution: ExecutionSummary
    review: ReviewResult | None = None
    refined: bool = False
    context_optimization: ContextMetadata | None = None
