from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from src.core.contracts.orchestrator import Step


class RedundancyEntry(BaseModel):
    step_index: int
    duplicate_of: int
    step: Step
    reason: str = "Same task signature - identical work detected"


class BottleneckEntry(BaseModel):
    step_index: int
    step: Step
    dependent_count: int
    reason: str
    suggestion: str = "Consider breaking this step into smaller parallel tasks"


class GroupMember(BaseModel):
    index: int
    step: Step


class ParallelGroup(BaseModel):
    steps: list[GroupMember]
    dependencies: list[str] = Field(default_factory=list)
    reason: str = "No conflicting dependencies - can execute simultaneously"
    expected_speedup: str


class ContextRecommendation(BaseModel):
    step_index: int
    essential_keys: list[str]
    reduced_context: dict[str, Any]
    original_size: int
    reduced_size: int
    reduction_percentage: str
    reason: str = "Only route essential context keys to reduce token usage"


class OptimizationAnalysis(BaseModel):
    redundancy: list[RedundancyEntry] = Field(default_factory=list)
    bottlenecks: list[BottleneckEntry] = Field(default_factory=list)
    parallel_groups: list[ParallelGroup] = Field(default_factory=list)
    context_optimization: list[ContextRecommendation] = Field(default_factory=list)


class OptimizationMetrics(BaseModel):
    original_steps: int
    optimized_steps: int
    steps_removed: int
    parallel_groups: int
    estimated_speedup: str


class RemovedSteps(BaseModel):
    redundant: list[RedundancyEntry] = Field(default_factory=list)
    count: int = 0


class OptimizedWorkflow(BaseModel):
    # parallel_groups and context_optimization index optimized_steps;
    # removed and bottlenecks index the input list (see original_indices).
    optimized_steps: list[Step]
    original_indices: list[int]
    parallel_groups: list[ParallelGroup]
    context_optimization: list[ContextRecommendation]
    removed: RemovedSteps
    bottlenecks: list[BottleneckEntry]
    metrics: OptimizationMetrics


class BatchStep(BaseModel):
    step_index: int
    original_index: int
    step: Step
    context: dict[str, Any]


class Batch(BaseModel):
    batch_index: int
    type: Literal["sequential", "parallel"]
    steps: list[BatchStep]


class PlanSummary(BaseModel):
    total_batches: int
    parallel_batches: int
    sequential_batches: int
    removed_redundancy: int
    identified_bottlenecks: int


class ExecutionPlan(BaseModel):
    batches: list[Batch]
    optimization: OptimizationMetrics
    summary: PlanSummary


class OptimizerMetrics(BaseModel):
    redundancy_detections: int = 0
    bottlenecks_identified: int = 0
    async_optimizations: int = 0
    context_reductions: int = 0
