from src.core.contracts.agent import StepInvokeRequest
from src.core.contracts.collaborators import ContextManager, Planner, Reviewer, StepExecutor
from src.core.contracts.orchestrator import (
    ChainResult,
    ComparisonResult,
    ExecutionSummary,
    MeshResult,
    ModelRunResult,
    PresetWorkflowResult,
    Step,
    StepResult,
    Usage,
    WorkflowOptions,
    WorkflowResult,
)
from src.core.contracts.phases import (
    ChainContextResult,
    ContextResult,
    CustomWorkflowResult,
    PlanResult,
    PlanValidation,
    RefinementResult,
    ReviewResult,
)

__all__ = [
    "StepInvokeRequest",
    "ContextManager",
    "Planner",
    "Reviewer",
    "StepExecutor",
    "ChainResult",
    "ComparisonResult",
    "ExecutionSummary",
    "MeshResult",
    "ModelRunResult",
    "PresetWorkflowResult",
    "Step",
    "StepResult",
    "Usage",
    "WorkflowOptions",
    "WorkflowResult",
    "ChainContextResult",
    "ContextResult",
    "CustomWorkflowResult",
    "PlanResult",
    "PlanValidation",
    "RefinementResult",
    "ReviewResult",
]
