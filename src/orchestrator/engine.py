"""WorkflowEngine: one entry point wiring every topology to its collaborators."""
from __future__ import annotations

import logging
from typing import Any, Sequence

from src.core.config.models import EngineConfig
from src.core.contracts.collaborators import ContextManager, Planner, Reviewer, StepExecutor
from src.core.contracts.optimizer import ExecutionPlan, OptimizationAnalysis, OptimizedWorkflow, OptimizerMetrics
from src.core.contracts.orchestrator import (
    BatchRunResult,
    ChainResult,
    ComparisonResult,
    MeshResult,
    PresetWorkflowResult,
    Step,
    WorkflowOptions,
)
from src.core.contracts.phases import CustomWorkflowResult
from src.core.exceptions import AgentUnavailable
from src.orchestrator import modes, stepwise
from src.orchestrator.batches import execute_plan
from src.orchestrator.chain import run_chain
from src.orchestrator.comparison import run_comparison
from src.orchestrator.custom import run_custom
from src.orchestrator.mesh import run_mesh
from src.orchestrator.optimizer import WorkflowOptimizer, workflow_optimizer
from src.orchestrator.presets import list_presets, run_preset
from src.orchestrator.stepwise import PlanSession, StepOutcome

log = logging.getLogger("workflow")


class WorkflowEngine:
    def __init__(
        self,
        config: EngineConfig,
        executor: StepExecutor,
        planner: Planner | None = None,
        reviewer: Reviewer | None = None,
        context_manager: ContextManager | None = None,
        optimizer: WorkflowOptimizer | None = None,
    ):
        self.config = config
        self.executor = executor
        self.planner = planner
        self.reviewer = reviewer
        self.context_manager = context_manager
        self.optimizer = optimizer or workflow_optimizer

    def _require_planner(self) -> Planner:
        if self.planner is None:
            raise AgentUnavailable("No planner configured")
        return self.planner

    # Topologies

    async def execute_preset(self, workflow_id: str, code: str, options: WorkflowOptions | None = None) -> PresetWorkflowResult:
        return await run_preset(self.config, self.executor, workflow_id, code, options)

    async def execute_custom(self, goal: str, code: str, options: WorkflowOptions | None = None) -> CustomWorkflowResult:
        return await run_custom(
            self.config,
            self._require_planner(),
            self.executor,
            goal,
            code,
            options,
            reviewer=self.reviewer,
            context_manager=self.context_manager,
        )

    async def execute_comparison(
        self, prompt: str, code: str, models: Sequence[str], options: WorkflowOptions | None = None
    ) -> ComparisonResult:
        return await run_comparison(self.executor, prompt, code, models, options)

    async def execute_chain(
        self, prompt: str, code: str, models: Sequence[str], options: WorkflowOptions | None = None
    ) -> ChainResult:
        return await run_chain(self.config, self.executor, prompt, code, models, options, self.context_manager)

    async def execute_all_to_all(
        self,
        prompt: str,
        code: str,
        models: Sequence[str],
        iterations: int = 2,
        options: WorkflowOptions | None = None,
    ) -> MeshResult:
        return await run_mesh(self.executor, prompt, code, models, iterations, options)

    def get_presets(self) -> list[dict[str, Any]]:
        return list_presets(self.config)

    # Optimizer

    def analyze_workflow(self, steps: Sequence[Step], context: dict[str, Any] | None = None) -> OptimizationAnalysis:
        return self.optimizer.analyze_workflow(steps, context)

    def optimize_workflow(
        self, steps: Sequence[Step], context: dict[str, Any] | None = None, remove_redundant: bool = True
    ) -> OptimizedWorkflow:
        return self.optimizer.optimize_workflow(steps, context, remove_redundant=remove_redundant)

    def create_execution_plan(
        self, steps: Sequence[Step], context: dict[str, Any] | None = None, remove_redundant: bool = True
    ) -> ExecutionPlan:
        return self.optimizer.create_execution_plan(steps, context, remove_redundant=remove_redundant)

    async def execute_optimized(
        self,
        steps: Sequence[Step],
        code: str,
        context: dict[str, Any] | None = None,
        options: WorkflowOptions | None = None,
        remove_redundant: bool = True,
    ) -> BatchRunResult:
        options = options or WorkflowOptions()
        plan = self.create_execution_plan(steps, context, remove_redundant=remove_redundant)
        log.info("Executing optimized plan: %s batches", plan.summary.total_batches)
        return await execute_plan(
            plan,
            code,
            self.executor,
            stop_on_error=bool(options.stop_on_error),
            max_concurrency=options.max_concurrency,
            read_only=options.is_read_only,
            model=options.executor_model,
        )

    def get_optimizer_metrics(self) -> OptimizerMetrics:
        return self.optimizer.get_metrics()

    def clear_optimizer_cache(self) -> None:
        self.optimizer.clear_cache()

    # Stepwise

    async def initialize_plan(self, goal: str, code: str, options: WorkflowOptions | None = None) -> PlanSession:
        return await stepwise.initialize_plan(self._require_planner(), goal, code, options)

    async def execute_next(
        self, session: PlanSession, code: Any = None, context: dict[str, Any] | None = None
    ) -> StepOutcome:
        return await stepwise.execute_next(session, self.executor, code, context)

    async def execute_step_by_index(
        self, session: PlanSession, step_index: int, code: Any = None, context: dict[str, Any] | None = None
    ) -> StepOutcome:
        return await stepwise.execute_step_by_index(session, self.executor, step_index, code, context)

    def undo(self, session: PlanSession) -> dict[str, Any]:
        return stepwise.undo(session)

    def get_execution_status(self, session: PlanSession) -> dict[str, Any]:
        return stepwise.get_execution_status(session)

    def reset(self, session: PlanSession) -> None:
        stepwise.reset(session)

    # Modes

    def get_workflow_modes(self) -> list[dict[str, Any]]:
        return modes.get_workflow_modes()

    def validate_workflow_mode(self, workflow_mode: str, model_count: int) -> modes.ModeValidation:
        return modes.validate_workflow_mode(workflow_mode, model_count)

    def recommend_workflow(self, model_count: int, goal: str = "quality") -> modes.WorkflowMode | None:
        return modes.recommend_workflow(model_count, goal)


def build_engine(config: EngineConfig) -> WorkflowEngine:
    """Engine with the configured step executor and the LangChain planner and reviewer."""
    from src.agent.deps import build_step_executor
    from src.orchestrator.planner import LangChainPlanner
    from src.orchestrator.reviewer import LangChainReviewer

    strategy = config.get_strategy("balanced")
    planner_model = strategy.planner if strategy else "gpt-4o"
    reviewer_model = strategy.reviewer if strategy else "gpt-4o"
    return WorkflowEngine(
        config,
        executor=build_step_executor(config),
        planner=LangChainPlanner(default_model=planner_model),
        reviewer=LangChainReviewer(default_model=reviewer_model),
    )
