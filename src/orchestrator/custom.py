"""Custom workflow: plan -> execute -> review -> refine."""
from __future__ import annotations

import logging
import time

from src.core.config.models import EngineConfig
from src.core.contracts.collaborators import ContextManager, Planner, Reviewer, StepExecutor
from src.core.contracts.orchestrator import WorkflowOptions
from src.core.contracts.phases import ContextMetadata, CustomWorkflowResult, ReviewResult
from src.core.exceptions import PlanningFailure
from src.orchestrator.usage import aggregate_total_usage

log = logging.getLogger("workflow")

TASK_TYPE = "code-transformation"


async def optimize_planning_context(
    config: EngineConfig,
    context_manager: ContextManager | None,
    goal: str,
    code: str,
) -> tuple[str, ContextMetadata | None]:
    """Code the planner sees. Falls back to the raw code when the context manager fails."""
    if context_manager is None or len(code) <= config.context_optimization_threshold:
        return code, None
    try:
        optimized = await context_manager.process_context(
            raw_context=code,
            task=goal,
            task_type=TASK_TYPE,
            max_tokens=config.max_context_tokens,
        )
    except Exception as e:
        log.warning("Context optimization failed, using raw code: %s", e)
        return code, None
    meta = optimized.metadata
    log.info(
        "Context optimized: %s -> %s tokens (ratio %s)",
        meta.original_tokens,
        meta.optimized_tokens,
        meta.compression_ratio,
    )
    return optimized.context, meta


async def run_custom(
    config: EngineConfig,
    planner: Planner,
    executor: StepExecutor,
    goal: str,
    code: str,
    options: WorkflowOptions | None = None,
    reviewer: Reviewer | None = None,
    context_manager: ContextManager | None = None,
) -> CustomWorkflowResult:
    options = options or WorkflowOptions()
    strategy = config.get_strategy(options.strategy)
    planner_model = options.planner_model or (strategy.planner if strategy else None)
    executor_model = options.executor_model or (strategy.executor if strategy else None)
    reviewer_model = options.reviewer_model or (strategy.reviewer if strategy else None)
    stop_on_error = True if options.stop_on_error is None else options.stop_on_error
    log.info("Executing custom workflow: %s", goal[:120])
    start = time.perf_counter()

    planning_code, context_meta = code, None
    if options.optimize_context:
        planning_code, context_meta = await optimize_planning_context(config, context_manager, goal, code)

    plan = await planner.create_plan(goal, planning_code, planner_model)
    if not plan.steps:
        raise PlanningFailure(f"Planner returned no steps for goal: {goal[:120]}")
    log.info("Plan created with %s steps", len(plan.steps))

    execution = await executor.execute_steps(
        plan.steps,
        code,
        context={"goal": goal, "strategy": plan.strategy, "read_only": options.is_read_only},
        options={
            "model": executor_model,
            "stop_on_error": stop_on_error,
            "read_only": options.is_read_only,
            "delay_between_steps_ms": options.delay_between_steps_ms,
        },
    )

    final_code = execution.final_code
    review: ReviewResult | None = None
    refined = False
    if options.enable_review and reviewer is not None:
        review = await reviewer.review(goal, code, final_code, execution.results, reviewer_model)
        if options.enable_refinement and review.issues:
            refinement = await reviewer.refine(final_code, review, reviewer_model)
            if refinement.improved:
                final_code = refinement.refined_code
                refined = True
            else:
                log.info("Refinement made no improvement, keeping reviewed code")

    return CustomWorkflowResult(
        goal=goal,
        plan=plan,
        execution=execution,
        review=review,
        refined=refined,
        context_optimization=context_meta,
        results=execution.results,
        final_output=final_code,
        success=execution.success_count == len(execution.results),
        duration_ms=int((time.perf_counter() - start) * 1000),
        total_usage=aggregate_total_usage(plan, execution, review),
    )
