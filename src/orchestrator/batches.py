"""Execute an optimizer ExecutionPlan: batches in order, parallel batch members concurrently."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from src.core.contracts.collaborators import StepExecutor
from src.core.contracts.optimizer import Batch, BatchStep, ExecutionPlan
from src.core.contracts.orchestrator import BatchRunResult, StepResult
from src.orchestrator.executor import now_iso
from src.orchestrator.usage import aggregate_usage

log = logging.getLogger("batches")


async def _run_member(
    executor: StepExecutor,
    member: BatchStep,
    code: Any,
    semaphore: asyncio.Semaphore,
    read_only: bool,
    model: str | None,
) -> StepResult:
    async with semaphore:
        context = {**member.context, "read_only": read_only}
        try:
            return await executor.execute_step(member.step, code, context, model)
        except Exception as e:
            log.error("Step %s (%s) raised: %s", member.step_index, member.step.name, e)
            return StepResult(
                success=False,
                error=str(e),
                step_name=member.step.name,
                action=member.step.action,
                model=model or member.step.model,
                timestamp=now_iso(),
            )


async def run_batch(
    executor: StepExecutor,
    batch: Batch,
    code: Any,
    semaphore: asyncio.Semaphore,
    read_only: bool = False,
    model: str | None = None,
) -> list[tuple[int, StepResult]]:
    """Every member sees the same pre-batch code. Results come back ordered by step index."""
    members = sorted(batch.steps, key=lambda m: m.step_index)
    if batch.type == "parallel":
        log.info("Batch %s: running %s steps in parallel", batch.batch_index, len(members))
    results = await asyncio.gather(
        *(_run_member(executor, m, code, semaphore, read_only, model) for m in members)
    )
    return [(m.step_index, r) for m, r in zip(members, results)]


async def execute_plan(
    plan: ExecutionPlan,
    code: Any,
    executor: StepExecutor,
    stop_on_error: bool = False,
    max_concurrency: int = 4,
    read_only: bool = False,
    model: str | None = None,
) -> BatchRunResult:
    start = time.perf_counter()
    semaphore = asyncio.Semaphore(max(1, max_concurrency))
    results: list[StepResult] = []
    current_code = code
    executed = 0
    stopped_early = False
    for batch in plan.batches:
        merged = await run_batch(executor, batch, current_code, semaphore, read_only, model)
        executed += 1
        batch_results = [r for _, r in merged]
        results.extend(batch_results)
        first_ok = next((r for r in batch_results if r.success and r.output), None)
        if first_ok is not None:
            current_code = first_ok.output
        if stop_on_error and any(not r.success for r in batch_results):
            log.warning("Stopping after batch %s due to failed step", batch.batch_index)
            stopped_early = executed < len(plan.batches)
            break

    return BatchRunResult(
        results=results,
        final_output=current_code,
        success=all(r.success for r in results),
        batches_executed=executed,
        stopped_early=stopped_early,
        duration_ms=int((time.perf_counter() - start) * 1000),
        total_usage=aggregate_usage(results),
    )
