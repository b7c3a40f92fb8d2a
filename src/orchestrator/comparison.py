"""Comparison: the same task run independently by every model."""
from __future__ import annotations

import logging
import time
from typing import Sequence

from src.core.contracts.collaborators import StepExecutor
from src.core.contracts.orchestrator import ComparisonResult, ModelRunResult, Step, WorkflowOptions
from src.orchestrator.executor import as_model_result, failed_model_result
from src.orchestrator.usage import aggregate_usage

log = logging.getLogger("workflow")


async def run_comparison(
    executor: StepExecutor,
    prompt: str,
    code: str,
    models: Sequence[str],
    options: WorkflowOptions | None = None,
) -> ComparisonResult:
    if not models:
        raise ValueError("Comparison requires at least one model")
    options = options or WorkflowOptions()
    log.info("Starting comparison workflow with %s models", len(models))
    start = time.perf_counter()
    results: list[ModelRunResult] = []
    for model in models:
        step = Step(name=f"compare-{model}", description=prompt, action="analyze")
        try:
            result = await executor.execute_step(step, code, {"read_only": options.is_read_only}, model)
            results.append(as_model_result(result, model))
        except Exception as e:
            log.error("Model %s failed: %s", model, e)
            results.append(failed_model_result(step, model, e))

    success_count = sum(1 for r in results if r.success)
    return ComparisonResult(
        prompt=prompt,
        models=list(models),
        results=results,
        success_count=success_count,
        success=success_count == len(results),
        duration_ms=int((time.perf_counter() - start) * 1000),
        total_usage=aggregate_usage(results),
    )
