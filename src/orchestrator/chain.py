"""Chain: models applied in order, each consuming the previous successful output."""
from __future__ import annotations

import logging
import time
from typing import Any, Sequence

from src.core.config.models import EngineConfig
from src.core.contracts.collaborators import ContextManager, StepExecutor
from src.core.contracts.orchestrator import ChainResult, ModelRunResult, Step, WorkflowOptions
from src.core.contracts.phases import ChainContextResult, RoutedContext
from src.orchestrator.executor import as_model_result, failed_model_result
from src.orchestrator.usage import aggregate_usage

log = logging.getLogger("workflow")


def chain_steps_for(models: Sequence[str]) -> list[dict[str, Any]]:
    return [
        {"id": f"step-{i}", "name": f"chain-step-{i + 1}", "dependencies": [f"step-{i - 1}"] if i > 0 else []}
        for i in range(len(models))
    ]


async def route_chain_context(
    config: EngineConfig,
    context_manager: ContextManager | None,
    prompt: str,
    code: str,
    models: Sequence[str],
) -> ChainContextResult | None:
    if context_manager is None or len(code) <= config.chain_routing_threshold:
        return None
    try:
        routed = await context_manager.process_chain_context(
            raw_context=code,
            chain_steps=chain_steps_for(models),
            global_context={"task": prompt},
        )
    except Exception as e:
        log.warning("Chain context routing failed, using raw code: %s", e)
        return None
    log.info(
        "Chain context routed: %s chunks, reuse efficiency %s",
        routed.metadata.total_chunks,
        routed.metadata.reuse_efficiency,
    )
    return routed


def _routed_input(routed: RoutedContext, running: Any, has_previous: bool) -> str:
    if not has_previous:
        return routed.context
    return f"{routed.context}\n\n--- Previous output ---\n{running}"


async def run_chain(
    config: EngineConfig,
    executor: StepExecutor,
    prompt: str,
    code: str,
    models: Sequence[str],
    options: WorkflowOptions | None = None,
    context_manager: ContextManager | None = None,
) -> ChainResult:
    if not models:
        raise ValueError("Chain requires at least one model")
    options = options or WorkflowOptions()
    stop_on_error = bool(options.stop_on_error)
    log.info("Starting chain workflow with %s models", len(models))
    start = time.perf_counter()

    routing = await route_chain_context(config, context_manager, prompt, code, models)
    results: list[ModelRunResult] = []
    current_code: Any = code
    has_previous = False
    for i, model in enumerate(models):
        step = Step(id=f"step-{i}", name=f"chain-step-{i + 1}", description=prompt, action="refactor")
        context: dict[str, Any] = {
            "chain_position": i + 1,
            "total_models": len(models),
            "read_only": options.is_read_only,
        }
        step_input = current_code
        routed = routing.context_map.get(step.id) if routing else None
        if routed is not None:
            step_input = _routed_input(routed, current_code, has_previous)
            context["context_routing"] = {
                "shared_with_steps": routed.shared_with_steps,
                **routed.metadata,
            }
        try:
            result = await executor.execute_step(step, step_input, context, model)
            result = as_model_result(result, model, position=i + 1)
        except Exception as e:
            log.error("Chain step %s (%s) failed: %s", i + 1, model, e)
            result = failed_model_result(step, model, e, position=i + 1)
        results.append(result)
        if result.success:
            current_code = result.output
            has_previous = True
        elif stop_on_error:
            break

    return ChainResult(
        prompt=prompt,
        models=list(models),
        results=results,
        context_routing=routing.metadata.model_dump() if routing else None,
        final_output=current_code,
        success=all(r.success for r in results),
        duration_ms=int((time.perf_counter() - start) * 1000),
        total_usage=aggregate_usage(results),
    )
