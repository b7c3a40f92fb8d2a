"""Step executors: shared sequential execution plus the HTTP backend that calls the agent service."""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Sequence

import httpx

from src.core.contracts.agent import StepInvokeRequest
from src.core.contracts.orchestrator import ExecutionSummary, ModelRunResult, Step, StepResult
from src.orchestrator.usage import aggregate_usage

log = logging.getLogger("executor")


def preview(value: Any, limit: int = 150) -> str:
    text = str(value)
    return (text[:limit] + "…") if len(text) > limit else text


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StepExecutorBase:
    """Runs a step list in order on top of a backend-specific execute_step."""

    async def execute_step(
        self,
        step: Step,
        code: Any,
        context: dict[str, Any] | None = None,
        model: str | None = None,
    ) -> StepResult:
        raise NotImplementedError

    async def execute_steps(
        self,
        steps: Sequence[Step],
        code: Any,
        context: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> ExecutionSummary:
        context = context or {}
        options = options or {}
        stop_on_error = bool(options.get("stop_on_error"))
        delay_ms = options.get("delay_between_steps_ms") or 0
        results: list[StepResult] = []
        current_code = code
        for i, step in enumerate(steps):
            if stop_on_error and any(not r.success for r in results):
                log.warning("Stopping execution due to previous error")
                break
            step_context = {
                **context,
                "step_number": i + 1,
                "total_steps": len(steps),
                "previous_steps": [r.step_name for r in results],
                "read_only": bool(options.get("read_only") or context.get("read_only")),
            }
            result = await self.execute_step(step, current_code, step_context, options.get("model"))
            results.append(result)
            if result.success and result.output:
                current_code = result.output
            if delay_ms and i < len(steps) - 1:
                await asyncio.sleep(delay_ms / 1000)
        success_count = sum(1 for r in results if r.success)
        return ExecutionSummary(
            results=results,
            final_code=current_code,
            success_count=success_count,
            failure_count=len(results) - success_count,
            total_usage=aggregate_usage(results),
        )


class HttpStepExecutor(StepExecutorBase):
    """Dispatches each step to the agent service's /invoke endpoint."""

    def __init__(self, base_url: str, timeout: float = 120.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def execute_step(
        self,
        step: Step,
        code: Any,
        context: dict[str, Any] | None = None,
        model: str | None = None,
    ) -> StepResult:
        url = f"{self.base_url}/invoke"
        payload = StepInvokeRequest(step=step, code=code, context=context or {}, model=model or step.model)
        log.info("→ %s [%s]: %s", step.name, payload.model or "default", preview(step.description, 100))
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(url, json=payload.model_dump(mode="json"))
            latency_ms = int((time.perf_counter() - start) * 1000)
            if r.status_code != 200:
                log.warning("← %s: HTTP %s (%s ms)", step.name, r.status_code, latency_ms)
                return self._failed(step, payload.model, f"HTTP {r.status_code}: {r.text}", latency_ms)
            result = StepResult.model_validate(r.json())
            log.info("← %s: %s (%s ms)", step.name, preview(result.output), latency_ms)
            return result.model_copy(update={"latency_ms": result.latency_ms or latency_ms})
        except Exception as e:
            latency_ms = int((time.perf_counter() - start) * 1000)
            log.warning("← %s: failed %s (%s ms)", step.name, e, latency_ms)
            return self._failed(step, payload.model, str(e), latency_ms)

    @staticmethod
    def _failed(step: Step, model: str | None, error: str, latency_ms: int) -> StepResult:
        return StepResult(
            success=False,
            output=None,
            error=error,
            step_name=step.name,
            action=step.action,
            model=model,
            latency_ms=latency_ms,
            timestamp=now_iso(),
        )


def as_model_result(result: StepResult, model: str, **extra: Any) -> ModelRunResult:
    """Tag an executor result with the model that produced it."""
    return ModelRunResult(**{**result.model_dump(), "model": model, **extra})


def failed_model_result(step: Step, model: str, error: Exception | str, **extra: Any) -> ModelRunResult:
    return ModelRunResult(
        success=False,
        error=str(error),
        step_name=step.name,
        action=step.action,
        model=model,
        timestamp=now_iso(),
        **extra,
    )
