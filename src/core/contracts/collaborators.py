"""Interfaces of the collaborators the engine delegates to."""
from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from src.core.contracts.orchestrator import ExecutionSummary, Step, StepResult
from src.core.contracts.phases import (
    ChainContextResult,
    ContextResult,
    PlanResult,
    PlanValidation,
    RefinementResult,
    ReviewResult,
)


@runtime_checkable
class StepExecutor(Protocol):
    async def execute_step(
        self,
        step: Step,
        code: Any,
        context: dict[str, Any] | None = None,
        model: str | None = None,
    ) -> StepResult: ...

    async def execute_steps(
        self,
        steps: Sequence[Step],
        code: Any,
        context: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> ExecutionSummary: ...


@runtime_checkable
class Planner(Protocol):
    async def create_plan(self, goal: str, code: str, model: str | None = None) -> PlanResult: ...

    def validate_plan(self, plan: PlanResult) -> PlanValidation: ...


@runtime_checkable
class Reviewer(Protocol):
    async def review(
        self,
        original_goal: str,
        original_code: str,
        final_code: Any,
        steps: Sequence[StepResult],
        model: str | None = None,
    ) -> ReviewResult: ...

    async def refine(self, code: Any, review: ReviewResult, model: str | None = None) -> RefinementResult: ...


@runtime_checkable
class ContextManager(Protocol):
    async def process_context(
        self,
        raw_context: str,
        task: str,
        task_type: str = "general",
        max_tokens: int | None = None,
    ) -> ContextResult: ...

    async def process_chain_context(
        self,
        raw_context: str,
        chain_steps: list[dict[str, Any]],
        global_context: dict[str, Any] | None = None,
    ) -> ChainContextResult: ...
