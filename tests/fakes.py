"""Scripted collaborators used across the test suite."""

from typing import Any

from src.core.contracts.orchestrator import Step, StepResult, Usage
from src.core.contracts.phases import (
    ChainContextMetadata,
    ChainContextResult,
    ContextMetadata,
    ContextResult,
    PlanResult,
    PlanValidation,
    RefinementResult,
    ReviewIssue,
    ReviewResult,
    RoutedContext,
)
from src.orchestrator.executor import StepExecutorBase
from src.orchestrator.planner import validate_plan


class FakeExecutor(StepExecutorBase):
    """Appends the acting model (or step name) to the code it receives.

    Models or step names listed in `fail` return a failed result; those in
    `raise_on` raise RuntimeError.
    """

    def __init__(self, fail: set[str] | None = None, raise_on: set[str] | None = None, tokens: int = 10):
        self.fail = fail or set()
        self.raise_on = raise_on or set()
        self.tokens = tokens
        self.calls: list[dict[str, Any]] = []

    async def execute_step(self, step: Step, code: Any, context: dict[str, Any] | None = None, model: str | None = None) -> StepResult:
        who = model or step.model or step.name
        self.calls.append({"step": step, "code": code, "context": context or {}, "model": model})
        if who in self.raise_on or step.name in self.raise_on:
            raise RuntimeError(f"{who} exploded")
        usage = Usage(prompt_tokens=self.tokens, completion_tokens=self.tokens, total_tokens=2 * self.tokens)
        if who in self.fail or step.name in self.fail:
            return StepResult(success=False, error=f"{who} failed", step_name=step.name, action=step.action, model=who, usage=usage)
        return StepResult(success=True, output=f"{code}|{who}", step_name=step.name, action=step.action, model=who, usage=usage)


class FakePlanner:
    def __init__(self, steps: list[Step] | None = None, usage: Usage | None = None):
        self.steps = steps if steps is not None else [
            Step(id="step-1", name="analyze", description="Analyze the code", action="analyze"),
            Step(id="step-2", name="refactor", description="Refactor the code", action="refactor"),
        ]
        self.usage = usage or Usage(prompt_tokens=5, completion_tokens=5, total_tokens=10)
        self.calls: list[dict[str, Any]] = []

    async def create_plan(self, goal: str, code: str, model: str | None = None) -> PlanResult:
        self.calls.append({"goal": goal, "code": code, "model": model})
        return PlanResult(steps=self.steps, strategy="scripted", usage=self.usage, model=model)

    def validate_plan(self, plan: PlanResult) -> PlanValidation:
        return validate_plan(plan)


class FakeReviewer:
    def __init__(self, issues: int = 0, improved: bool = True):
        self.issues = issues
        self.improved = improved
        self.refine_calls = 0

    async def review(self, original_goal, original_code, final_code, steps, model=None) -> ReviewResult:
        return ReviewResult(
            goal_achieved=True,
            quality="good",
            issues=[ReviewIssue(description=f"issue {i}") for i in range(self.issues)],
            usage=Usage(prompt_tokens=1, completion_tokens=1, total_tokens=2),
        )

    async def refine(self, code, review, model=None) -> RefinementResult:
        self.refine_calls += 1
        if not self.improved:
            return RefinementResult(refined_code=code, improved=False)
        return RefinementResult(refined_code=f"{code}|refined", improved=True)


class FakeContextManager:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[str] = []

    async def process_context(self, raw_context, task, task_type="general", max_tokens=None) -> ContextResult:
        self.calls.append("process_context")
        if self.fail:
            raise RuntimeError("context manager down")
        return ContextResult(
            context="CONDENSED",
            metadata=ContextMetadata(compression_ratio=0.1, original_tokens=1000, optimized_tokens=100),
        )

    async def process_chain_context(self, raw_context, chain_steps, global_context=None) -> ChainContextResult:
        self.calls.append("process_chain_context")
        if self.fail:
            raise RuntimeError("context manager down")
        return ChainContextResult(
            context_map={s["id"]: RoutedContext(context=f"ROUTED-{s['id']}", metadata={"chunks": 1}) for s in chain_steps},
            metadata=ChainContextMetadata(total_chunks=len(chain_steps), reuse_efficiency=0.5),
        )
