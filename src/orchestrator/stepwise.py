"""Plan once, then execute one step at a time with undo.

All state lives on the PlanSession handle; two sessions never share anything.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

from pydantic import BaseModel, Field

from src.core.contracts.collaborators import Planner, StepExecutor
from src.core.contracts.orchestrator import StepResult, WorkflowOptions
from src.core.contracts.phases import PlanResult, PlanValidation
from src.core.exceptions import InvalidStepIndex, PlanningFailure

log = logging.getLogger("stepwise")


class ExecutionRecord(BaseModel):
    step_index: int
    result: StepResult
    code_before: Any = None
    cursor_before: int


class PlanSession(BaseModel):
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    goal: str
    code: Any = None
    options: WorkflowOptions = Field(default_factory=WorkflowOptions)
    plan: PlanResult
    validation: PlanValidation
    cursor: int = 0
    history: list[ExecutionRecord] = Field(default_factory=list)

    @property
    def total_steps(self) -> int:
        return len(self.plan.steps)

    @property
    def completed(self) -> bool:
        return self.cursor >= self.total_steps


class StepOutcome(BaseModel):
    session_id: str
    step_index: int | None = None
    result: StepResult | None = None
    completed: bool = False
    cursor: int
    total_steps: int
    message: str | None = None


def _base_context(session: PlanSession) -> dict[str, Any]:
    return {"goal": session.goal, "strategy": session.plan.strategy, "read_only": session.options.is_read_only}


async def initialize_plan(
    planner: Planner,
    goal: str,
    code: str,
    options: WorkflowOptions | None = None,
) -> PlanSession:
    options = options or WorkflowOptions()
    log.info("Initializing plan: %s", goal[:120])
    plan = await planner.create_plan(goal, code, options.planner_model)
    if not plan.steps:
        raise PlanningFailure(f"Planner returned no steps for goal: {goal[:120]}")
    validation = planner.validate_plan(plan)
    if not validation.valid:
        log.warning("Plan validation issues: %s", ", ".join(validation.issues))
    session = PlanSession(goal=goal, code=code, options=options, plan=plan, validation=validation)
    log.info("Plan initialized: %s steps (session %s)", validation.step_count, session.session_id)
    return session


async def execute_next(
    session: PlanSession,
    executor: StepExecutor,
    code: Any = None,
    context: dict[str, Any] | None = None,
) -> StepOutcome:
    if session.completed:
        return StepOutcome(
            session_id=session.session_id,
            completed=True,
            cursor=session.cursor,
            total_steps=session.total_steps,
            message="All steps completed",
        )
    index = session.cursor
    step = session.plan.steps[index]
    working_code = session.code if code is None else code
    step_context = {
        **_base_context(session),
        **(context or {}),
        "step_number": index + 1,
        "total_steps": session.total_steps,
    }
    log.info("Executing step %s/%s: %s", index + 1, session.total_steps, step.name)
    result = await executor.execute_step(step, working_code, step_context, session.options.executor_model)
    session.history.append(
        ExecutionRecord(step_index=index, result=result, code_before=session.code, cursor_before=index)
    )
    session.cursor = index + 1
    session.code = result.output if result.success and result.output else working_code
    return StepOutcome(
        session_id=session.session_id,
        step_index=index,
        result=result,
        completed=session.completed,
        cursor=session.cursor,
        total_steps=session.total_steps,
    )


async def execute_step_by_index(
    session: PlanSession,
    executor: StepExecutor,
    step_index: int,
    code: Any = None,
    context: dict[str, Any] | None = None,
) -> StepOutcome:
    """Run one chosen step. The cursor is left where it was."""
    if step_index < 0 or step_index >= session.total_steps:
        raise InvalidStepIndex(f"Invalid step index: {step_index}")
    step = session.plan.steps[step_index]
    step_context = {**_base_context(session), **(context or {}), "selected_step": step_index}
    log.info("Executing selected step [%s]: %s", step_index + 1, step.name)
    result = await executor.execute_step(
        step, session.code if code is None else code, step_context, session.options.executor_model
    )
    return StepOutcome(
        session_id=session.session_id,
        step_index=step_index,
        result=result,
        completed=session.completed,
        cursor=session.cursor,
        total_steps=session.total_steps,
    )


def undo(session: PlanSession) -> dict[str, Any]:
    if not session.history:
        return {"success": False, "message": "Nothing to undo", "cursor": session.cursor}
    record = session.history.pop()
    session.code = record.code_before
    session.cursor = record.cursor_before
    log.info("Undid step %s", record.step_index + 1)
    return {
        "success": True,
        "undone_step": record.step_index,
        "cursor": session.cursor,
        "code": session.code,
    }


def get_execution_status(session: PlanSession) -> dict[str, Any]:
    return {
        "session_id": session.session_id,
        "goal": session.goal,
        "strategy": session.plan.strategy,
        "total_steps": session.total_steps,
        "current_step": session.cursor,
        "completed": session.completed,
        "executed": [r.step_index for r in session.history],
        "validation": session.validation.model_dump(),
        "next_step": None if session.completed else session.plan.steps[session.cursor].model_dump(exclude_none=True),
    }


def reset(session: PlanSession) -> None:
    """Rewind to the first step and restore the code the session started with."""
    if session.history:
        session.code = session.history[0].code_before
    session.history.clear()
    session.cursor = 0
    log.info("Execution state reset for session %s", session.session_id)
