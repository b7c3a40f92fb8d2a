"""Orchestrator FastAPI app: presets, custom workflows, multi-model topologies, optimizer and stepwise sessions."""
from __future__ import annotations

import logging
import os
import uuid
from typing import Any

import asyncpg

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s", datefmt="%H:%M:%S")
log = logging.getLogger("orchestrator")

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from src.core.config.env import PROJECT_ROOT, get_app_db_url, load_project_env
from src.core.config.loader import load_engine_config
from src.core.contracts.gateway import (
    CustomRequest,
    MeshRequest,
    ModeValidationRequest,
    MultiModelRequest,
    PresetRequest,
    RecommendRequest,
    RunResponse,
    StepsRequest,
    StepwiseRequest,
)
from src.core.contracts.orchestrator import WorkflowResult
from src.core.exceptions import (
    AgentUnavailable,
    InvalidStepIndex,
    PlanningFailure,
    SessionNotFound,
    WorkflowNotFound,
)
from src.orchestrator.engine import WorkflowEngine, build_engine
from src.orchestrator.executor import preview
from src.orchestrator.session import (
    create_run,
    get_latest_run_id,
    get_run,
    get_step_results,
    save_step_result,
    update_run_final,
)
from src.orchestrator.stepwise import PlanSession

load_project_env(PROJECT_ROOT)

app = FastAPI(title="Code Workflows: Orchestrator")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

CONFIG_PATH = os.environ.get("CONFIG_PATH", "config/engine.json")
ENGINE: WorkflowEngine | None = None
SESSIONS: dict[str, PlanSession] = {}


def get_engine() -> WorkflowEngine:
    global ENGINE
    if ENGINE is None:
        ENGINE = build_engine(load_engine_config(CONFIG_PATH, project_root=PROJECT_ROOT))
    return ENGINE


def get_session(session_id: str) -> PlanSession:
    session = SESSIONS.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=str(SessionNotFound(session_id)))
    return session


def _db_url() -> str | None:
    store = get_engine().config.session_store
    return get_app_db_url(dict(os.environ), store.connection_id if store else "POSTGRES_APP_URL")


def _status(result: WorkflowResult) -> str:
    if result.success:
        return "completed"
    return "partial" if any(r.success for r in result.results) else "failed"


async def _record_run(
    topology: str,
    request: dict[str, Any],
    result: WorkflowResult,
    workflow_id: str | None = None,
) -> str | None:
    """Persist the run when a store is configured. Returns the run id, or None when skipped."""
    url = _db_url()
    if not url:
        return None
    conn = await asyncpg.connect(url)
    try:
        run_id = await create_run(conn, topology, request, workflow_id)
        for i, step_result in enumerate(result.results):
            await save_step_result(conn, run_id, i, step_result)
        await update_run_final(
            conn,
            run_id,
            _status(result),
            final_output=result.final_output,
            total_usage=result.total_usage.model_dump(),
            duration_ms=result.duration_ms,
        )
    finally:
        await conn.close()
    return str(run_id)


async def _respond(topology: str, request: dict[str, Any], result: WorkflowResult, workflow_id: str | None = None) -> RunResponse:
    log.info(
        "%s finished: success=%s, %s results, %s ms",
        topology,
        result.success,
        len(result.results),
        result.duration_ms,
    )
    run_id = await _record_run(topology, request, result, workflow_id)
    return RunResponse(run_id=run_id, status=_status(result), result=result.model_dump(mode="json"))


@app.on_event("startup")
def startup():
    get_engine()


@app.get("/health")
def health():
    return {"status": "ok"}


# Presets and custom workflows


@app.get("/agent/workflows")
def list_workflows():
    return {"workflows": get_engine().get_presets()}


@app.post("/agent/workflow/{workflow_id}", response_model=RunResponse)
async def run_workflow(workflow_id: str, req: PresetRequest):
    log.info("PRESET %s (%s chars)", workflow_id, len(req.code))
    try:
        result = await get_engine().execute_preset(workflow_id, req.code, req.options)
    except WorkflowNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return await _respond("preset", {"workflow_id": workflow_id, "options": req.options.model_dump()}, result, workflow_id)


@app.post("/agent/execute", response_model=RunResponse)
async def run_custom_workflow(req: CustomRequest):
    log.info("CUSTOM: %s", preview(req.goal, 200))
    try:
        result = await get_engine().execute_custom(req.goal, req.code, req.options)
    except PlanningFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except AgentUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return await _respond("custom", {"goal": req.goal, "options": req.options.model_dump()}, result)


# Multi-model topologies


@app.post("/agent/compare", response_model=RunResponse)
async def compare(req: MultiModelRequest):
    result = await get_engine().execute_comparison(req.prompt, req.code, req.models, req.options)
    return await _respond("comparison", {"prompt": req.prompt, "models": req.models}, result)


@app.post("/agent/chain", response_model=RunResponse)
async def chain(req: MultiModelRequest):
    result = await get_engine().execute_chain(req.prompt, req.code, req.models, req.options)
    return await _respond("chain", {"prompt": req.prompt, "models": req.models}, result)


@app.post("/agent/all-to-all", response_model=RunResponse)
async def all_to_all(req: MeshRequest):
    result = await get_engine().execute_all_to_all(req.prompt, req.code, req.models, req.iterations, req.options)
    return await _respond(
        "all-to-all", {"prompt": req.prompt, "models": req.models, "iterations": req.iterations}, result
    )


# Stepwise sessions


@app.post("/agent/plan")
async def create_plan_session(req: CustomRequest):
    try:
        session = await get_engine().initialize_plan(req.goal, req.code, req.options)
    except PlanningFailure as e:
        raise HTTPException(status_code=422, detail=str(e))
    except AgentUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    SESSIONS[session.session_id] = session
    return {
        "session_id": session.session_id,
        "plan": session.plan.model_dump(mode="json"),
        "validation": session.validation.model_dump(),
        "status": get_engine().get_execution_status(session),
    }


@app.post("/agent/sessions/{session_id}/next")
async def session_next(session_id: str, req: StepwiseRequest | None = None):
    session = get_session(session_id)
    req = req or StepwiseRequest()
    outcome = await get_engine().execute_next(session, req.code, req.context)
    return outcome.model_dump(mode="json")


@app.post("/agent/sessions/{session_id}/step/{step_index}")
async def session_step(session_id: str, step_index: int, req: StepwiseRequest | None = None):
    session = get_session(session_id)
    req = req or StepwiseRequest()
    try:
        outcome = await get_engine().execute_step_by_index(session, step_index, req.code, req.context)
    except InvalidStepIndex as e:
        raise HTTPException(status_code=400, detail=str(e))
    return outcome.model_dump(mode="json")


@app.post("/agent/sessions/{session_id}/undo")
def session_undo(session_id: str):
    return get_engine().undo(get_session(session_id))


@app.get("/agent/sessions/{session_id}/status")
def session_status(session_id: str):
    return get_engine().get_execution_status(get_session(session_id))


@app.delete("/agent/sessions/{session_id}")
def session_delete(session_id: str):
    session = get_session(session_id)
    get_engine().reset(session)
    del SESSIONS[session_id]
    return {"session_id": session_id, "deleted": True}


# Workflow modes and optimizer


@app.get("/workflow/modes")
def workflow_modes():
    return {"modes": get_engine().get_workflow_modes()}


@app.post("/workflow/validate")
def workflow_validate(req: ModeValidationRequest):
    return get_engine().validate_workflow_mode(req.workflow_mode, req.model_count).model_dump()


@app.post("/workflow/recommend")
def workflow_recommend(req: RecommendRequest):
    mode = get_engine().recommend_workflow(req.model_count, req.goal)
    return {"recommended": mode.model_dump() if mode else None}


@app.post("/workflow/optimize")
def workflow_optimize(req: StepsRequest):
    return get_engine().optimize_workflow(req.steps, req.context, remove_redundant=req.remove_redundant).model_dump(mode="json")


@app.post("/workflow/plan")
def workflow_plan(req: StepsRequest):
    return get_engine().create_execution_plan(req.steps, req.context, remove_redundant=req.remove_redundant).model_dump(mode="json")


@app.get("/workflow/metrics")
def workflow_metrics():
    return get_engine().get_optimizer_metrics().model_dump()


@app.post("/workflow/cache/clear")
def workflow_cache_clear():
    get_engine().clear_optimizer_cache()
    return {"cleared": True}


# Run history


async def _run_trace(conn: asyncpg.Connection, run_id: uuid.UUID) -> dict[str, Any]:
    run = await get_run(conn, run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return {**run, "step_results": await get_step_results(conn, run_id)}


@app.get("/runs/last")
async def get_last_run(topology: str | None = None):
    url = _db_url()
    if not url:
        raise HTTPException(status_code=500, detail="POSTGRES_APP_URL not set")
    conn = await asyncpg.connect(url)
    try:
        run_id = await get_latest_run_id(conn, topology)
        if not run_id:
            raise HTTPException(status_code=404, detail="No runs found")
        return await _run_trace(conn, run_id)
    finally:
        await conn.close()


@app.get("/runs/{run_id}")
async def get_run_trace(run_id: str):
    try:
        rid = uuid.UUID(run_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid run_id")
    url = _db_url()
    if not url:
        raise HTTPException(status_code=500, detail="POSTGRES_APP_URL not set")
    conn = await asyncpg.connect(url)
    try:
        return await _run_trace(conn, rid)
    finally:
        await conn.close()


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT") or get_engine().config.orchestrator.port)
    uvicorn.run(app, host="0.0.0.0", port=port)
