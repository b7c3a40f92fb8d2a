"""FastAPI app for the step-executing agent. Run with: python -m src.agent.main --config-path config/engine.json"""
from __future__ import annotations

import argparse
import logging
import os

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s", datefmt="%H:%M:%S")

from src.core.config.env import PROJECT_ROOT, load_project_env
from src.core.config.loader import load_engine_config
from src.core.contracts.agent import StepInvokeRequest
from src.core.contracts.orchestrator import StepResult
from src.agent.deps import get_local_executor

log = logging.getLogger("agent")

app = FastAPI(title="Code Workflows: Agent API")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

# Set at startup
STEP_EXECUTOR = None


@app.on_event("startup")
def startup():
    global STEP_EXECUTOR
    load_project_env(PROJECT_ROOT)
    config_path = os.environ.get("CONFIG_PATH", "config/engine.json")
    config = load_engine_config(config_path, project_root=PROJECT_ROOT)
    STEP_EXECUTOR = get_local_executor(config)


@app.get("/health")
def health():
    return {"status": "ok", "ready": STEP_EXECUTOR is not None}


@app.post("/invoke", response_model=StepResult)
async def invoke(req: StepInvokeRequest):
    if STEP_EXECUTOR is None:
        raise HTTPException(status_code=503, detail="Agent not initialized")
    task = req.step.description or req.step.name
    log.info("RECV %s: %s", req.step.name, (task[:120] + "…") if len(task) > 120 else task)
    result = await STEP_EXECUTOR.execute_step(req.step, req.code, req.context, req.model)
    log.info("SEND %s: success=%s (%s ms)", req.step.name, result.success, result.latency_ms)
    return result


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser()
    parser.add_argument("--config-path", default="config/engine.json")
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args()
    os.environ["CONFIG_PATH"] = args.config_path
    load_project_env(PROJECT_ROOT)
    _cfg = load_engine_config(args.config_path, project_root=PROJECT_ROOT)
    uvicorn.run(app, host="0.0.0.0", port=args.port or _cfg.agent.port)
