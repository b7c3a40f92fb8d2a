"""Persist and load workflow runs and their step results in app Postgres."""
from __future__ import annotations

import json
import uuid
from typing import Any

import asyncpg

from src.core.contracts.orchestrator import StepResult


def _json(value: Any) -> str:
    return json.dumps(value, default=str)


async def create_run(
    conn: asyncpg.Connection,
    topology: str,
    request_payload: dict[str, Any],
    workflow_id: str | None = None,
) -> uuid.UUID:
    row = await conn.fetchrow(
        """
        INSERT INTO app.workflow_runs (topology, workflow_id, request_payload, status)
        VALUES ($1, $2, $3::jsonb, 'running')
        RETURNING id
        """,
        topology,
        workflow_id,
        _json(request_payload),
    )
    return row["id"]


async def save_step_result(
    conn: asyncpg.Connection,
    run_id: uuid.UUID,
    step_index: int,
    result: StepResult,
) -> None:
    output = result.output if isinstance(result.output, dict) else {"text": result.output}
    await conn.execute(
        """
        INSERT INTO app.workflow_step_results
            (run_id, step_index, step_name, model, success, output_payload, error, usage, latency_ms)
        VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7, $8::jsonb, $9)
        """,
        run_id,
        step_index,
        result.step_name,
        result.model,
        result.success,
        _json(output),
        result.error,
        _json(result.usage.model_dump() if result.usage else None),
        result.latency_ms,
    )


async def update_run_final(
    conn: asyncpg.Connection,
    run_id: uuid.UUID,
    status: str,
    final_output: Any = None,
    total_usage: dict[str, int] | None = None,
    duration_ms: int | None = None,
    error_message: str | None = None,
) -> None:
    await conn.execute(
        """
        UPDATE app.workflow_runs
        SET status = $1, final_output = $2::jsonb, total_usage = $3::jsonb, duration_ms = $4,
            error_message = $5, updated_at = now()
        WHERE id = $6
        """,
        status,
        _json({"output": final_output}),
        _json(total_usage),
        duration_ms,
        error_message,
        run_id,
    )


def _loads(value: Any) -> Any:
    return json.loads(value) if isinstance(value, str) else value


async def get_run(conn: asyncpg.Connection, run_id: uuid.UUID) -> dict[str, Any] | None:
    row = await conn.fetchrow(
        """
        SELECT id, topology, workflow_id, request_payload, status, final_output, total_usage,
               duration_ms, error_message, created_at
        FROM app.workflow_runs WHERE id = $1
        """,
        run_id,
    )
    if not row:
        return None
    final_output = _loads(row["final_output"]) or {}
    return {
        "id": str(row["id"]),
        "topology": row["topology"],
        "workflow_id": row["workflow_id"],
        "request": _loads(row["request_payload"]),
        "status": row["status"],
        "final_output": final_output.get("output"),
        "total_usage": _loads(row["total_usage"]),
        "duration_ms": row["duration_ms"],
        "error_message": row["error_message"],
        "created_at": row["created_at"].isoformat() if row["created_at"] else None,
    }


async def get_step_results(conn: asyncpg.Connection, run_id: uuid.UUID) -> list[dict[str, Any]]:
    """Step results for a run, ordered by step_index."""
    rows = await conn.fetch(
        """
        SELECT step_index, step_name, model, success, output_payload, error, usage, latency_ms
        FROM app.workflow_step_results WHERE run_id = $1 ORDER BY step_index
        """,
        run_id,
    )
    return [
        {
            "step_index": r["step_index"],
            "step_name": r["step_name"],
            "model": r["model"],
            "success": r["success"],
            "output": _loads(r["output_payload"]),
            "error": r["error"],
            "usage": _loads(r["usage"]),
            "latency_ms": r["latency_ms"],
        }
        for r in rows
    ]


async def get_latest_run_id(conn: asyncpg.Connection, topology: str | None = None) -> uuid.UUID | None:
    if topology:
        row = await conn.fetchrow(
            "SELECT id FROM app.workflow_runs WHERE topology = $1 ORDER BY created_at DESC LIMIT 1",
            topology,
        )
    else:
        row = await conn.fetchrow("SELECT id FROM app.workflow_runs ORDER BY created_at DESC LIMIT 1")
    return row["id"] if row else None
