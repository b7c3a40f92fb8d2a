"""HTTP tests for the orchestrator API with scripted collaborators."""

import pytest
from fastapi.testclient import TestClient

from src.orchestrator import main
from src.orchestrator.engine import WorkflowEngine
from src.orchestrator.optimizer import WorkflowOptimizer
from tests.fakes import FakeExecutor, FakePlanner, FakeReviewer


@pytest.fixture
def client(engine_config, monkeypatch):
    monkeypatch.delenv("POSTGRES_APP_URL", raising=False)
    engine = WorkflowEngine(
        engine_config,
        executor=FakeExecutor(),
        planner=FakePlanner(),
        reviewer=FakeReviewer(),
        optimizer=WorkflowOptimizer(),
    )
    monkeypatch.setattr(main, "ENGINE", engine)
    monkeypatch.setattr(main, "SESSIONS", {})
    return TestClient(main.app)


class TestTopologies:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_list_workflows(self, client):
        ids = [w["id"] for w in client.get("/agent/workflows").json()["workflows"]]
        assert ids == ["two-step", "reread"]

    def test_run_preset(self, client):
        r = client.post("/agent/workflow/two-step", json={"code": "CODE"})

        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "completed"
        assert body["run_id"] is None
        assert body["result"]["final_output"] == "CODE|model-a|model-b"

    def test_unknown_preset_is_404(self, client):
        r = client.post("/agent/workflow/nope", json={"code": "CODE"})

        assert r.status_code == 404
        assert "nope" in r.json()["detail"]

    def test_custom(self, client):
        r = client.post("/agent/execute", json={"goal": "tidy", "code": "CODE"})

        assert r.status_code == 200
        assert r.json()["result"]["goal"] == "tidy"

    def test_planning_failure_is_422(self, client, engine_config, monkeypatch):
        engine = WorkflowEngine(engine_config, executor=FakeExecutor(), planner=FakePlanner(steps=[]))
        monkeypatch.setattr(main, "ENGINE", engine)

        assert client.post("/agent/execute", json={"goal": "g", "code": "CODE"}).status_code == 422

    def test_compare_chain_mesh(self, client):
        body = {"prompt": "p", "code": "CODE", "models": ["a", "b"]}

        compare = client.post("/agent/compare", json=body).json()
        chain = client.post("/agent/chain", json=body).json()
        mesh = client.post("/agent/all-to-all", json={**body, "iterations": 2}).json()

        assert compare["result"]["success_count"] == 2
        assert chain["result"]["final_output"] == "CODE|a|b"
        assert len(mesh["result"]["results"]) == 4

    def test_empty_models_rejected(self, client):
        r = client.post("/agent/compare", json={"prompt": "p", "code": "CODE", "models": []})

        assert r.status_code == 422

    def test_partial_status(self, client, engine_config, monkeypatch):
        engine = WorkflowEngine(engine_config, executor=FakeExecutor(fail={"b"}))
        monkeypatch.setattr(main, "ENGINE", engine)
        r = client.post("/agent/compare", json={"prompt": "p", "code": "CODE", "models": ["a", "b"]})

        assert r.json()["status"] == "partial"


class TestSessions:
    def test_session_lifecycle(self, client):
        created = client.post("/agent/plan", json={"goal": "g", "code": "CODE"}).json()
        sid = created["session_id"]
        assert created["validation"]["valid"] is True

        first = client.post(f"/agent/sessions/{sid}/next").json()
        assert first["step_index"] == 0
        assert first["result"]["output"] == "CODE|analyze"

        status = client.get(f"/agent/sessions/{sid}/status").json()
        assert status["current_step"] == 1

        assert client.post(f"/agent/sessions/{sid}/step/9").status_code == 400
        assert client.post(f"/agent/sessions/{sid}/undo").json()["cursor"] == 0
        assert client.delete(f"/agent/sessions/{sid}").json()["deleted"] is True
        assert client.get(f"/agent/sessions/{sid}/status").status_code == 404

    def test_unknown_session(self, client):
        assert client.post("/agent/sessions/missing/next").status_code == 404


class TestWorkflowEndpoints:
    def test_modes(self, client):
        assert len(client.get("/workflow/modes").json()["modes"]) == 5
        assert client.post("/workflow/validate", json={"workflow_mode": "chain", "model_count": 1}).json()["valid"] is False
        assert client.post("/workflow/recommend", json={"model_count": 2, "goal": "speed"}).json()["recommended"]["mode"] == "parallel"

    def test_optimize_plan_and_metrics(self, client):
        steps = [
            {"id": "a", "name": "a", "description": "same", "action": "fix"},
            {"id": "b", "name": "b", "description": "same", "action": "fix"},
            {"id": "c", "name": "c", "description": "other"},
        ]
        optimized = client.post("/workflow/optimize", json={"steps": steps}).json()
        assert optimized["metrics"]["steps_removed"] == 1

        plan = client.post("/workflow/plan", json={"steps": steps, "remove_redundant": False}).json()
        assert plan["summary"]["total_batches"] == 1

        assert client.get("/workflow/metrics").json()["redundancy_detections"] == 2
        client.post("/workflow/cache/clear")
        assert client.get("/workflow/metrics").json()["redundancy_detections"] == 0


class TestRuns:
    def test_runs_need_a_store(self, client):
        assert client.get("/runs/last").status_code == 500

    def test_bad_run_id(self, client):
        assert client.get("/runs/not-a-uuid").status_code == 400
