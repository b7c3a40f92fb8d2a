"""Tests for workflow mode validation and recommendation."""

from src.orchestrator.modes import get_workflow_modes, recommend_workflow, validate_workflow_mode


class TestValidateWorkflowMode:
    def test_valid(self):
        assert validate_workflow_mode("chain", 3).valid is True

    def test_too_few_models(self):
        result = validate_workflow_mode("all-to-all", 1)
        assert result.valid is False
        assert "at least 2" in result.error

    def test_too_many_models(self):
        result = validate_workflow_mode("single", 2)
        assert result.valid is False
        assert "up to 1" in result.error

    def test_unknown_mode(self):
        assert validate_workflow_mode("swarm", 2).error == "Unknown workflow mode: swarm"


class TestRecommendWorkflow:
    def test_speed_prefers_parallel(self):
        assert recommend_workflow(3, "speed").mode == "parallel"

    def test_quality_prefers_mesh(self):
        assert recommend_workflow(3, "quality").mode == "all-to-all"

    def test_cost_with_one_model(self):
        assert recommend_workflow(1, "cost").mode == "single"

    def test_no_compatible_mode(self):
        assert recommend_workflow(50) is None

    def test_catalogue(self):
        assert [m["mode"] for m in get_workflow_modes()] == ["single", "agentic", "parallel", "chain", "all-to-all"]
