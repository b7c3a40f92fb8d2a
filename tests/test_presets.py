"""Tests for the preset runner."""

import pytest

from src.core.contracts.orchestrator import WorkflowOptions
from src.core.exceptions import WorkflowNotFound
from src.orchestrator.presets import list_presets, preset_steps, run_preset
from tests.fakes import FakeExecutor


class TestRunPreset:
    @pytest.mark.asyncio
    async def test_two_successful_steps(self, engine_config, executor):
        result = await run_preset(engine_config, executor, "two-step", "CODE")

        assert result.success is True
        assert len(result.results) == 2
        assert result.final_output == "CODE|model-a|model-b"
        assert result.final_output == result.results[1].output
        assert result.total_usage.total_tokens == 40
        assert result.workflow_name == "Two Step"

    @pytest.mark.asyncio
    async def test_requires_input_uses_original_code(self, engine_config, executor):
        await run_preset(engine_config, executor, "reread", "CODE")

        assert [c["code"] for c in executor.calls] == ["CODE", "CODE"]

    @pytest.mark.asyncio
    async def test_context_passed_to_each_step(self, engine_config, executor):
        await run_preset(engine_config, executor, "two-step", "CODE", WorkflowOptions(dry_run=True))

        ctx = executor.calls[1]["context"]
        assert ctx == {"workflow_name": "Two Step", "step_number": 2, "total_steps": 2, "read_only": True}

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_output_and_continues(self, engine_config):
        executor = FakeExecutor(fail={"model-a"})
        result = await run_preset(engine_config, executor, "two-step", "CODE")

        assert result.success is False
        assert len(result.results) == 2
        assert executor.calls[1]["code"] == "CODE"
        assert result.final_output == "CODE|model-b"

    @pytest.mark.asyncio
    async def test_stop_on_error(self, engine_config):
        executor = FakeExecutor(fail={"model-a"})
        result = await run_preset(engine_config, executor, "two-step", "CODE", WorkflowOptions(stop_on_error=True))

        assert len(result.results) == 1
        assert result.final_output == "CODE"

    @pytest.mark.asyncio
    async def test_unknown_preset(self, engine_config, executor):
        with pytest.raises(WorkflowNotFound, match="nope"):
            await run_preset(engine_config, executor, "nope", "CODE")


class TestPresetCatalogue:
    def test_list_presets(self, engine_config):
        listed = {p["id"]: p for p in list_presets(engine_config)}

        assert listed["two-step"] == {
            "id": "two-step",
            "name": "Two Step",
            "description": "Analyze then refactor",
            "steps": 2,
            "output_format": "detailed",
        }

    def test_actions_inferred_from_prompt(self, engine_config):
        steps = preset_steps(engine_config.presets["two-step"])

        assert [s.action for s in steps] == ["analyze", "refactor"]
        assert [s.description for s in steps] == ["Analyze the code", "Refactor based on the analysis"]
