"""Tests for the chain runner."""

import pytest

from src.core.contracts.orchestrator import WorkflowOptions
from src.orchestrator.chain import chain_steps_for, run_chain
from tests.fakes import FakeContextManager, FakeExecutor


class TestRunChain:
    @pytest.mark.asyncio
    async def test_each_model_consumes_previous_output(self, engine_config, executor):
        result = await run_chain(engine_config, executor, "improve", "CODE", ["m1", "m2", "m3"])

        assert [c["code"] for c in executor.calls] == ["CODE", "CODE|m1", "CODE|m1|m2"]
        assert result.final_output == "CODE|m1|m2|m3"
        assert [r.position for r in result.results] == [1, 2, 3]
        assert [c["step"].name for c in executor.calls] == ["chain-step-1", "chain-step-2", "chain-step-3"]
        assert result.success is True

    @pytest.mark.asyncio
    async def test_raising_middle_model(self, engine_config):
        executor = FakeExecutor(raise_on={"m2"})
        result = await run_chain(engine_config, executor, "p", "CODE", ["m1", "m2", "m3"], WorkflowOptions(stop_on_error=False))

        assert len(result.results) == 3
        assert result.results[1].success is False
        assert executor.calls[2]["code"] == "CODE|m1"
        assert result.final_output == "CODE|m1|m3"
        assert result.success is False

    @pytest.mark.asyncio
    async def test_stop_on_error(self, engine_config):
        executor = FakeExecutor(fail={"m1"})
        result = await run_chain(engine_config, executor, "p", "CODE", ["m1", "m2"], WorkflowOptions(stop_on_error=True))

        assert len(result.results) == 1
        assert result.final_output == "CODE"

    @pytest.mark.asyncio
    async def test_empty_models_rejected(self, engine_config, executor):
        with pytest.raises(ValueError):
            await run_chain(engine_config, executor, "p", "CODE", [])


class TestChainRouting:
    def test_chain_steps_link_to_predecessor(self):
        steps = chain_steps_for(["a", "b", "c"])

        assert [s["id"] for s in steps] == ["step-0", "step-1", "step-2"]
        assert steps[0]["dependencies"] == []
        assert steps[2]["dependencies"] == ["step-1"]

    @pytest.mark.asyncio
    async def test_routed_context_replaces_raw_code(self, engine_config, executor):
        big = "z" * 100
        cm = FakeContextManager()
        result = await run_chain(engine_config, executor, "p", big, ["m1", "m2"], context_manager=cm)

        assert executor.calls[0]["code"] == "ROUTED-step-0"
        assert executor.calls[1]["code"].startswith("ROUTED-step-1")
        assert "ROUTED-step-0|m1" in executor.calls[1]["code"]
        assert executor.calls[0]["context"]["context_routing"]["chunks"] == 1
        assert result.context_routing["total_chunks"] == 2

    @pytest.mark.asyncio
    async def test_routing_failure_is_ignored(self, engine_config, executor):
        big = "z" * 100
        result = await run_chain(engine_config, executor, "p", big, ["m1"], context_manager=FakeContextManager(fail=True))

        assert executor.calls[0]["code"] == big
        assert result.context_routing is None
        assert result.success is True
