"""Tests for the all-to-all mesh runner."""

import pytest

from src.core.contracts.orchestrator import MeshMessage
from src.orchestrator.mesh import MeshMessageLog, ModelState, run_mesh, synthesize
from tests.fakes import FakeExecutor


class TestRunMesh:
    @pytest.mark.asyncio
    async def test_two_models_two_rounds(self, executor):
        result = await run_mesh(executor, "improve", "CODE", ["a", "b"], iterations=2)

        round1 = [r for r in result.results if r.round == 1]
        round2 = [r for r in result.results if r.round == 2]
        assert len(round1) == 2 and len(round2) == 2
        assert round2[0].collaborated_with == ["b"]
        assert round2[1].collaborated_with == ["a"]
        assert "a" in result.final_output and "b" in result.final_output
        assert result.final_output.endswith("between: a, b")
        assert result.success is True

    @pytest.mark.asyncio
    async def test_peers_read_round_start_snapshot(self, executor):
        await run_mesh(executor, "p", "CODE", ["a", "b"], iterations=2)

        # b's round-2 prompt carries a's round-1 output, not a's round-2 output
        b_round2 = executor.calls[3]
        assert "CODE|a" in b_round2["step"].description
        assert "CODE|a|a" not in b_round2["step"].description
        assert b_round2["code"] == "CODE|b"

    @pytest.mark.asyncio
    async def test_message_log_indexed_from_states(self, executor):
        result = await run_mesh(executor, "p", "CODE", ["a", "b", "c"], iterations=2)

        assert len(result.messages) == 6
        state_a = next(s for s in result.model_states if s.model_id == "a")
        assert len(state_a.messages_received) == 2
        assert len(state_a.messages_sent) == 2
        assert {m.sender for m in state_a.messages_received} == {"b", "c"}

    @pytest.mark.asyncio
    async def test_starved_model_skipped(self):
        executor = FakeExecutor(fail={"b"})
        result = await run_mesh(executor, "p", "CODE", ["a", "b"], iterations=2)

        # a has no peer output in round 2 and is skipped; b still sees a
        round2 = [r for r in result.results if r.round == 2]
        assert [r.model for r in round2] == ["b"]
        assert executor.calls[-1]["code"] == "CODE"

    @pytest.mark.asyncio
    async def test_repeated_model_is_sampled_twice(self, executor):
        result = await run_mesh(executor, "p", "CODE", ["a", "a"], iterations=2)

        round2 = [r for r in result.results if r.round == 2]
        assert len(round2) == 2
        assert [r.collaborated_with for r in round2] == [["a"], ["a"]]
        assert len(result.model_states) == 2
        assert [len(s.history) for s in result.model_states] == [2, 2]
        assert len(result.messages) == 2
        assert [len(s.messages_received) for s in result.model_states] == [1, 1]
        assert result.final_output.endswith("between: a")

    @pytest.mark.asyncio
    async def test_single_round(self, executor):
        result = await run_mesh(executor, "p", "CODE", ["a", "b"], iterations=1)

        assert len(result.results) == 2
        assert result.messages == []

    @pytest.mark.asyncio
    async def test_all_failing_is_unsuccessful(self):
        executor = FakeExecutor(raise_on={"a", "b"})
        result = await run_mesh(executor, "p", "CODE", ["a", "b"], iterations=3)

        assert result.final_output is None
        assert result.success is False
        assert all(not r.success for r in result.results)


class TestMeshPieces:
    def test_log_is_append_only(self):
        log = MeshMessageLog()
        first = log.append(MeshMessage(round=2, sender="a", recipient="b", chars=3))
        second = log.append(MeshMessage(round=2, sender="b", recipient="a", chars=4))

        assert (first, second) == (0, 1)
        assert log[0].sender == "a"
        assert len(log) == 2

    def test_synthesize_uses_last_model_with_output(self):
        a, b, c = ModelState("a"), ModelState("b"), ModelState("c")
        a.record("A")
        b.record("B")

        assert synthesize([a, b, c]).startswith("B\n\n---\n")
        assert synthesize([a, b, c]).endswith("between: a, b")
