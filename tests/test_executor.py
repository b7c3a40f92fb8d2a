"""Tests for the step executors."""

import httpx
import pytest

from src.core.contracts.orchestrator import Step, StepResult
from src.orchestrator.executor import HttpStepExecutor
from tests.fakes import FakeExecutor


class TestExecuteSteps:
    @pytest.mark.asyncio
    async def test_sequential_with_context(self):
        executor = FakeExecutor()
        steps = [Step(name="a"), Step(name="b")]
        summary = await executor.execute_steps(steps, "CODE", {"goal": "g"})

        assert summary.final_code == "CODE|a|b"
        assert summary.success_count == 2
        assert executor.calls[1]["context"]["previous_steps"] == ["a"]
        assert executor.calls[1]["context"]["goal"] == "g"
        assert summary.total_usage.total_tokens == 40

    @pytest.mark.asyncio
    async def test_stop_on_error(self):
        executor = FakeExecutor(fail={"a"})
        summary = await executor.execute_steps([Step(name="a"), Step(name="b")], "CODE", options={"stop_on_error": True})

        assert len(summary.results) == 1
        assert summary.failure_count == 1
        assert summary.final_code == "CODE"


class TestHttpStepExecutor:
    @pytest.mark.asyncio
    async def test_posts_to_invoke(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.read()
            body = StepResult(success=True, output="done", step_name="s", model="m").model_dump(mode="json")
            return httpx.Response(200, json=body)

        executor = HttpStepExecutor("http://agent:8001/", transport=httpx.MockTransport(handler))
        result = await executor.execute_step(Step(name="s", description="d"), "CODE", {"x": 1}, "m")

        assert seen["url"] == "http://agent:8001/invoke"
        assert b'"model":"m"' in seen["body"].replace(b" ", b"")
        assert result.success is True
        assert result.output == "done"
        assert result.latency_ms is not None

    @pytest.mark.asyncio
    async def test_http_error_becomes_failed_result(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="busy"))
        executor = HttpStepExecutor("http://agent", transport=transport)
        result = await executor.execute_step(Step(name="s"), "CODE")

        assert result.success is False
        assert "HTTP 503" in result.error

    @pytest.mark.asyncio
    async def test_transport_error_becomes_failed_result(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        executor = HttpStepExecutor("http://agent", transport=httpx.MockTransport(handler))
        result = await executor.execute_step(Step(name="s", action="fix"), "CODE")

        assert result.success is False
        assert result.action == "fix"
        assert "refused" in result.error
