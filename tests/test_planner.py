"""Tests for plan parsing and the LangChain planner."""

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from src.core.contracts.phases import PlanResult
from src.orchestrator.planner import LangChainPlanner, fallback_plan, parse_plan, validate_plan


class TestParsePlan:
    def test_json_plan_in_fences(self):
        content = '```json\n{"steps": [{"name": "a", "description": "Analyze", "action": "analyze"}, {"name": "b", "description": "Fix", "action": "fix"}], "strategy": "two", "estimated_steps": 2}\n```'
        plan = parse_plan(content)

        assert [s.name for s in plan.steps] == ["a", "b"]
        assert [s.id for s in plan.steps] == ["step-1", "step-2"]
        assert plan.strategy == "two"

    def test_json_keeps_given_ids(self):
        plan = parse_plan('{"steps": [{"id": "x", "name": "a", "description": "d"}]}')

        assert plan.steps[0].id == "x"
        assert plan.estimated_steps == 1

    def test_json_numeric_ids_and_null_dependencies(self):
        content = (
            '{"steps": [{"id": 1, "name": "a", "description": "d", "dependencies": null},'
            ' {"id": 2, "name": "b", "description": "e", "dependencies": [1]}]}'
        )
        plan = parse_plan(content)

        assert [s.id for s in plan.steps] == ["1", "2"]
        assert plan.steps[0].dependencies == []
        assert plan.steps[1].dependencies == ["1"]

    def test_numbered_text_plan(self):
        plan = parse_plan("Here is the plan:\n1. Restructure the module\n2. Add comments\n3) Check for bugs")

        assert [s.action for s in plan.steps] == ["refactor", "document", "review"]
        assert plan.strategy == "Auto-generated from text plan"

    def test_unstructured_text_becomes_single_step(self):
        plan = parse_plan("just do it")

        assert len(plan.steps) == 1
        assert plan.steps[0].description == "just do it"

    def test_broken_json_falls_back_to_text(self):
        plan = parse_plan("{ not json }\n- fix the bug")

        assert [s.action for s in plan.steps] == ["fix"]


class TestValidatePlan:
    def test_empty_plan(self):
        assert validate_plan(PlanResult()).issues == ["Plan has no steps"]

    def test_fallback_plan_is_valid(self):
        validation = validate_plan(fallback_plan("goal"))

        assert validation.valid is True
        assert validation.step_count == 3


class TestLangChainPlanner:
    @pytest.mark.asyncio
    async def test_create_plan_with_model(self):
        reply = '{"steps": [{"name": "a", "description": "Refactor x", "action": "refactor"}], "strategy": "s"}'
        planner = LangChainPlanner(model_factory=lambda model, temperature: FakeListChatModel(responses=[reply]))
        plan = await planner.create_plan("goal", "CODE", "m")

        assert plan.model == "m"
        assert plan.steps[0].action == "refactor"

    @pytest.mark.asyncio
    async def test_numeric_ids_keep_model_plan(self):
        reply = '{"steps": [{"id": 1, "name": "a", "description": "Refactor x", "action": "refactor", "dependencies": null}]}'
        planner = LangChainPlanner(model_factory=lambda model, temperature: FakeListChatModel(responses=[reply]))
        plan = await planner.create_plan("goal", "CODE", "m")

        assert not plan.strategy.startswith("Fallback")
        assert [s.id for s in plan.steps] == ["1"]

    @pytest.mark.asyncio
    async def test_model_failure_uses_fallback(self):
        def broken(model, temperature):
            raise RuntimeError("no key")

        plan = await LangChainPlanner(model_factory=broken).create_plan("goal", "CODE")

        assert plan.strategy.startswith("Fallback")
        assert len(plan.steps) == 3
