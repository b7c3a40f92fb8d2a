"""Shared test fixtures."""

import pytest

from src.core.config.models import EngineConfig, ModelStrategy, PresetConfig, PresetStepConfig
from src.orchestrator.optimizer import WorkflowOptimizer
from tests.fakes import FakeExecutor, FakePlanner


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(
        engine_id="test",
        context_optimization_threshold=50,
        chain_routing_threshold=50,
        strategies={
            "balanced": ModelStrategy(planner="plan-m", executor="exec-m", reviewer="review-m"),
            "cost-optimized": ModelStrategy(planner="cheap", executor="cheap", reviewer="cheap"),
        },
        presets={
            "two-step": PresetConfig(
                name="Two Step",
                description="Analyze then refactor",
                steps=[
                    PresetStepConfig(name="analyze", prompt="Analyze the code", model="model-a", requires_input=True),
                    PresetStepConfig(name="improve", prompt="Refactor based on the analysis", model="model-b"),
                ],
            ),
            "reread": PresetConfig(
                name="Reread",
                steps=[
                    PresetStepConfig(name="first", prompt="Document it", model="model-a", requires_input=True),
                    PresetStepConfig(name="second", prompt="Write a test", model="model-b", requires_input=True),
                ],
            ),
        },
    )


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def planner() -> FakePlanner:
    return FakePlanner()


@pytest.fixture
def optimizer() -> WorkflowOptimizer:
    return WorkflowOptimizer()
