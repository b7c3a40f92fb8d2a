from __future__ import annotations

from src.core.config.models import EngineConfig
from src.core.exceptions import AgentUnavailable
from src.agent.worker import LangChainStepExecutor
from src.orchestrator.executor import HttpStepExecutor, StepExecutorBase


def get_local_executor(config: EngineConfig) -> LangChainStepExecutor:
    return LangChainStepExecutor(default_model=config.executor.default_model)


def build_step_executor(config: EngineConfig) -> StepExecutorBase:
    """Executor backend selected by config.executor.type."""
    executor_type = config.executor.type
    if executor_type == "langchain":
        return get_local_executor(config)
    if executor_type == "http":
        return HttpStepExecutor(config.get_agent_base_url(), timeout=config.executor.timeout_s)
    raise AgentUnavailable(f"Unknown executor type: {executor_type}")
