from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class PresetStepConfig(BaseModel):
    name: str
    prompt: str
    model: str
    requires_input: bool = False


class PresetConfig(BaseModel):
    name: str
    description: str = ""
    steps: list[PresetStepConfig] = Field(min_length=1)
    output_format: str = "detailed"


class ModelStrategy(BaseModel):
    planner: str
    executor: str
    reviewer: str


class ExecutorConfig(BaseModel):
    type: Literal["langchain", "http"] = "langchain"
    base_url: str | None = None  # agent service URL when type == "http"
    timeout_s: float = 120.0
    default_model: str = "gpt-4o-mini"


class ServiceConfig(BaseModel):
    name: str
    port: int


class SessionStoreConfig(BaseModel):
    type: str  # "postgres"
    connection_id: str  # env var name


class EngineConfig(BaseModel):
    engine_id: str
    env_file_path: str | None = None
    context_optimization_threshold: int = 5000  # characters of input code
    chain_routing_threshold: int = 5000
    max_context_tokens: int = 8000
    strategies: dict[str, ModelStrategy] = Field(default_factory=dict)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    orchestrator: ServiceConfig = Field(default_factory=lambda: ServiceConfig(name="orchestrator", port=8000))
    agent: ServiceConfig = Field(default_factory=lambda: ServiceConfig(name="agent", port=8001))
    session_store: SessionStoreConfig | None = None
    presets: dict[str, PresetConfig] = Field(default_factory=dict)

    def get_preset(self, workflow_id: str) -> PresetConfig | None:
        return self.presets.get(workflow_id)

    def get_strategy(self, name: str | None) -> ModelStrategy | None:
        """Model trio for a strategy, falling back to 'balanced'."""
        if name and name in self.strategies:
            return self.strategies[name]
        return self.strategies.get("balanced")

    def get_agent_base_url(self, host: str = "127.0.0.1") -> str:
        if self.executor.base_url:
            return self.executor.base_url.rstrip("/")
        return f"http://{host}:{self.agent.port}"
