from src.core.config.loader import load_engine_config
from src.core.config.models import EngineConfig, ExecutorConfig, PresetConfig, SessionStoreConfig
from src.core.exceptions import (
    AgentUnavailable,
    ConfigError,
    InvalidStepIndex,
    PlanningFailure,
    SessionNotFound,
    WorkflowNotFound,
)

__all__ = [
    "load_engine_config",
    "EngineConfig",
    "ExecutorConfig",
    "PresetConfig",
    "SessionStoreConfig",
    "AgentUnavailable",
    "ConfigError",
    "InvalidStepIndex",
    "PlanningFailure",
    "SessionNotFound",
    "WorkflowNotFound",
]
