from src.core.config.loader import load_engine_config
from src.core.config.models import (
    EngineConfig,
    ExecutorConfig,
    ModelStrategy,
    PresetConfig,
    PresetStepConfig,
    SessionStoreConfig,
)
from src.core.config.env import PROJECT_ROOT, load_project_env

__all__ = [
    "load_engine_config",
    "EngineConfig",
    "ExecutorConfig",
    "ModelStrategy",
    "PresetConfig",
    "PresetStepConfig",
    "SessionStoreConfig",
    "PROJECT_ROOT",
    "load_project_env",
]
