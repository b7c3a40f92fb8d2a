import json
import os
from pathlib import Path

from pydantic import ValidationError

from src.core.config.env import load_env_from_path
from src.core.config.models import EngineConfig
from src.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = "config/engine.json"


def resolve_config_path(config_path: str | Path | None, project_root: Path) -> Path:
    """Explicit path, else $CONFIG_PATH, else config/engine.json; relative paths hang off the project root."""
    path = Path(config_path or os.environ.get("CONFIG_PATH") or DEFAULT_CONFIG_PATH)
    return path if path.is_absolute() else project_root / path


def check_engine_config(config: EngineConfig) -> None:
    if config.strategies and "balanced" not in config.strategies:
        raise ConfigError("strategies must include 'balanced' (the fallback strategy)")
    for workflow_id, preset in config.presets.items():
        names = [s.name for s in preset.steps]
        if len(set(names)) != len(names):
            raise ConfigError(f"Preset '{workflow_id}' has duplicate step names")


def load_engine_config(config_path: str | Path | None = None, project_root: Path | None = None) -> EngineConfig:
    root = project_root or Path.cwd()
    path = resolve_config_path(config_path, root)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    try:
        config = EngineConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config schema in {path}: {e}") from e
    check_engine_config(config)
    load_env_from_path(config.env_file_path, root)
    return config
