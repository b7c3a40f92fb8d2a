from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent


def load_project_env(project_root: Path | None = None) -> Path | None:
    """Load the first of config/env/.env or .env under the project root. Returns the file used."""
    root = project_root or PROJECT_ROOT
    for candidate in (root / "config" / "env" / ".env", root / ".env"):
        if candidate.exists():
            load_dotenv(candidate, override=False)
            return candidate
    return None


def load_env_from_path(env_file_path: str | None, project_root: Path | None = None) -> None:
    if not env_file_path:
        return
    root = project_root or Path.cwd()
    path = root / env_file_path
    if path.exists():
        load_dotenv(path, override=False)


def get_app_db_url(env: dict[str, str], connection_id: str = "POSTGRES_APP_URL") -> str | None:
    """asyncpg-compatible URL for the run store, or None when persistence is not configured."""
    url = env.get(connection_id)
    if not url:
        return None
    return url.replace("postgresql+asyncpg://", "postgresql://")
