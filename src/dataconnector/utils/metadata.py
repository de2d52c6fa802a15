"""Distribution metadata helpers: project name and version for log records."""
import tomllib
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any

DISTRIBUTION_NAME = "dataconnector"


def find_pyproject(start: Path, max_up: int = 5) -> Path | None:
    p = start
    for _ in range(max_up):
        candidate = p / "pyproject.toml"
        if candidate.exists():
            return candidate
        if p.parent == p:
            break
        p = p.parent
    return None


def get_pyproject_value(key: str, start: Path | None = None, max_up: int = 5, default: Any = None) -> Any:
    """
    Return the dot-separated `key` (e.g. "project.version") from the nearest pyproject.toml.

    Returns `default` when the file is missing, unreadable, or lacks the key.
    """
    pyproject = find_pyproject(start or Path(__file__).resolve().parent, max_up=max_up)
    if pyproject is None:
        return default

    try:
        with pyproject.open("rb") as f:
            current = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return default

    for part in key.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def get_project_name() -> str:
    return get_pyproject_value("project.name", default=DISTRIBUTION_NAME)


def get_project_version(default: str = "unknown") -> str:
    """Installed distribution version, else project.version from a source checkout, else `default`."""
    try:
        return importlib_metadata.version(DISTRIBUTION_NAME)
    except importlib_metadata.PackageNotFoundError:
        pass
    return get_pyproject_value("project.version", default=default)


__all__ = ["find_pyproject", "get_pyproject_value", "get_project_name", "get_project_version"]
