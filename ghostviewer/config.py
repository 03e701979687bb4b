"""
Runtime settings read from the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_PORT = 3001
DEFAULT_REGION = "us-west-2"

# Conventional state locations relative to the project root, in priority order
STATE_CANDIDATES = (
    Path(".sst") / "state.json",
    Path("state.json"),
)


def resolve_state_path(project_root: Path, explicit: Optional[str] = None) -> str:
    """
    Pick the state file to load.

    Args:
        project_root: Directory the tool was started in
        explicit: Path given by STATE_PATH or the user

    Returns:
        The explicit path, else the first conventional candidate that
        exists, else an empty string
    """
    if explicit:
        return explicit

    for candidate in STATE_CANDIDATES:
        path = project_root / candidate
        if path.is_file():
            return str(path)
    return ""


@dataclass
class Settings:
    """Settings for the API server and CLI."""
    project_root: Path = field(default_factory=Path.cwd)
    state_path: str = ""
    port: int = DEFAULT_PORT
    region: str = DEFAULT_REGION
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, project_root: Optional[Path] = None) -> "Settings":
        root = (project_root or Path.cwd()).resolve()
        return cls(
            project_root=root,
            state_path=resolve_state_path(root, os.environ.get("STATE_PATH")),
            port=int(os.environ.get("GHOST_VIEWER_PORT", DEFAULT_PORT)),
            region=os.environ.get("GHOST_VIEWER_REGION", DEFAULT_REGION),
            log_level=os.environ.get("GHOST_VIEWER_LOG_LEVEL", "INFO").upper(),
        )
