"""Where the diary lives on disk, and the guard that keeps it out of git repos."""

from __future__ import annotations

import os
import re
from pathlib import Path

from .errors import DiarykitError, UnsafeDataPathError

DATA_ENV = "DIARYKIT_DATA"

_PROFILE_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def default_data_path(profile: str | None = None) -> Path:
    base = Path.home() / ".config" / "diarykit"
    if profile and (not _PROFILE_RE.match(profile) or profile.startswith(".")):
        raise DiarykitError(f"Invalid profile name {profile!r} (letters, digits, '_', '-', '.')")
    name = f"{profile}.json" if profile else "data.json"
    return base / name


def resolve_data_path(data_arg: str | None, profile: str | None) -> Path:
    """--data beats DIARYKIT_DATA beats the per-profile default."""
    if data_arg:
        return Path(data_arg).expanduser().resolve()
    env = os.environ.get(DATA_ENV)
    if env:
        return Path(env).expanduser().resolve()
    return default_data_path(profile).expanduser().resolve()


def describe_resolution(data_arg: str | None, profile: str | None) -> str:
    if data_arg:
        return "because you passed --data"
    if os.environ.get(DATA_ENV):
        return f"because {DATA_ENV} is set"
    if profile:
        return f"because you used --profile {profile!r}"
    return "default XDG config location"


def find_git_root(start: Path) -> Path | None:
    cur = start
    for _ in range(200):
        if (cur / ".git").exists():
            return cur
        if cur.parent == cur:
            return None
        cur = cur.parent
    return None


def assert_safe_data_path(data_path: Path, allow_repo_data_path: bool) -> None:
    # a diary must not end up committed by accident
    git_root = find_git_root(data_path.parent)
    if git_root and not allow_repo_data_path:
        raise UnsafeDataPathError(data_path, git_root)
