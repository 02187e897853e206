"""Exceptions raised by diarykit.

Store operations never raise these under normal use; they surface at the
edges (path resolution, time parsing) where the caller has to react.
"""

from __future__ import annotations

from pathlib import Path


class DiarykitError(Exception):
    """Base class for diarykit errors."""


class UnsafeDataPathError(DiarykitError):
    def __init__(self, data_path: Path, repo_root: Path) -> None:
        self.data_path = data_path
        self.repo_root = repo_root
        super().__init__(f"refusing to use a data file inside a git repo: {data_path} (repo: {repo_root})")


class TimeParseError(DiarykitError, ValueError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Could not parse time {value!r}. Try ISO like '2026-02-25T07:34:00-05:00' "
            f"or '2026-02-25 7:34am' or '7:34am' or 'yesterday 9am' or '3 days ago'."
        )
