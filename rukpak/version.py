"""Build and revision information."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

_UNKNOWN = "unknown"
_STATE_MAP = {"true": "dirty", "false": "clean"}

# Version-control settings recorded when the package is built.
_BUILD_SETTINGS: dict[str, str] = {}


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass(frozen=True)
class BuildInfo:
    """Revision, commit date and working tree state of a build."""

    git_commit: str = _UNKNOWN
    commit_date: str = _UNKNOWN
    repo_state: str = _UNKNOWN

    @classmethod
    def from_settings(
        cls, settings: Mapping[str, str] | Iterable[tuple[str, str]]
    ) -> "BuildInfo":
        """Build from ``vcs.*`` key/value settings; unknown keys are ignored."""
        pairs = settings.items() if isinstance(settings, Mapping) else settings
        git_commit = commit_date = repo_state = _UNKNOWN
        for key, value in pairs:
            if key == "vcs.revision":
                git_commit = value
            elif key == "vcs.time":
                commit_date = value
            elif key == "vcs.modified" and value in _STATE_MAP:
                repo_state = _STATE_MAP[value]
        return cls(git_commit, commit_date, repo_state)

    def __str__(self) -> str:
        return (
            f"revision: {_quote(self.git_commit)}, "
            f"date: {_quote(self.commit_date)}, "
            f"state: {_quote(self.repo_state)}"
        )


def version_string() -> str:
    """Describe the build this package came from."""
    return str(BuildInfo.from_settings(_BUILD_SETTINGS))