"""Commit inspection for revision ranges of a git repository."""

from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass, field

MERGE_SUMMARY_PATTERN = re.compile(r"^Merge commit .*", re.ASCII)

# The upstream summary pattern as it is shown to people in validation messages.
UPSTREAM_SUMMARY_PATTERN_TEXT = (
    r"^UPSTREAM: (revert: )?(([\w\.-]+\/[\w-\.-]+)?: )?(\d+:|<carry>:|<drop>:)"
)
UPSTREAM_SUMMARY_PATTERN = re.compile(
    r"^UPSTREAM: (revert: )?(([\w.-]+/[\w.-]+)?: )?(\d+:|<carry>:|<drop>:)", re.ASCII
)
BUMP_SUMMARY_PATTERN = re.compile(r"^bump[(\w].*", re.ASCII)

# Paths inside the vendor directory that may be patched directly.
PATCH_PATTERNS = (re.compile(r"^k8s.io/kubernetes/.*", re.ASCII),)

# Number of leading path segments that identify a repository on each host.
SUPPORTED_HOSTS = {
    "bitbucket.org": 3,
    "cloud.google.com": 2,
    "code.google.com": 3,
    "github.com": 3,
    "go" "lang.org": 3,
    "google.go" "lang.org": 2,
    "gopkg.in": 2,
    "k8s.io": 2,
    "speter.net": 2,
}

_VENDOR_PREFIX = "vendor/"
_DEFAULT_UPSTREAM_REPO = "k8s.io/kubernetes"


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class NotCommitError(Exception):
    """One or both of the given revisions is not a valid commit."""

    def __init__(self) -> None:
        super().__init__("one or both of the provided commits was not a valid commit")


class File(str):
    """A path changed by a commit, relative to the repository root."""

    def has_vendored_code_changes(self) -> bool:
        return self.startswith("vendor")

    def is_patch(self) -> bool:
        if not self.startswith(_VENDOR_PREFIX):
            return False
        rest = self[len(_VENDOR_PREFIX):]
        return any(pattern.match(rest) for pattern in PATCH_PATTERNS)

    def vendor_repo(self) -> str:
        """Repository the vendored file belongs to, such as ``github.com/org/repo``."""
        if not self.startswith(_VENDOR_PREFIX):
            raise ValueError(f"file {_quote(self)} doesn't appear to be a vendor change")
        parts = self[len(_VENDOR_PREFIX):].split("/")
        segments = SUPPORTED_HOSTS.get(parts[0])
        if segments is None:
            raise ValueError(f"unsupported host for file {_quote(self)}")
        if segments < 1:
            raise ValueError(
                f"invalid number of segments {segments} when processing file path {_quote(self)}"
            )
        return "/".join(parts[:segments])


@dataclass
class Commit:
    """A commit with the information the validators look at."""

    sha: str = ""
    summary: str = ""
    description: list[str] = field(default_factory=list)
    files: list[File] = field(default_factory=list)
    email: str = ""

    def __post_init__(self) -> None:
        self.files = [File(f) for f in self.files]

    def matches_merge_summary_pattern(self) -> bool:
        return MERGE_SUMMARY_PATTERN.match(self.summary) is not None

    def matches_upstream_summary_pattern(self) -> bool:
        return UPSTREAM_SUMMARY_PATTERN.match(self.summary) is not None

    def matches_bump_summary_pattern(self) -> bool:
        return BUMP_SUMMARY_PATTERN.match(self.summary) is not None

    def declared_upstream_repo(self) -> str:
        """Repository named in an upstream summary, defaulting to kubernetes."""
        match = UPSTREAM_SUMMARY_PATTERN.match(self.summary)
        if match is None:
            raise ValueError("commit doesn't match the upstream commit summary pattern")
        return match.group(3) or _DEFAULT_UPSTREAM_REPO

    def has_vendored_code_changes(self) -> bool:
        return any(f.has_vendored_code_changes() for f in self.files)

    def has_non_vendored_code_changes(self) -> bool:
        return any(not f.has_vendored_code_changes() for f in self.files)

    def has_patches(self) -> bool:
        return any(f.is_patch() for f in self.files)

    def has_bumped_files(self) -> bool:
        return any(f.has_vendored_code_changes() and not f.is_patch() for f in self.files)

    def patched_repos(self) -> list[str]:
        """Distinct repositories of patched vendor files, in order of appearance."""
        repos = {f.vendor_repo(): None for f in self.files if f.is_patch()}
        return list(repos)


def _run(*args: str, cwd: str | None = None) -> subprocess.CompletedProcess:
    return subprocess.run(list(args), capture_output=True, text=True, cwd=cwd, check=False)


def _exit_status(result: subprocess.CompletedProcess) -> str:
    return f"exit status {result.returncode}"


def _git_in(repo_dir: str, *args: str) -> str:
    result = _run("git", *args, cwd=repo_dir)
    if result.returncode != 0:
        raise RuntimeError(
            f"out={result.stdout.strip()}, err={result.stderr.strip()}, {_exit_status(result)}"
        )
    return result.stdout


def _git(*args: str) -> str:
    result = _run("git", *args)
    if result.returncode != 0:
        raise RuntimeError(f"{result.stderr}: {_exit_status(result)}")
    return result.stdout


def _nonempty_lines(text: str) -> list[str]:
    return [line for line in text.split("\n") if line]


def is_commit(ref: str) -> bool:
    """Whether git can resolve ``ref``."""
    try:
        return _run("git", "rev-parse", ref).returncode == 0
    except OSError:
        return False


def commits_between(a: str, b: str) -> list[Commit]:
    """Commits in the range ``a..b``, newest first."""
    result = _run("git", "log", "--oneline", f"{a}..{b}")
    if result.returncode != 0:
        if not is_commit(a) or not is_commit(b):
            raise NotCommitError()
        raise RuntimeError(f"error executing git log: {result.stderr}: {_exit_status(result)}")
    return [commit_from_oneline_log(line) for line in _nonempty_lines(result.stdout)]


def commit_from_oneline_log(log: str) -> Commit:
    """Build a commit from one ``git log --oneline`` line, filling in details from git."""
    parts = log.split(" ")
    if len(parts) < 2:
        raise ValueError(f"invalid log entry: {log}")
    sha = parts[0]
    return Commit(
        sha=sha,
        summary=" ".join(parts[1:]),
        description=_nonempty_lines(_git("log", "--pretty=%b", "-1", sha)),
        files=[File(name) for name in _nonempty_lines(
            _git("diff-tree", "--no-commit-id", "--name-only", "-r", sha)
        )],
        email=_git("show", "--format=%ae", "-s", sha).strip(),
    )


def fetch_repo(repo_dir: str) -> None:
    """Fetch ``origin`` in the repository at ``repo_dir``."""
    _git_in(repo_dir, "fetch", "origin")


def is_ancestor(commit1: str, commit2: str, repo_dir: str) -> bool:
    """True if ``commit1`` is an ancestor of ``commit2``; raises otherwise."""
    _git_in(repo_dir, "merge-base", "--is-ancestor", commit1, commit2)
    return True


def commit_date(commit: str, repo_dir: str) -> str:
    """Committer date of ``commit`` after fetching ``origin``."""
    _git_in(repo_dir, "fetch", "origin")
    return _git_in(repo_dir, "show", "-s", "--format=%ci", commit).strip()


def checkout(commit: str, repo_dir: str) -> None:
    """Check out ``commit`` in the repository at ``repo_dir``."""
    _git_in(repo_dir, "checkout", commit)


def current_rev(repo_dir: str) -> str:
    """The commit hash of ``HEAD`` in the repository at ``repo_dir``."""
    return _git_in(repo_dir, "rev-parse", "HEAD").strip()