"""Checks applied to each commit of a revision range."""

from __future__ import annotations

from typing import Callable

from rukpak.commits import UPSTREAM_SUMMARY_PATTERN_TEXT, Commit

_UPSTREAM = "UPSTREAM"

# Guidance shown for a rejected summary: a heading and the sample lines under it.
_SUMMARY_GUIDANCE: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        f"{_UPSTREAM} commit summaries should look like:",
        (f"{_UPSTREAM}: <PR number|carry|drop>: description",),
    ),
    (
        f"{_UPSTREAM} commits which revert previous {_UPSTREAM} commits should look like:",
        (f"{_UPSTREAM}: revert: <normal upstream format>",),
    ),
    (
        "Examples of valid summaries:",
        tuple(
            f"{_UPSTREAM}: {example}"
            for example in (
                "12345: A kube fix",
                "<carry>: A carried kube change",
                "<drop>: A dropped kube change",
                "revert: 12345: A kube revert",
            )
        ),
    ),
)


def _invalid_summary_message(commit: Commit) -> str:
    paragraphs = [
        f"{_UPSTREAM} commit {commit.sha} has invalid summary {commit.summary}.",
        f"{_UPSTREAM} commits are validated against the following regular expression:\n"
        f"  {UPSTREAM_SUMMARY_PATTERN_TEXT}",
    ]
    paragraphs.extend(
        heading + "\n\n" + "\n".join(f"  {line}" for line in lines)
        for heading, lines in _SUMMARY_GUIDANCE
    )
    return "\n" + "\n\n".join(paragraphs) + "\n"


def validate_commit_author(commit: Commit) -> list[str]:
    """Reject commits authored from a root account."""
    if commit.email.startswith("root@"):
        email = commit.email.replace("\\", "\\\\").replace('"', '\\"')
        return [f'Commit {commit.sha} has invalid email "{email}"']
    return []


def validate_commit_message(commit: Commit) -> list[str]:
    """Require local commits to carry an upstream-style summary; merges are ignored."""
    if commit.matches_merge_summary_pattern() or commit.matches_upstream_summary_pattern():
        return []
    return [_invalid_summary_message(commit)]


ALL_COMMIT_VALIDATORS: list[Callable[[Commit], list[str]]] = [
    validate_commit_author,
    validate_commit_message,
]