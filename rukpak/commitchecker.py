"""Command that validates the commits of a revision range."""

from __future__ import annotations

import argparse
import sys

from rukpak.commit_validate import ALL_COMMIT_VALIDATORS
from rukpak.commits import NotCommitError, commits_between


def main(argv: list[str] | None = None) -> int:
    """Validate commits in ``start..end``; return 0, 1 on git errors or 2 on violations."""
    parser = argparse.ArgumentParser(prog="commitchecker")
    parser.add_argument(
        "-start", "--start", default="master",
        help="The start of the revision range for analysis",
    )
    parser.add_argument(
        "-end", "--end", default="HEAD",
        help="The end of the revision range for analysis",
    )
    args = parser.parse_args(argv)

    try:
        commits = commits_between(args.start, args.end)
    except NotCommitError:
        print(
            "WARNING: one of the provided commits does not exist, not a true branch",
            file=sys.stderr,
        )
        return 0
    except (OSError, RuntimeError, ValueError) as err:
        print(
            f"ERROR: couldn't find commits from {args.start}..{args.end}: {err}",
            file=sys.stderr,
        )
        return 1

    errors = [
        message
        for validate in ALL_COMMIT_VALIDATORS
        for commit in commits
        for message in validate(commit)
    ]
    if errors:
        for message in errors:
            sys.stderr.write(f"{message}\n\n")
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())