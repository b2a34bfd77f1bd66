"""Local git access through the git command line."""

from __future__ import annotations

import logging
import subprocess
from collections import Counter
from dataclasses import dataclass, field

from critiq_core.models import ReviewUnit

logger = logging.getLogger(__name__)

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = _FIELD_SEP.join(["%H", "%ai", "%s", "%an <%ae>", "%b"]) + _RECORD_SEP
_GIT_TIMEOUT = 60
_MAX_PREFIX_CHARS = 20
_TOP_COMMIT_TYPES = 10


class GitError(Exception):
    """A git command failed or git is not available."""


@dataclass(frozen=True)
class CommitInfo:
    hash: str
    date: str
    message: str
    author: str
    body: str = ""


def _git(args: list[str], cwd: str = ".") -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=_GIT_TIMEOUT,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        raise GitError(f"git {args[0]} failed: {e}") from e
    if result.returncode != 0:
        raise GitError(f"git {args[0]} failed: {result.stderr.strip()}")
    return result.stdout


def _parse_log(output: str) -> list[CommitInfo]:
    commits = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        fields = record.split(_FIELD_SEP)
        if len(fields) < 4:
            logger.debug("Skipping malformed git log record: %r", record[:80])
            continue
        hash_, date, message, author = fields[:4]
        body = fields[4].strip() if len(fields) > 4 else ""
        commits.append(CommitInfo(hash=hash_, date=date, message=message, author=author, body=body))
    return commits


def list_commits(
    revision_range: str = "HEAD~1..HEAD",
    max_count: int | None = None,
    cwd: str = ".",
    since: str | None = None,
    until: str | None = None,
    author: str | None = None,
) -> list[CommitInfo]:
    """Return the commits in ``revision_range``, newest first.

    ``since`` and ``until`` take anything git accepts as a date ("2024-01-01",
    "2 weeks ago"); ``author`` is matched by git against name and email.
    """
    args = ["log", f"--format={_LOG_FORMAT}"]
    if max_count:
        args.append(f"--max-count={max_count}")
    if since:
        args.append(f"--since={since}")
    if until:
        args.append(f"--until={until}")
    if author:
        args.append(f"--author={author}")
    args.append(revision_range)
    return _parse_log(_git(args, cwd))


def commit_diff(commit_hash: str, cwd: str = ".") -> str:
    return _git(["show", commit_hash, "--pretty=format:", "--unified=3"], cwd)


def staged_diff(cwd: str = ".") -> str:
    return _git(["diff", "--cached", "--unified=3"], cwd)


def load_commit_unit(commit: CommitInfo, cwd: str = ".") -> ReviewUnit:
    """Fetch a commit's diff and wrap it as a ReviewUnit."""
    return ReviewUnit(
        content=commit_diff(commit.hash, cwd),
        key=commit.hash,
        label=commit.message,
        author=commit.author,
        date=commit.date,
    )


def staged_unit(cwd: str = ".") -> ReviewUnit:
    return ReviewUnit(content=staged_diff(cwd), key="staged", label="Staged changes")


@dataclass
class CommitPatterns:
    """Who committed, when, and what kind of commits, over a reviewed history."""

    total: int
    authors: list[tuple[str, int]] = field(default_factory=list)
    monthly: list[tuple[str, int]] = field(default_factory=list)
    commit_types: list[tuple[str, int]] = field(default_factory=list)


def commit_patterns(commits: list[CommitInfo]) -> CommitPatterns:
    """Count commits per author name, per month (YYYY-MM), and per message prefix.

    The prefix is the text before the first ":" in the subject, lowercased, so
    conventional-commit types like ``fix`` and ``feat`` group together.
    Prefixes of 20 characters or more are not counted.
    """
    authors: Counter[str] = Counter()
    months: Counter[str] = Counter()
    prefixes: Counter[str] = Counter()
    for commit in commits:
        authors[commit.author.split(" <")[0]] += 1
        months[commit.date[:7]] += 1
        prefix = commit.message.split(":")[0].lower()
        if len(prefix) < _MAX_PREFIX_CHARS:
            prefixes[prefix] += 1
    return CommitPatterns(
        total=len(commits),
        authors=authors.most_common(),
        monthly=sorted(months.items()),
        commit_types=prefixes.most_common(_TOP_COMMIT_TYPES),
    )
