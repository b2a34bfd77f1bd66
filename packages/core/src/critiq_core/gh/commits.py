from __future__ import annotations

from github import Github

from critiq_core.models import ReviewUnit


def get_repo(repo_name: str, token: str | None):
    return Github(token).get_repo(repo_name)


def get_commit(repo, sha: str):
    return repo.get_commit(sha)


def _file_diff(file) -> str:
    """Render one PyGithub File as a unified-diff section with a ``diff --git`` header."""
    old = file.previous_filename or file.filename
    header = f"diff --git a/{old} b/{file.filename}\n"
    if file.patch is None:
        return header + "Binary file or diff too large, not shown\n"
    return f"{header}--- a/{old}\n+++ b/{file.filename}\n{file.patch.rstrip()}\n"


def commit_unit(commit) -> ReviewUnit:
    """Build a ReviewUnit from a PyGithub Commit."""
    git_commit = commit.commit
    author = git_commit.author
    message = (git_commit.message or "").splitlines()
    return ReviewUnit(
        content="".join(_file_diff(f) for f in commit.files),
        key=commit.sha,
        label=message[0] if message else "",
        author=f"{author.name} <{author.email}>" if author else "",
        date=author.date.isoformat() if author and author.date else "",
    )
