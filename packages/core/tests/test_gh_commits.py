"""Tests for building review units from GitHub commits."""

from datetime import datetime, timezone
from types import SimpleNamespace

from critiq_core.gh.commits import commit_unit, get_commit, get_repo


def make_file(filename="src/app.py", patch="@@ -1 +1 @@\n-a\n+b", previous_filename=None):
    return SimpleNamespace(filename=filename, patch=patch, previous_filename=previous_filename)


def make_commit(files, message="Fix login\n\nDetails here.", author=True):
    git_author = (
        SimpleNamespace(name="Ann Lee", email="ann@example.com", date=datetime(2024, 3, 1, tzinfo=timezone.utc))
        if author
        else None
    )
    return SimpleNamespace(
        sha="a1b2c3d4e5",
        files=files,
        commit=SimpleNamespace(message=message, author=git_author),
    )


class TestCommitUnit:
    def test_builds_diff_with_headers(self):
        unit = commit_unit(make_commit([make_file(), make_file("README.md", "@@ -0,0 +1 @@\n+hi")]))
        assert unit.content.startswith("diff --git a/src/app.py b/src/app.py\n--- a/src/app.py\n+++ b/src/app.py\n")
        assert "diff --git a/README.md b/README.md" in unit.content
        assert unit.key == "a1b2c3d4e5"

    def test_label_is_first_message_line(self):
        assert commit_unit(make_commit([make_file()])).label == "Fix login"

    def test_author_and_date(self):
        unit = commit_unit(make_commit([make_file()]))
        assert unit.author == "Ann Lee <ann@example.com>"
        assert unit.date == "2024-03-01T00:00:00+00:00"

    def test_missing_author(self):
        unit = commit_unit(make_commit([make_file()], author=False))
        assert unit.author == ""
        assert unit.date == ""

    def test_binary_file_placeholder(self):
        unit = commit_unit(make_commit([make_file("logo.png", patch=None)]))
        assert "Binary file or diff too large, not shown" in unit.content

    def test_renamed_file(self):
        unit = commit_unit(make_commit([make_file("new.py", previous_filename="old.py")]))
        assert unit.content.startswith("diff --git a/old.py b/new.py\n--- a/old.py\n+++ b/new.py\n")


class TestRepoAccess:
    def test_get_repo_uses_token(self, mocker):
        github_cls = mocker.patch("critiq_core.gh.commits.Github")
        get_repo("owner/repo", "tok")
        github_cls.assert_called_once_with("tok")
        github_cls.return_value.get_repo.assert_called_once_with("owner/repo")

    def test_get_commit(self, mocker):
        repo = mocker.MagicMock()
        get_commit(repo, "abc")
        repo.get_commit.assert_called_once_with("abc")
