"""Tests for repository file selection and grouping."""

from critiq_core.chunking import FileEntry
from critiq_core.utils.files import collect_files, file_group_units, frame_file, is_excluded


def _tree(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("print('hi')\n")
    (tmp_path / "src" / "util.js").write_text("export const x = 1;\n")
    (tmp_path / "src" / "logo.png").write_bytes(b"\x89PNG")
    (tmp_path / "node_modules" / "lib").mkdir(parents=True)
    (tmp_path / "node_modules" / "lib" / "index.js").write_text("module.exports = 1;\n")
    (tmp_path / "migrations").mkdir()
    (tmp_path / "migrations" / "0001.py").write_text("ops = []\n")
    return tmp_path


class TestIsExcluded:
    def test_basename_glob(self):
        assert is_excluded("static/app.min.js", ["*.min.js"])

    def test_full_path_glob(self):
        assert is_excluded("src/generated/api.py", ["src/generated/*.py"])

    def test_directory_prefix(self):
        assert is_excluded("migrations/0001.py", ["migrations/"])
        assert is_excluded("app/migrations/0001.py", ["migrations"])

    def test_no_match(self):
        assert not is_excluded("src/app.py", ["*.lock", "docs/"])


class TestCollectFiles:
    def test_walks_directories_and_filters(self, tmp_path):
        root = _tree(tmp_path)
        files = collect_files([str(root)], root=str(root))
        assert [f.path for f in files] == ["migrations/0001.py", "src/app.py", "src/util.js"]

    def test_exclude_patterns(self, tmp_path):
        root = _tree(tmp_path)
        files = collect_files([str(root)], exclude=["migrations/"], root=str(root))
        assert [f.path for f in files] == ["src/app.py", "src/util.js"]

    def test_sizes(self, tmp_path):
        root = _tree(tmp_path)
        files = collect_files([str(root / "src" / "app.py")], root=str(root))
        assert files == [FileEntry("src/app.py", len("print('hi')\n"))]

    def test_duplicates_and_missing_paths(self, tmp_path):
        root = _tree(tmp_path)
        files = collect_files([str(root / "src"), str(root / "src" / "app.py"), str(root / "nope")], root=str(root))
        assert [f.path for f in files] == ["src/app.py", "src/util.js"]


class TestFraming:
    def test_frame_file(self, tmp_path):
        (tmp_path / "a.py").write_text("x = 1")
        framed = frame_file(FileEntry("a.py", 5), root=str(tmp_path))
        assert framed.startswith("--- FILE: a.py ---\nSize: 5 bytes\nModified: ")
        assert "```py\nx = 1\n```\n\n" in framed

    def test_unreadable_file(self, tmp_path):
        framed = frame_file(FileEntry("gone.py", 5), root=str(tmp_path))
        assert framed.startswith("--- FILE: gone.py ---\nERROR: Could not read file")

    def test_group_units(self, tmp_path):
        for name in ("a.py", "b.py", "c.py"):
            (tmp_path / name).write_text("pass\n")
        entries = [FileEntry(n, 5) for n in ("a.py", "b.py", "c.py")]
        units = file_group_units(entries, max_files=2, root=str(tmp_path))
        assert [u.key for u in units] == ["group-1", "group-2"]
        assert units[0].label == "Repository review - Group 1: a.py, b.py"
        assert units[0].kind == "files"
        assert units[0].content.count("--- FILE: ") == 2
