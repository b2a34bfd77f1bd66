"""File selection and framing for whole-repository review."""

from __future__ import annotations

import fnmatch
import logging
from datetime import datetime, timezone
from pathlib import Path

from critiq_core.chunking import FileEntry, group_files
from critiq_core.models import ReviewUnit
from critiq_core.utils.code import is_code_file, language_tag

logger = logging.getLogger(__name__)


def is_excluded(filename: str, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.lock", "*.min.js"
    - Directory names/prefixes: "migrations/", "tests" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False


def collect_files(paths: list[str], exclude: list[str] | None = None, root: str = ".") -> list[FileEntry]:
    """Expand files and directories into a sorted, de-duplicated list of reviewable files.

    Paths are reported relative to ``root`` when they live under it.
    """
    exclude = exclude or []
    base = Path(root).resolve()
    found: dict[str, FileEntry] = {}

    for raw in paths:
        path = Path(raw)
        if not path.exists():
            logger.warning("Path does not exist, skipping: %s", raw)
            continue
        candidates = [path] if path.is_file() else sorted(p for p in path.rglob("*") if p.is_file())
        for candidate in candidates:
            resolved = candidate.resolve()
            try:
                name = resolved.relative_to(base).as_posix()
            except ValueError:
                name = candidate.as_posix()
            if name in found or not is_code_file(name) or is_excluded(name, exclude):
                continue
            found[name] = FileEntry(path=name, size=resolved.stat().st_size)

    return sorted(found.values(), key=lambda f: f.path)


def frame_file(entry: FileEntry, root: str = ".") -> str:
    """Render one file as a ``--- FILE: path ---`` section with size and mtime."""
    path = Path(root) / entry.path
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
        modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()
    except OSError as e:
        logger.warning("Could not read %s: %s", entry.path, e)
        return f"--- FILE: {entry.path} ---\nERROR: Could not read file - {e}\n\n"
    return (
        f"--- FILE: {entry.path} ---\n"
        f"Size: {entry.size} bytes\n"
        f"Modified: {modified}\n\n"
        f"```{language_tag(entry.path)}\n{content}\n```\n\n"
    )


def file_group_units(
    files: list[FileEntry],
    max_files: int = 5,
    max_bytes: int = 100_000,
    root: str = ".",
) -> list[ReviewUnit]:
    """Group files under both ceilings and build one ReviewUnit per group."""
    groups = group_files(files, max_files=max_files, max_bytes=max_bytes)
    now = datetime.now(timezone.utc).isoformat()
    units = []
    for i, group in enumerate(groups, 1):
        names = ", ".join(Path(f.path).name for f in group)
        units.append(
            ReviewUnit(
                content="".join(frame_file(f, root) for f in group),
                key=f"group-{i}",
                label=f"Repository review - Group {i}: {names}",
                date=now,
                kind="files",
            )
        )
    return units
