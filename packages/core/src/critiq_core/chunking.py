"""Split oversized review input into bounded, coherent chunks.

Splitting policy, in priority order:

1. Content with per-file boundaries (``diff --git`` headers or
   ``--- FILE: path ---`` separators) is packed one whole file section at a
   time, so a file's local diff context is never cut. A section larger than
   the budget on its own becomes a chunk of its own.
2. Content without boundaries is packed line by line under the same budget.

Both paths use the same greedy pack-then-flush loop, and so does
``group_files`` for whole-repository review. Chunk contents concatenated in
order reproduce the input exactly.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from critiq_core.models import Chunk

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DIFF_HEADER_RE = re.compile(r"^diff --git a/(?P<old>\S+) b/(?P<new>\S+)")
_FILE_HEADER_RE = re.compile(r"^--- FILE: (?P<path>.+?) ---\s*$")

# Roughly four bytes of source text per model token. The 0.8 ratio leaves
# room for the prompt scaffolding around each chunk.
_BYTES_PER_TOKEN = 4
_BUDGET_RATIO = 0.8
_MIN_CHUNK_BYTES = 4_000
_MAX_CHUNK_BYTES = 80_000


@dataclass(frozen=True)
class FileEntry:
    """A file considered for repository review."""

    path: str
    size: int


@dataclass(frozen=True)
class _Piece:
    text: str
    size: int
    path: str | None = None


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def chunk_byte_budget(max_tokens: int, configured: int | None = None) -> int:
    """Return the per-chunk byte budget for a model with ``max_tokens`` of output."""
    if configured:
        return int(configured)
    budget = int(max_tokens * _BYTES_PER_TOKEN * _BUDGET_RATIO)
    return max(_MIN_CHUNK_BYTES, min(_MAX_CHUNK_BYTES, budget))


def _greedy_pack(
    items: Sequence[T],
    size_of: Callable[[T], int],
    max_bytes: int,
    max_items: int | None = None,
) -> list[list[T]]:
    """Fill a group until the next item would break a ceiling, then start a new one.

    An item that alone exceeds ``max_bytes`` still gets a group of its own.
    """
    groups: list[list[T]] = []
    current: list[T] = []
    current_bytes = 0
    for item in items:
        size = size_of(item)
        full = max_items is not None and len(current) >= max_items
        if current and (full or current_bytes + size > max_bytes):
            groups.append(current)
            current = []
            current_bytes = 0
        current.append(item)
        current_bytes += size
    if current:
        groups.append(current)
    return groups


def _boundary_path(line: str) -> str | None:
    stripped = line.rstrip("\r\n")
    match = _DIFF_HEADER_RE.match(stripped)
    if match:
        return match.group("new")
    match = _FILE_HEADER_RE.match(stripped)
    if match:
        return match.group("path")
    return None


def _file_sections(content: str) -> list[_Piece]:
    """Cut content at file boundaries. Returns [] when there are none."""
    sections: list[_Piece] = []
    preamble: list[str] = []
    lines: list[str] = []
    path: str | None = None

    for line in content.splitlines(keepends=True):
        boundary = _boundary_path(line)
        if boundary is not None:
            if path is not None:
                text = "".join(lines)
                sections.append(_Piece(text, _byte_len(text), path))
            elif lines:
                preamble = lines
            path = boundary
            lines = []
        lines.append(line)

    if path is None:
        return []

    text = "".join(lines)
    sections.append(_Piece(text, _byte_len(text), path))

    if preamble:
        # Text before the first header belongs to the first section.
        first = sections[0]
        text = "".join(preamble) + first.text
        sections[0] = _Piece(text, _byte_len(text), first.path)
    return sections


def _cut_to_budget(line: str, max_bytes: int) -> list[_Piece]:
    """Cut a single over-long line at character boundaries."""
    pieces: list[_Piece] = []
    start = 0
    size = 0
    for i, ch in enumerate(line):
        ch_size = _byte_len(ch)
        if size and size + ch_size > max_bytes:
            pieces.append(_Piece(line[start:i], size))
            start = i
            size = 0
        size += ch_size
    if start < len(line):
        pieces.append(_Piece(line[start:], size))
    return pieces


def _line_pieces(content: str, max_bytes: int) -> list[_Piece]:
    pieces: list[_Piece] = []
    for line in content.splitlines(keepends=True):
        size = _byte_len(line)
        if size > max_bytes:
            pieces.extend(_cut_to_budget(line, max_bytes))
        else:
            pieces.append(_Piece(line, size))
    return pieces


def _to_chunks(groups: list[list[_Piece]]) -> list[Chunk]:
    chunks = []
    for i, group in enumerate(groups):
        paths = tuple(dict.fromkeys(p.path for p in group if p.path is not None))
        chunks.append(
            Chunk(
                index=i,
                total=len(groups),
                content="".join(p.text for p in group),
                estimated_bytes=sum(p.size for p in group),
                source_files=paths,
            )
        )
    return chunks


def _check_budget(max_chunk_bytes: int) -> None:
    if max_chunk_bytes < 1:
        raise ValueError(f"max_chunk_bytes must be positive, got {max_chunk_bytes}")


def split_lines(content: str, max_chunk_bytes: int) -> list[Chunk]:
    """Pack content line by line; no chunk exceeds ``max_chunk_bytes``."""
    _check_budget(max_chunk_bytes)
    groups = _greedy_pack(_line_pieces(content, max_chunk_bytes), lambda p: p.size, max_chunk_bytes)
    if not groups:
        return [Chunk(index=0, total=1, content=content, estimated_bytes=_byte_len(content))]
    return _to_chunks(groups)


def split_content(content: str, max_chunk_bytes: int) -> list[Chunk]:
    """Split review input into chunks of at most ``max_chunk_bytes`` where possible.

    Always returns at least one chunk, even when the input already fits.
    """
    _check_budget(max_chunk_bytes)
    sections = _file_sections(content)
    if not sections:
        logger.debug("No file boundaries found; splitting %d bytes by line", _byte_len(content))
        return split_lines(content, max_chunk_bytes)

    chunks = _to_chunks(_greedy_pack(sections, lambda p: p.size, max_chunk_bytes))
    logger.debug("Packed %d file section(s) into %d chunk(s)", len(sections), len(chunks))
    return chunks


def group_files(files: Sequence[FileEntry], max_files: int = 5, max_bytes: int = 100_000) -> list[list[FileEntry]]:
    """Group files for repository review under a file-count and a cumulative-byte ceiling."""
    if max_files < 1 or max_bytes < 1:
        raise ValueError("max_files and max_bytes must be positive")
    return _greedy_pack(files, lambda f: f.size, max_bytes, max_items=max_files)
