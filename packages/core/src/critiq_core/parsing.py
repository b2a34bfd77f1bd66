"""Textual cleanup of raw model output before it is parsed as JSON.

Two entry points, both pure string-to-string functions:

- ``normalize`` strips wrapping noise (fences, leading prose, trailing chatter)
  and fixes common formatting slips (single quotes, bareword keys, trailing
  commas). It is applied to every response.
- ``repair`` closes JSON that was cut off by the model's output ceiling. It is
  applied only when a strict parse of the normalized text fails.

Neither is a JSON parser and neither promises valid JSON; they are heuristics
tuned to the flat review object the prompts ask for. Both leave valid JSON
untouched.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_FENCE = "```"
_OPENING_FENCE_RE = re.compile(r"^```[\w-]*[ \t]*\n?")
_CLOSING_FENCE_RE = re.compile(r"\n?```\s*$")
_BAREWORD_RE = re.compile(r"[A-Za-z_][\w-]*")

# A line that is a complete object member: "key": <string|number|literal|flat array>,
_COMPLETE_MEMBER_RE = re.compile(
    r'^"[^"]+"\s*:\s*(?:"(?:[^"\\]|\\.)*"|-?\d+(?:\.\d+)?|true|false|null|\[[^\]]*\])\s*,?\s*$'
)
# A complete string element of an array spread over several lines.
_COMPLETE_ELEMENT_RE = re.compile(r'^"(?:[^"\\]|\\.)*"\s*,?\s*$')
_CLOSER_LINE_RE = re.compile(r"^[}\]]+\s*,?\s*$")
_TRAILING_COMMA_RE = re.compile(r",\s*$")
_SCALAR_RE = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?|true|false|null")
_SCALAR_STOP = set(",:}]{[\"' \t\r\n")


def _strip_wrapping_fence(text: str) -> str:
    """Remove a fenced code block that wraps the whole response.

    Only strips the closing fence when an opening fence was found, so
    backticks inside string values survive.
    """
    cleaned = text.strip()
    if not cleaned.startswith(_FENCE):
        return cleaned
    cleaned = _OPENING_FENCE_RE.sub("", cleaned, count=1)
    cleaned = _CLOSING_FENCE_RE.sub("", cleaned)
    return cleaned.strip()


def _skip_space(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def _clean_json_text(text: str) -> str:
    """Single quote-aware pass over text that starts at the root ``{``.

    Outside of strings it stops at a fence marker or at the close of the root
    object, rewrites single-quoted strings as double-quoted ones, quotes
    bareword keys and drops trailing commas. Inside strings nothing changes.
    """
    out: list[str] = []
    depth = 0
    quote: str | None = None
    prev = ""  # last significant character emitted outside a string
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if quote is not None:
            if ch == "\\":
                if quote == "'" and text[i + 1 : i + 2] == "'":
                    out.append("'")
                else:
                    out.append(text[i : i + 2])
                i += 2
                continue
            if ch == quote:
                out.append('"')
                quote = None
                prev = '"'
            elif quote == "'" and ch == '"':
                out.append('\\"')
            else:
                out.append(ch)
            i += 1
            continue

        if text.startswith(_FENCE, i):
            break

        if ch in "\"'":
            quote = ch
            out.append('"')
            i += 1
            continue

        if ch in "{[":
            depth += 1
            out.append(ch)
            prev = ch
            i += 1
            continue

        if ch in "}]":
            depth -= 1
            out.append(ch)
            prev = ch
            i += 1
            if depth <= 0:
                break
            continue

        if ch == ",":
            j = _skip_space(text, i + 1)
            if j < n and text[j] in "}]":
                i += 1
                continue
            out.append(ch)
            prev = ch
            i += 1
            continue

        if prev in ("{", ",") and (ch.isalpha() or ch == "_"):
            match = _BAREWORD_RE.match(text, i)
            word = match.group(0)
            j = _skip_space(text, match.end())
            out.append(f'"{word}"' if j < n and text[j] == ":" else word)
            prev = word[-1]
            i = match.end()
            continue

        out.append(ch)
        if not ch.isspace():
            prev = ch
        i += 1

    return "".join(out)


def normalize(raw: str) -> str:
    """Turn a raw model answer into candidate JSON text.

    Steps, in order: strip a wrapping fence; drop everything before the first
    ``{``; then a quote-aware pass that stops at a later fence marker or the end
    of the root object, converts single quotes, quotes bareword keys and removes
    trailing commas. Text with no ``{`` is returned stripped.
    """
    text = _strip_wrapping_fence(raw or "")
    start = text.find("{")
    if start == -1:
        return text
    return _clean_json_text(text[start:])


def _closers(stack: list[str] | tuple[str, ...]) -> str:
    return "".join("}" if opener == "{" else "]" for opener in reversed(stack))


def _close_open_structures(text: str) -> str:
    """Cut text back to its last complete value and close every open container.

    An unterminated string value is kept and closed; an unterminated key, a
    key without a value and a half-written literal are dropped.
    """
    stack: list[str] = []
    expect_key = False
    safe_end = 0
    safe_stack: tuple[str, ...] = ()
    i = 0
    n = len(text)

    def mark(pos: int) -> None:
        nonlocal safe_end, safe_stack
        safe_end = pos
        safe_stack = tuple(stack)

    while i < n:
        ch = text[i]

        if ch == '"':
            is_key = bool(stack) and stack[-1] == "{" and expect_key
            j = i + 1
            while j < n and text[j] != '"':
                j += 2 if text[j] == "\\" else 1
            if j >= n:
                if is_key:
                    break
                partial = text[i:]
                trailing = len(partial) - len(partial.rstrip("\\"))
                if trailing % 2:
                    partial = partial[:-1]
                return text[:i] + partial + '"' + _closers(stack)
            if is_key:
                expect_key = False
            else:
                mark(j + 1)
            i = j + 1
            continue

        if ch in "{[":
            stack.append(ch)
            expect_key = ch == "{"
            i += 1
            mark(i)
            continue

        if ch in "}]":
            if stack:
                stack.pop()
            expect_key = False
            i += 1
            mark(i)
            continue

        if ch == ",":
            expect_key = bool(stack) and stack[-1] == "{"
            i += 1
            continue

        if ch == ":" or ch.isspace():
            if ch == ":":
                expect_key = False
            i += 1
            continue

        j = i
        while j < n and text[j] not in _SCALAR_STOP:
            j += 1
        if j == i:
            j += 1
        if _SCALAR_RE.fullmatch(text[i:j]):
            mark(j)
        i = j

    return text[:safe_end] + _closers(safe_stack)


def repair(text: str) -> str:
    """Repair JSON that was cut off mid-document.

    Scans lines from the end for the last one that is a complete member, a
    complete array string or a bare closer, and truncates everything after it.
    A dangling comma is removed, then every ``{``/``[`` still open is closed in
    nesting order. Valid JSON comes back unchanged.
    """
    candidate = (text or "").strip()
    lines = candidate.split("\n")

    last_complete = None
    for idx in range(len(lines) - 1, -1, -1):
        line = lines[idx].strip()
        if (
            _COMPLETE_MEMBER_RE.match(line)
            or _COMPLETE_ELEMENT_RE.match(line)
            or _CLOSER_LINE_RE.match(line)
            or line in ("{", "[")
        ):
            last_complete = idx
            break

    if last_complete is not None and last_complete < len(lines) - 1:
        logger.debug("Truncating JSON to line %d of %d", last_complete + 1, len(lines))
        candidate = "\n".join(lines[: last_complete + 1])

    candidate = _TRAILING_COMMA_RE.sub("", candidate.rstrip())
    repaired = _close_open_structures(candidate)
    if repaired != candidate:
        logger.debug("Repaired JSON from %d to %d characters", len(text or ""), len(repaired))
    return repaired
