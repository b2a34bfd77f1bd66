"""Prompt construction for every kind of review call.

The system prompt carries the reviewer persona, the rules and any
team guidelines. The user prompt carries the content under review plus the
output format, since the format wording differs slightly between a whole
commit, one chunk of a commit and a group of files.

Everything interpolated into a prompt that came from a repository (commit
messages, author names, diffs, file contents) goes through the sanitizers
below first, so a commit cannot smuggle in role markers or close our fences.
"""

from __future__ import annotations

import re

from critiq_core.models import Chunk, ReviewUnit

MAX_TEXT_CHARS = 50_000
MAX_DIFF_CHARS = 100_000
_TRUNCATED_DIFF_LINES = 2_000

_ROLE_MARKER_RE = re.compile(r"\n\n\s*(system|assistant|human):", re.IGNORECASE)
_SPECIAL_TOKEN_RE = re.compile(r"<\|.*?\|>")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_ESCAPED_FENCE = "\\`\\`\\`"

_FOCUS_AREAS = """\
1. Code quality and maintainability
2. Security vulnerabilities and potential threats
3. Performance implications and optimizations
4. Best practices adherence
5. Testing considerations
6. Documentation needs
7. Accessibility considerations
8. Dependency security and updates"""

_OUTPUT_FORMAT = """\
{{
  "score": <1-10 integer>,
  "confidence": <1-10 integer>,
  "summary": "<{summary_hint}>",
  "issues": [
    {{
      "severity": "<critical|high|medium|low>",
      "description": "<description of the issue>",
      "suggestion": "<how to fix it>",
      "category": "<security|performance|quality|style|testing|documentation|accessibility|dependencies>",
      "citation": "<source or reference if applicable>",
      "autoFixable": <true|false>
    }}
  ],
  "suggestions": ["<general improvement suggestions>"],
  "security": ["<security-specific notes>"],
  "performance": ["<performance-specific notes>"],
  "dependencies": ["<dependency-related notes>"],
  "accessibility": ["<accessibility-specific notes>"],
  "sources": ["<sources consulted for recommendations>"]
}}"""

_CITATIONS = (
    "Include citations and sources for your recommendations in the 'citation' field and the "
    "'sources' array. Prefer official documentation, OWASP and NIST guidance, and security advisories."
)


def sanitize_prompt_text(text: str | None, limit: int = MAX_TEXT_CHARS) -> str:
    """Neutralise prompt-injection patterns in short free text such as a commit message."""
    if not text:
        return ""
    cleaned = text.replace("```", _ESCAPED_FENCE)
    cleaned = _ROLE_MARKER_RE.sub("\n\n user:", cleaned)
    cleaned = _SPECIAL_TOKEN_RE.sub("", cleaned)
    cleaned = _CONTROL_RE.sub("", cleaned)
    return cleaned[:limit]


def sanitize_diff(diff: str | None) -> str:
    """Like sanitize_prompt_text, but keeps diff structure and trims by whole lines."""
    if not diff:
        return ""
    cleaned = diff.replace("```", _ESCAPED_FENCE)
    cleaned = _ROLE_MARKER_RE.sub(lambda m: f"\n\n# {m.group(1)}:", cleaned)
    cleaned = _SPECIAL_TOKEN_RE.sub("", cleaned)
    cleaned = _CONTROL_RE.sub("", cleaned)
    if len(cleaned) > MAX_DIFF_CHARS:
        lines = cleaned.split("\n")[:_TRUNCATED_DIFF_LINES]
        kept = "\n".join(lines)[:MAX_DIFF_CHARS]
        cleaned = f"{kept}\n... (diff truncated due to size) ..."
    return cleaned


def build_system_prompt(guidelines: str | None = None, enable_citations: bool = False) -> str:
    prompt = """You are an expert code reviewer. You review code changes and report
problems precisely, without speculation.

Rules:
- Focus on what the change introduces; consider what removed lines take away
  (deleted checks, dropped error handling).
- Do not report code that already follows best practices.
- Avoid assumptions when context is unclear. Be concise and actionable.
- Finish every sentence with proper punctuation.
- Return ONLY a single JSON object. Do not wrap it in markdown code blocks.
- Start your response with { and end it with }. Do not truncate the JSON."""
    if guidelines:
        prompt += f"\n\nTeam guidelines:\n{guidelines.strip()}"
    if enable_citations:
        prompt += f"\n\n{_CITATIONS}"
    return prompt


def _format_block(summary_hint: str) -> str:
    return f"""Analyze it focusing on:
{_FOCUS_AREAS}

Respond with this JSON format:
{_OUTPUT_FORMAT.format(summary_hint=summary_hint)}

Score from 1-10 (10 being excellent). Confidence from 1-10 (10 being very confident).
All string values must be escaped and quoted; arrays other than "issues" contain only strings."""


def build_commit_prompt(unit: ReviewUnit, content: str) -> str:
    return f"""Please review the following git commit.

Commit Message: {sanitize_prompt_text(unit.label)}
Author: {sanitize_prompt_text(unit.author)}
Date: {unit.date}

Code Changes:
```diff
{sanitize_diff(content)}
```

{_format_block("brief summary of the changes and overall assessment")}"""


def chunk_position(chunk: Chunk) -> str:
    """Position label: ``2/3``, or ``2/3, part 1/2`` for a piece re-split from chunk 2 of 3."""
    position = f"{chunk.index + 1}/{chunk.total}"
    if chunk.parent is not None and chunk.parent[1] > 1:
        index, total = chunk.parent
        position = f"{index + 1}/{total}, part {position}"
    return position


def build_chunk_prompt(unit: ReviewUnit, chunk: Chunk) -> str:
    """Prompt for one slice of a review unit that was too large to send whole."""
    position = chunk_position(chunk)
    whole = "file group" if unit.kind == "files" else "git commit"
    files = f"\nFiles in this chunk: {', '.join(chunk.source_files)}" if chunk.source_files else ""
    return f"""Please review this chunk ({position}) of a larger {whole}.

{"Review" if unit.kind == "files" else "Commit Message"}: {sanitize_prompt_text(unit.label)}
Author: {sanitize_prompt_text(unit.author)}
Date: {unit.date}
Chunk: {position}{files}

Code (chunk {position}):
```
{sanitize_diff(chunk.content)}
```

This is part of a larger change. Focus on this chunk while keeping in mind it
is not the whole picture.

{_format_block("brief summary focusing on this chunk")}"""


def build_file_group_prompt(unit: ReviewUnit, content: str) -> str:
    return f"""Please review the following file group and provide comprehensive feedback.

Review Type: Repository Code Analysis
Files: {sanitize_prompt_text(unit.label)}
Analysis Date: {unit.date}

File Contents:
{sanitize_prompt_text(content, limit=MAX_DIFF_CHARS)}

{_format_block("brief summary of the files and overall assessment")}"""


def build_user_prompt(unit: ReviewUnit, chunk: Chunk) -> str:
    """Pick the prompt shape for ``chunk`` of ``unit``."""
    if chunk.total > 1:
        return build_chunk_prompt(unit, chunk)
    if unit.kind == "files":
        return build_file_group_prompt(unit, chunk.content)
    return build_commit_prompt(unit, chunk.content)
