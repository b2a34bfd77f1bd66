from __future__ import annotations

NON_CODE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".webp",
    ".bmp",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".otf",
    ".mp4",
    ".mp3",
    ".wav",
    ".ogg",
    ".zip",
    ".tar",
    ".gz",
    ".rar",
    ".7z",
    ".lock",  # e.g. package-lock.json, Pipfile.lock
    ".pyc",
    ".so",
    ".dll",
    ".exe",
    ".class",
    ".jar",
    ".bin",
}

# Directories that hold generated or vendored files, never worth a review.
SKIPPED_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build", "coverage", ".tox"}


def is_code_file(file_name: str) -> bool:
    parts = file_name.replace("\\", "/").split("/")
    if any(part in SKIPPED_DIRS for part in parts[:-1]):
        return False
    return not any(file_name.lower().endswith(ext) for ext in NON_CODE_EXTENSIONS)


def language_tag(file_name: str) -> str:
    """Fence language tag for a file, taken from its extension ("" when there is none)."""
    base = file_name.rsplit("/", 1)[-1]
    return base.rsplit(".", 1)[-1].lower() if "." in base.lstrip(".") else ""
