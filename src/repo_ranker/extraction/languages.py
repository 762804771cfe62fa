"""Language detection by file extension.

Adding a new language:
  1. Add a LanguageConfig entry to LANGUAGES below.
  2. Add it to DEFAULT_SUPPORTED_LANGUAGES if the metric tool handles it.
"""

from __future__ import annotations

import os
from collections import Counter
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class LanguageConfig:
    """File extensions that identify a language."""

    name: str
    extensions: tuple[str, ...]


LANGUAGES: dict[str, LanguageConfig] = {
    "java": LanguageConfig("java", (".java",)),
    "kotlin": LanguageConfig("kotlin", (".kt", ".kts")),
    "scala": LanguageConfig("scala", (".scala",)),
    "python": LanguageConfig("python", (".py", ".pyi")),
    "javascript": LanguageConfig("javascript", (".js", ".jsx", ".mjs", ".cjs")),
    "typescript": LanguageConfig("typescript", (".ts", ".tsx")),
    "go": LanguageConfig("go", (".go",)),
    "ruby": LanguageConfig("ruby", (".rb",)),
    "php": LanguageConfig("php", (".php",)),
    "csharp": LanguageConfig("csharp", (".cs",)),
    "c": LanguageConfig("c", (".c", ".h")),
    "cpp": LanguageConfig("cpp", (".cpp", ".cc", ".cxx", ".hpp", ".hh", ".hxx")),
    "rust": LanguageConfig("rust", (".rs",)),
    "swift": LanguageConfig("swift", (".swift",)),
}

DEFAULT_SUPPORTED_LANGUAGES: tuple[str, ...] = (
    "java",
    "kotlin",
    "python",
    "javascript",
    "typescript",
    "go",
    "ruby",
    "php",
    "csharp",
)

SKIP_DIRS: frozenset[str] = frozenset(
    {
        ".git",
        "vendor",
        "node_modules",
        "venv",
        ".venv",
        "__pycache__",
        ".tox",
        "dist",
        "build",
        "target",
        "third_party",
    }
)

_EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ext: cfg.name for cfg in LANGUAGES.values() for ext in cfg.extensions
}


def detect_language(filepath) -> str:
    """Detect language from file extension.

    Returns:
        Language name (e.g., "python", "go") or "unknown"
    """
    path = Path(filepath) if not hasattr(filepath, "suffix") else filepath
    return _EXTENSION_TO_LANGUAGE.get(path.suffix.lower(), "unknown")


def detect_languages(directory: Path) -> Counter[str]:
    """Count source files per known language under ``directory``.

    Vendored and build directories are skipped; symlinks are not followed.
    """
    counts: Counter[str] = Counter()
    for root, dirs, files in os.walk(directory):
        dirs[:] = sorted(d for d in dirs if d not in SKIP_DIRS)
        for name in files:
            language = detect_language(Path(root) / name)
            if language != "unknown":
                counts[language] += 1
    return counts
