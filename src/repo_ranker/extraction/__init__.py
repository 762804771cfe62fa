"""Raw metric extraction (the static-analysis tool itself is external)."""

from .base import MetricExtractor
from .command import CommandExtractor
from .languages import DEFAULT_SUPPORTED_LANGUAGES, detect_language, detect_languages

__all__ = [
    "MetricExtractor",
    "CommandExtractor",
    "DEFAULT_SUPPORTED_LANGUAGES",
    "detect_language",
    "detect_languages",
]
