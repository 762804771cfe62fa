"""Run an external static-analysis command and read its flat JSON output."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from ..exceptions import (
    AnalysisTimeoutError,
    MetricExtractionError,
    UnsupportedLanguageError,
)
from ..logging_config import get_logger
from ..models import RawMetrics, freeze_metrics
from .languages import DEFAULT_SUPPORTED_LANGUAGES, detect_languages

logger = get_logger(__name__)

_PATH_PLACEHOLDER = "{path}"
# Cap on captured stderr echoed into error details
_MAX_STDERR_CHARS = 500


class CommandExtractor:
    """Gate on supported languages, then run the configured metric tool.

    The command must print a single JSON object mapping metric names to
    numbers on stdout. ``{path}`` in any argument is replaced with the
    repository directory; if no argument contains it, the directory is
    appended.

    Example::

        extractor = CommandExtractor(["quality-scan", "--json", "{path}"])
        metrics = extractor.analyze(Path("/tmp/clone"), timeout=120)
    """

    def __init__(
        self,
        command: Sequence[str],
        supported_languages: Sequence[str] = DEFAULT_SUPPORTED_LANGUAGES,
    ) -> None:
        if not command:
            raise ValueError("extractor command must not be empty")
        self.command = list(command)
        self.supported_languages = list(supported_languages)

    def analyze(self, directory: Path, timeout: Optional[float] = None) -> RawMetrics:
        self._check_languages(directory)

        args = self._build_args(directory)
        logger.debug("Running metric tool: %s", " ".join(args))
        try:
            proc = subprocess.run(
                args,
                cwd=str(directory),
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            raise AnalysisTimeoutError("metric extraction", timeout)
        except FileNotFoundError:
            raise MetricExtractionError(directory, f"command not found: {args[0]}")

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()[:_MAX_STDERR_CHARS]
            raise MetricExtractionError(
                directory, f"exit status {proc.returncode}: {stderr or 'no output'}"
            )

        return self._parse_output(directory, proc.stdout)

    def _check_languages(self, directory: Path) -> None:
        counts = detect_languages(directory)
        if not any(lang in self.supported_languages for lang in counts):
            found = [lang for lang, _ in counts.most_common()]
            raise UnsupportedLanguageError(found, self.supported_languages)

    def _build_args(self, directory: Path) -> list[str]:
        if any(_PATH_PLACEHOLDER in arg for arg in self.command):
            return [arg.replace(_PATH_PLACEHOLDER, str(directory)) for arg in self.command]
        return self.command + [str(directory)]

    @staticmethod
    def _parse_output(directory: Path, stdout: str) -> RawMetrics:
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise MetricExtractionError(directory, f"output is not JSON: {e}")
        if not isinstance(payload, dict):
            raise MetricExtractionError(directory, "output must be a JSON object")
        try:
            return freeze_metrics(payload)
        except ValueError as e:
            raise MetricExtractionError(directory, str(e))
