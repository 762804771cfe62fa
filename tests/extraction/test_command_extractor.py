"""Tests for the external metric command adapter and language detection."""

import json
import subprocess

import pytest

from conftest import perfect_metrics
from repo_ranker.exceptions import (
    AnalysisTimeoutError,
    MetricExtractionError,
    UnsupportedLanguageError,
)
from repo_ranker.extraction import CommandExtractor, detect_language, detect_languages


@pytest.fixture
def python_repo(tmp_path):
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "app.py").write_text("print('hi')\n")
    (tmp_path / "pkg" / "util.py").write_text("x = 1\n")
    (tmp_path / "README.md").write_text("# readme\n")
    return tmp_path


def completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestLanguageDetection:
    def test_detect_language_by_extension(self):
        assert detect_language("src/main.py") == "python"
        assert detect_language("Main.java") == "java"
        assert detect_language("notes.txt") == "unknown"

    def test_counts_source_files(self, python_repo):
        counts = detect_languages(python_repo)
        assert counts["python"] == 2

    def test_skips_vendored_directories(self, python_repo):
        (python_repo / "node_modules").mkdir()
        (python_repo / "node_modules" / "lib.js").write_text("//\n")
        assert "javascript" not in detect_languages(python_repo)


class TestCommandExtractor:
    def test_empty_command_rejected(self):
        with pytest.raises(ValueError):
            CommandExtractor([])

    def test_parses_json_metrics(self, monkeypatch, python_repo):
        calls = []

        def fake_run(args, **kwargs):
            calls.append((args, kwargs))
            return completed(json.dumps(perfect_metrics()))

        monkeypatch.setattr(subprocess, "run", fake_run)
        metrics = CommandExtractor(["scan", "--json", "{path}"]).analyze(python_repo, timeout=60)

        assert dict(metrics) == perfect_metrics()
        args, kwargs = calls[0]
        assert args == ["scan", "--json", str(python_repo)]
        assert kwargs["cwd"] == str(python_repo)
        assert kwargs["timeout"] == 60

    def test_directory_appended_without_placeholder(self, monkeypatch, python_repo):
        calls = []
        monkeypatch.setattr(
            subprocess, "run", lambda args, **k: calls.append(args) or completed("{}")
        )
        CommandExtractor(["scan"]).analyze(python_repo)
        assert calls[0] == ["scan", str(python_repo)]

    def test_unsupported_language_gated_before_running(self, monkeypatch, tmp_path):
        (tmp_path / "main.rs").write_text("fn main() {}\n")
        monkeypatch.setattr(subprocess, "run", lambda *a, **k: pytest.fail("tool was run"))
        with pytest.raises(UnsupportedLanguageError) as exc_info:
            CommandExtractor(["scan"], supported_languages=["python"]).analyze(tmp_path)
        assert exc_info.value.languages == ["rust"]

    def test_no_source_files_is_unsupported(self, monkeypatch, tmp_path):
        (tmp_path / "README.md").write_text("empty\n")
        with pytest.raises(UnsupportedLanguageError):
            CommandExtractor(["scan"]).analyze(tmp_path)

    def test_nonzero_exit(self, monkeypatch, python_repo):
        monkeypatch.setattr(
            subprocess, "run", lambda *a, **k: completed(returncode=2, stderr="parse error")
        )
        with pytest.raises(MetricExtractionError, match="Metric extraction failed") as exc_info:
            CommandExtractor(["scan"]).analyze(python_repo)
        assert "parse error" in exc_info.value.reason

    def test_timeout(self, monkeypatch, python_repo):
        def slow(args, **kwargs):
            raise subprocess.TimeoutExpired(args, kwargs["timeout"])

        monkeypatch.setattr(subprocess, "run", slow)
        with pytest.raises(AnalysisTimeoutError) as exc_info:
            CommandExtractor(["scan"]).analyze(python_repo, timeout=1)
        assert exc_info.value.stage == "metric extraction"

    def test_command_not_found(self, monkeypatch, python_repo):
        def missing(args, **kwargs):
            raise FileNotFoundError(args[0])

        monkeypatch.setattr(subprocess, "run", missing)
        with pytest.raises(MetricExtractionError, match="Metric extraction failed"):
            CommandExtractor(["no-such-tool"]).analyze(python_repo)

    @pytest.mark.parametrize("stdout", ["not json", "[1, 2]", '{"duplication": "high"}'])
    def test_bad_output(self, monkeypatch, python_repo, stdout):
        monkeypatch.setattr(subprocess, "run", lambda *a, **k: completed(stdout))
        with pytest.raises(MetricExtractionError):
            CommandExtractor(["scan"]).analyze(python_repo)
