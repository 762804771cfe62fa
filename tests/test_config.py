"""Tests for configuration loading and validation."""

import os
from pathlib import Path

import pytest

from repo_ranker.config import AggregationConfig, RankerConfig, load_config
from repo_ranker.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep user config files and REPO_RANKER_* variables out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
    monkeypatch.chdir(project)
    for key in list(os.environ):
        if key.startswith("REPO_RANKER_"):
            monkeypatch.delenv(key)
    return project


class TestDefaults:
    def test_default_values(self):
        config = load_config()
        assert config.workers is None
        assert config.task_timeout_seconds == 300
        assert config.clone_depth == 1
        assert config.extractor_command == []
        assert "python" in config.supported_languages
        assert config.aggregation.mode == "mean"

    def test_resolved_workers_capped(self):
        assert 1 <= RankerConfig().resolved_workers <= 8
        assert RankerConfig(workers=16).resolved_workers == 16

    def test_resolved_workspace(self, tmp_path):
        assert RankerConfig(workspace_dir=str(tmp_path)).resolved_workspace == tmp_path
        assert RankerConfig().resolved_workspace.name == "repo-ranker"


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"workers": 0},
            {"task_timeout_seconds": 0},
            {"clone_depth": 0},
            {"git_executable": ""},
            {"supported_languages": []},
            {"database_path": ""},
            {"verbosity": "loud"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RankerConfig(**kwargs)

    def test_invalid_override_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            load_config(workers=-1)

    def test_aggregation_mode(self):
        with pytest.raises(ValueError):
            AggregationConfig(mode="median")

    def test_negative_aggregation_weight(self):
        with pytest.raises(ValueError):
            AggregationConfig(mode="weighted", weights={"security": {"hotspot_priority": -1}})


    @pytest.mark.parametrize(
        "weights",
        [
            {"complexty": {"cyclomatic_complexity": 1.0}},
            {"complexity": {"cyclomatic_complexty": 1.0}},
        ],
    )
    def test_unknown_aggregation_attribute(self, weights):
        with pytest.raises(ValueError, match="Unknown quality attribute"):
            AggregationConfig(mode="weighted", weights=weights)

    def test_all_zero_aggregation_weights(self):
        with pytest.raises(ValueError, match="must not all be zero"):
            AggregationConfig(
                mode="weighted",
                weights={"complexity": {"cyclomatic_complexity": 0, "cognitive_complexity": 0}},
            )

    def test_non_numeric_aggregation_weight(self):
        with pytest.raises(ValueError, match="must be a number"):
            AggregationConfig(mode="weighted", weights={"security": {"hotspot_priority": "high"}})


class TestSources:
    def test_project_toml(self, isolated_environment):
        (isolated_environment / "repo-ranker.toml").write_text(
            'workers = 3\nextractor_command = ["scan", "--json", "{path}"]\n'
            '[aggregation]\nmode = "weighted"\n'
            "[aggregation.weights.security]\nvulnerability_severity = 2.0\n"
        )
        config = load_config()
        assert config.workers == 3
        assert config.extractor_command == ["scan", "--json", "{path}"]
        assert config.aggregation.mode == "weighted"
        assert config.aggregation.weights == {"security": {"vulnerability_severity": 2.0}}

    def test_explicit_file_overrides_project(self, isolated_environment, tmp_path):
        (isolated_environment / "repo-ranker.toml").write_text("workers = 3\n")
        explicit = tmp_path / "custom.toml"
        explicit.write_text("workers = 5\n")
        assert load_config(config_file=explicit).workers == 5

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(config_file=tmp_path / "nope.toml")

    def test_malformed_toml(self, isolated_environment):
        (isolated_environment / "repo-ranker.toml").write_text("workers = = 3\n")
        with pytest.raises(ConfigurationError, match="Invalid project config"):
            load_config()

    def test_unknown_key(self, isolated_environment):
        (isolated_environment / "repo-ranker.toml").write_text("colour = 'blue'\n")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("REPO_RANKER_WORKERS", "6")
        monkeypatch.setenv("REPO_RANKER_DATABASE_PATH", "/tmp/runs.db")
        monkeypatch.setenv("REPO_RANKER_EXTRACTOR_COMMAND", "scan --json {path}")
        config = load_config()
        assert config.workers == 6
        assert config.database_path == "/tmp/runs.db"
        assert config.extractor_command == ["scan", "--json", "{path}"]

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("REPO_RANKER_WORKERS", "many")
        with pytest.raises(ConfigurationError, match="REPO_RANKER_WORKERS"):
            load_config()

    def test_env_overrides_file_and_overrides_win(self, isolated_environment, monkeypatch):
        (isolated_environment / "repo-ranker.toml").write_text("workers = 3\n")
        monkeypatch.setenv("REPO_RANKER_WORKERS", "4")
        assert load_config().workers == 4
        assert load_config(workers=7).workers == 7

    def test_none_overrides_ignored(self, isolated_environment):
        (isolated_environment / "repo-ranker.toml").write_text("workers = 3\n")
        assert load_config(workers=None).workers == 3

    def test_verbose_and_quiet_flags(self):
        assert load_config(verbose=True).verbosity == "verbose"
        assert load_config(quiet=True).verbosity == "quiet"
        assert load_config(verbose=False, quiet=False).verbosity == "normal"

    def test_misspelled_aggregation_table(self, isolated_environment):
        (isolated_environment / "repo-ranker.toml").write_text(
            '[aggregation]\nmode = "weighted"\n'
            "[aggregation.weights.complexty]\ncyclomatic_complexity = 2.0\n"
        )
        with pytest.raises(ConfigurationError, match="complexty"):
            load_config()

    def test_zero_aggregation_weights_in_file(self, isolated_environment):
        (isolated_environment / "repo-ranker.toml").write_text(
            '[aggregation]\nmode = "weighted"\n'
            "[aggregation.weights.complexity]\n"
            "cyclomatic_complexity = 0\ncognitive_complexity = 0\n"
        )
        with pytest.raises(ConfigurationError, match="must not all be zero"):
            load_config()
