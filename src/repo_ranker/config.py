"""Configuration loading and management for repo-ranker.

Configuration sources are merged in priority order:
    1. Defaults (defined in RankerConfig)
    2. Global config (~/.repo-ranker.toml)
    3. Project config (./repo-ranker.toml)
    4. Explicit config file
    5. Environment variables (REPO_RANKER_* prefix)
    6. Keyword overrides (typically CLI flags)

Example:
    >>> config = load_config(workers=4)
    >>> config.workers
    4
"""

from __future__ import annotations

import math
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError
from .extraction.languages import DEFAULT_SUPPORTED_LANGUAGES
from .models import QualityAttribute

Verbosity = Literal["quiet", "normal", "verbose"]
AggregationMode = Literal["mean", "weighted"]

_ENV_PREFIX = "REPO_RANKER_"
_CONFIG_FILE_NAME = "repo-ranker.toml"


@dataclass(frozen=True)
class AggregationConfig:
    """How composite nodes combine their children.

    Attributes:
        mode: "mean" (unweighted arithmetic mean) or "weighted"
        weights: {composite: {child: weight}}; only read in weighted mode.
            Children without an entry weigh 1.0.
    """

    mode: AggregationMode = "mean"
    weights: dict[str, dict[str, float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.mode not in ("mean", "weighted"):
            raise ValueError(f"aggregation mode must be 'mean' or 'weighted', got '{self.mode}'")
        for composite, children in self.weights.items():
            QualityAttribute.parse(composite)
            if not isinstance(children, dict):
                raise ValueError(f"aggregation weights for '{composite}' must be a table")
            for child, weight in children.items():
                QualityAttribute.parse(child)
                if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                    raise ValueError(f"aggregation weight {composite}.{child} must be a number")
                if not math.isfinite(weight) or weight < 0:
                    raise ValueError(
                        f"aggregation weight {composite}.{child} must be a non-negative number"
                    )
            if children and not any(children.values()):
                raise ValueError(f"aggregation weights for '{composite}' must not all be zero")


@dataclass(frozen=True)
class RankerConfig:
    """Configuration for ingestion and ranking.

    Attributes:
        Concurrency:
            workers: Size of the clone/analyze worker pool (None = auto-detect)
            task_timeout_seconds: Budget for one clone + extract task

        Fetching:
            git_executable: git binary used for cloning
            clone_depth: History depth passed to ``git clone --depth``

        Extraction:
            extractor_command: Argument list of the external metric tool;
                ``{path}`` is replaced with the cloned directory
            supported_languages: Languages the metric tool understands

        Storage:
            workspace_dir: Parent of per-request clone directories
                (None = system temp dir)
            database_path: sqlite file holding runs and reports

        Output:
            verbosity: Logging verbosity level

        aggregation: Composite node aggregation policy
    """

    workers: Optional[int] = None
    task_timeout_seconds: int = 300

    git_executable: str = "git"
    clone_depth: int = 1

    extractor_command: list[str] = field(default_factory=list)
    supported_languages: list[str] = field(
        default_factory=lambda: list(DEFAULT_SUPPORTED_LANGUAGES)
    )

    workspace_dir: Optional[str] = None
    database_path: str = ".repo-ranker/ranker.db"

    verbosity: Verbosity = "normal"

    aggregation: AggregationConfig = field(default_factory=AggregationConfig)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be at least 1")
        if self.task_timeout_seconds < 1:
            raise ValueError("task_timeout_seconds must be at least 1")
        if self.clone_depth < 1:
            raise ValueError("clone_depth must be at least 1")
        if not self.git_executable:
            raise ValueError("git_executable must not be empty")
        if not self.supported_languages:
            raise ValueError("supported_languages must not be empty")
        if not self.database_path:
            raise ValueError("database_path must not be empty")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise ValueError("verbosity must be one of quiet, normal, verbose")

    @property
    def resolved_workers(self) -> int:
        """Worker count, capped at 8 when auto-detected."""
        if self.workers is not None:
            return self.workers
        return min(os.cpu_count() or 4, 8)

    @property
    def resolved_workspace(self) -> Path:
        if self.workspace_dir:
            return Path(self.workspace_dir)
        return Path(tempfile.gettempdir()) / "repo-ranker"


def load_config(config_file: Optional[Path] = None, **overrides) -> RankerConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are ignored so unset CLI options keep file values.

    Returns:
        Validated RankerConfig instance

    Raises:
        ConfigurationError: If a config file or value is invalid
    """
    merged: dict = {}

    global_config = Path.home() / f".{_CONFIG_FILE_NAME}"
    if global_config.exists():
        try:
            merged.update(_load_toml_file(global_config))
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / _CONFIG_FILE_NAME
    if project_config.exists():
        try:
            merged.update(_load_toml_file(project_config))
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        try:
            merged.update(_load_toml_file(config_file))
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    aggregation = merged.pop("aggregation", None)
    if aggregation is not None:
        if isinstance(aggregation, dict):
            try:
                merged["aggregation"] = AggregationConfig(**aggregation)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid [aggregation] config: {e}")
        elif isinstance(aggregation, AggregationConfig):
            merged["aggregation"] = aggregation
        else:
            raise ConfigurationError("[aggregation] must be a table")

    try:
        return RankerConfig(**merged)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from REPO_RANKER_* environment variables.

    Supported environment variables:
        REPO_RANKER_WORKERS: int
        REPO_RANKER_TASK_TIMEOUT_SECONDS: int
        REPO_RANKER_GIT_EXECUTABLE: str
        REPO_RANKER_CLONE_DEPTH: int
        REPO_RANKER_WORKSPACE_DIR: str
        REPO_RANKER_DATABASE_PATH: str
        REPO_RANKER_VERBOSITY: quiet/normal/verbose
        REPO_RANKER_EXTRACTOR_COMMAND: whitespace-separated argument list
    """
    type_hints = get_type_hints(RankerConfig)

    result: dict[str, Any] = {}

    for field_name in RankerConfig.__dataclass_fields__:
        env_key = f"{_ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        if field_name == "extractor_command":
            result[field_name] = env_value.split()
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Returns None for types that can't be expressed as a single env value.
    """
    origin = getattr(type_hint, "__origin__", None)

    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin is list or type_hint is list:
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
