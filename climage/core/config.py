"""
Configuration System
====================

Typed dataclass configuration loaded from YAML, ``.env`` loading, and the
``Credentials`` snapshot handed to providers.
"""

import os
import re
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any, List, Mapping, Sequence, Union

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_FILES = (".env", ".env.local")


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class GenerationConfig:
    """Generation defaults."""

    provider: str = "auto"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if not self.provider or not isinstance(self.provider, str):
            raise ConfigurationError(
                f"Invalid provider: {self.provider!r}",
                config_key="generation.provider",
            )


@dataclass
class OutputConfig:
    """Where generated files go when the caller does not say."""

    out_dir: str = "."


@dataclass
class HttpConfig:
    """HTTP client settings."""

    timeout: float = 300.0
    download_concurrency: int = 4

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        try:
            self.timeout = float(self.timeout)
            self.download_concurrency = int(self.download_concurrency)
        except (TypeError, ValueError):
            raise ConfigurationError(
                "http.timeout and http.download_concurrency must be numbers",
                config_key="http",
            )
        if self.timeout <= 0:
            raise ConfigurationError(
                f"timeout must be positive, got {self.timeout}",
                config_key="http.timeout",
            )
        if not 1 <= self.download_concurrency <= 32:
            raise ConfigurationError(
                f"download_concurrency must be 1-32, got {self.download_concurrency}",
                config_key="http.download_concurrency",
            )


# =============================================================================
# Main Configuration Class
# =============================================================================


@dataclass
class Config:
    """
    Main configuration container.

    Values come from a YAML file when one is found; ``${VAR}`` and
    ``${VAR:-default}`` references are expanded from the environment.
    """

    generation: GenerationConfig = field(default_factory=GenerationConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    http: HttpConfig = field(default_factory=HttpConfig)

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Config":
        """
        Load configuration from the first YAML file found.

        Args:
            path: Explicit config file; must exist if given

        Returns:
            Validated Config instance
        """
        if path and not Path(path).exists():
            raise ConfigurationError(f"Config file not found: {path}", config_key=str(path))

        search_paths = [
            Path("./climage.yaml"),
            Path.home() / ".config" / "climage" / "config.yaml",
        ]
        if path:
            search_paths.insert(0, Path(path))

        config_data: Dict[str, Any] = {}

        for search_path in search_paths:
            if search_path.exists():
                logger.debug(f"Loading config from: {search_path}")
                try:
                    with open(search_path, "r") as f:
                        config_data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigurationError(
                        f"Invalid YAML in config file: {e}",
                        config_key=str(search_path),
                    )
                break
        else:
            logger.debug("No config file found, using defaults")

        if not isinstance(config_data, dict):
            raise ConfigurationError("Config file must contain a mapping")

        return cls.from_dict(cls._interpolate_env_vars(config_data))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary with validation."""
        try:
            return cls(
                generation=GenerationConfig(**(data.get("generation") or {})),
                output=OutputConfig(**(data.get("output") or {})),
                http=HttpConfig(**(data.get("http") or {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @staticmethod
    def _interpolate_env_vars(data: Any) -> Any:
        """Recursively interpolate ${VAR} patterns with environment variables."""
        if isinstance(data, str):
            pattern = r"\$\{([^}:]+)(?::-([^}]*))?\}"

            def replace(match):
                var_name = match.group(1)
                default = match.group(2) or ""
                return os.environ.get(var_name, default)

            return re.sub(pattern, replace, data)
        elif isinstance(data, dict):
            return {k: Config._interpolate_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [Config._interpolate_env_vars(item) for item in data]
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {section: asdict(getattr(self, section)) for section in ("generation", "output", "http")}


# =============================================================================
# Environment and credentials
# =============================================================================


@dataclass(frozen=True)
class EnvLoadResult:
    env: Dict[str, str]
    loaded_files: List[str]


def load_env(cwd: Optional[Union[str, Path]] = None) -> EnvLoadResult:
    """
    Load ``.env`` and ``.env.local`` from ``cwd`` into the process environment.

    Variables that are already set are never overridden.
    """
    base = Path(cwd) if cwd else Path.cwd()
    loaded_files = []

    for name in ENV_FILES:
        env_path = base / name
        if not env_path.is_file():
            continue
        load_dotenv(env_path, override=False)
        loaded_files.append(str(env_path))
        logger.debug(f"Loaded environment from {env_path}")

    return EnvLoadResult(env=dict(os.environ), loaded_files=loaded_files)


class Credentials:
    """
    Read-only snapshot of credential variables.

    Built once per top-level call and passed to providers explicitly, so
    adapters never read the process environment themselves.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._values = {k: v for k, v in (values or {}).items() if v}

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Credentials":
        return cls(dict(os.environ) if env is None else env)

    def resolve(self, names: Sequence[str]) -> Optional[str]:
        """Return the value of the first name that is set."""
        for name in names:
            value = self._values.get(name, "").strip()
            if value:
                return value
        return None

    def has_any(self, names: Sequence[str]) -> bool:
        return self.resolve(names) is not None

    def __repr__(self) -> str:
        return f"Credentials(names={sorted(self._values)!r})"
