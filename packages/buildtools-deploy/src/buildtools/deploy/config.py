"""Deployment targets and configuration loading."""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError, EnvironmentResolutionError

CONFIG_FILE = ".buildtools.yaml"
DEFAULT_NAMESPACE = "default"


@dataclass(frozen=True)
class Environment:
    """A deployment target."""

    name: str
    context: str = ""
    namespace: str = DEFAULT_NAMESPACE

    def __post_init__(self) -> None:
        if not self.namespace:
            object.__setattr__(self, "namespace", DEFAULT_NAMESPACE)

    def with_overrides(
        self, context: str | None = None, namespace: str | None = None
    ) -> "Environment":
        """Return a copy with the non-empty overrides applied."""
        return replace(
            self,
            context=context or self.context,
            namespace=namespace or self.namespace,
        )


@dataclass
class Config:
    environments: dict[str, Environment] = field(default_factory=dict)

    def environment(self, name: str) -> Environment:
        """Look up a target environment by name."""
        env = self.environments.get(name)
        if env is None:
            choices = ", ".join(sorted(self.environments)) or "none configured"
            raise EnvironmentResolutionError(
                f"Invalid environment: {name}. Choose from: {choices}"
            )
        return env


def _parse_environment(name: Any, raw: Any) -> Environment:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Environment '{name}' must be a mapping")
    for key in ("context", "namespace"):
        value = raw.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigurationError(f"Environment '{name}': '{key}' must be a string")
    return Environment(
        name=str(name),
        context=raw.get("context") or "",
        namespace=raw.get("namespace") or DEFAULT_NAMESPACE,
    )


def parse(content: str) -> Config:
    """Parse configuration text.

    Raises:
        ConfigurationError: If the text is not valid YAML or does not have
            the expected shape
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ConfigurationError("Invalid configuration: expected a mapping at top level")

    raw_envs = data.get("environments")
    if raw_envs is None:
        raw_envs = {}
    if not isinstance(raw_envs, dict):
        raise ConfigurationError("Invalid configuration: 'environments' must be a mapping")

    return Config(
        environments={
            str(name): _parse_environment(name, raw) for name, raw in raw_envs.items()
        }
    )


def load(directory: Path) -> Config:
    """Load configuration from the directory, or an empty one if there is none."""
    path = directory / CONFIG_FILE
    if not path.exists():
        return Config()
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigurationError(f"Failed to read {path}: {e.strerror or e}") from e
    return parse(content)
