"""
Deployment errors and their process exit codes.
"""

from pathlib import Path


class DeployError(Exception):
    """Base exception for deploy operations."""

    exit_code = -3


class ConfigurationError(DeployError):
    """The configuration file could not be read or is invalid."""

    exit_code = -1


class ProviderIncompleteError(DeployError):
    """Commit and/or branch information is missing."""

    exit_code = -2


class EnvironmentResolutionError(DeployError):
    """The requested environment is not defined in the configuration."""

    exit_code = -4


class ManifestIOError(DeployError):
    """A manifest file or directory could not be read."""

    def __init__(self, path: Path, cause: OSError | UnicodeDecodeError):
        self.path = path
        self.cause = cause
        reason = getattr(cause, "strerror", None) or str(cause)
        super().__init__(f"Failed to read {path}: {reason}")


class ApplyError(DeployError):
    """The cluster rejected a manifest."""

    pass


class RolloutFailure(DeployError):
    """The deployment did not become healthy within the rollout wait."""

    def __init__(self, deployment: str, diagnostics: str):
        self.deployment = deployment
        self.diagnostics = diagnostics
        super().__init__(diagnostics)

    def __str__(self) -> str:
        return self.diagnostics or f"Deployment '{self.deployment}' failed to roll out"
