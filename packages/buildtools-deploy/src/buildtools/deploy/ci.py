"""
CI provider identification and build identity.

The provider is picked by probing a fixed, ordered set of CI systems against
a snapshot of the process environment. When no CI system matches, ``NoOp``
is used and everything is read from the local git checkout instead.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

from .git import LocalRepository

_WHITESPACE = re.compile(r"\s+")


def sanitize_branch(branch: str) -> str:
    """Make a branch name usable as an image tag.

    Every ``/`` and every run of whitespace becomes ``_``.
    """
    return _WHITESPACE.sub("_", branch.replace("/", "_"))


def first_non_empty(*candidates: Callable[[], str]) -> str:
    """Return the first non-empty value, calling candidates in order."""
    for candidate in candidates:
        value = candidate()
        if value:
            return value
    return ""


@dataclass
class CIProvider:
    """Base for CI providers.

    Subclasses report raw values from their environment variables; anything
    they leave empty falls back to the local repository.
    """

    environ: Mapping[str, str] = field(repr=False)
    repository: LocalRepository
    cwd: Path

    name = ""
    # Value of the CI variable that selects this provider explicitly
    key = ""
    # Variable that is always set when running under this provider
    marker = ""

    def _var(self, name: str) -> str:
        return self.environ.get(name, "")

    @property
    def configured(self) -> bool:
        if not self.key:
            return False
        return bool(self._var(self.marker)) or self._var("CI").lower() == self.key

    def _commit(self) -> str:
        return ""

    def _branch(self) -> str:
        return ""

    def _build_name(self) -> str:
        return ""

    @property
    def commit(self) -> str:
        return first_non_empty(self._commit, lambda: self.repository.commit)

    @property
    def branch(self) -> str:
        return first_non_empty(self._branch, lambda: self.repository.branch)

    @property
    def branch_sanitized(self) -> str:
        return sanitize_branch(self.branch)

    @property
    def build_name(self) -> str:
        return first_non_empty(
            self._build_name,
            lambda: self.repository.name,
            lambda: self.cwd.name,
        )


class GithubActions(CIProvider):
    name = "Github"
    key = "github"
    marker = "RUNNER_WORKSPACE"

    def _commit(self) -> str:
        return self._var("GITHUB_SHA")

    def _branch(self) -> str:
        return self._var("GITHUB_REF").removeprefix("refs/heads/")

    def _build_name(self) -> str:
        return self._var("RUNNER_WORKSPACE").removeprefix("/home/runner/work/")


class GitlabCI(CIProvider):
    name = "Gitlab"
    key = "gitlab"
    marker = "CI_PROJECT_NAME"

    def _commit(self) -> str:
        return self._var("CI_COMMIT_SHA")

    def _branch(self) -> str:
        return self._var("CI_COMMIT_REF_NAME")

    def _build_name(self) -> str:
        return self._var("CI_PROJECT_NAME")


class Buildkite(CIProvider):
    name = "Buildkite"
    key = "buildkite"
    marker = "BUILDKITE_PIPELINE_SLUG"

    def _commit(self) -> str:
        return self._var("BUILDKITE_COMMIT")

    def _branch(self) -> str:
        return self._var("BUILDKITE_BRANCH_NAME")

    def _build_name(self) -> str:
        return self._var("BUILDKITE_PIPELINE_SLUG")


class AzureDevOps(CIProvider):
    name = "Azure"
    key = "azure"
    marker = "VSTS_PROCESS_LOOKUP_ID"

    def _commit(self) -> str:
        return self._var("BUILD_SOURCEVERSION")

    def _branch(self) -> str:
        return self._var("BUILD_SOURCEBRANCHNAME")

    def _build_name(self) -> str:
        return self._var("BUILD_REPOSITORY_NAME")


class NoOp(CIProvider):
    """Used when no CI system is detected."""

    name = "none"


# Probe order; earlier entries win when several are configured
PROVIDERS: tuple[type[CIProvider], ...] = (
    GithubActions,
    GitlabCI,
    Buildkite,
    AzureDevOps,
)


def identify(
    environ: Mapping[str, str], repository: LocalRepository, cwd: Path
) -> CIProvider:
    """Select the active CI provider. Always returns a provider."""
    for provider_class in PROVIDERS:
        provider = provider_class(environ, repository, cwd)
        if provider.configured:
            return provider
    return NoOp(environ, repository, cwd)


@dataclass(frozen=True)
class BuildIdentity:
    commit: str
    branch: str
    branch_sanitized: str
    build_name: str

    @classmethod
    def of(cls, provider: CIProvider) -> "BuildIdentity":
        return cls(
            commit=provider.commit,
            branch=provider.branch,
            branch_sanitized=provider.branch_sanitized,
            build_name=provider.build_name,
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.commit and self.branch)
