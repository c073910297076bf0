import shutil
import subprocess
from pathlib import Path

import pytest
from invoke import Context, MockContext, Result

from buildtools.deploy.ci import (
    AzureDevOps,
    Buildkite,
    BuildIdentity,
    GithubActions,
    GitlabCI,
    NoOp,
    first_non_empty,
    identify,
    sanitize_branch,
)
from buildtools.deploy.git import LocalRepository

WORKDIR = Path("/work/app")


def repository(commit: str = "", branch: str = "", toplevel: str = "") -> LocalRepository:
    def answer(value: str) -> Result:
        return Result(f"{value}\n" if value else "", exited=0 if value else 128)

    c = MockContext(
        run={
            "git -C /work/app rev-parse HEAD": answer(commit),
            "git -C /work/app symbolic-ref --short -q HEAD": answer(branch),
            "git -C /work/app rev-parse --show-toplevel": answer(toplevel),
        }
    )
    return LocalRepository(WORKDIR, c)


def untouched_repository() -> LocalRepository:
    """Any git call against this repository fails the test."""
    return LocalRepository(WORKDIR, MockContext(run={}))


@pytest.fixture
def git_repo(tmp_path: Path) -> tuple[Path, str]:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    def git(*args: str) -> str:
        return subprocess.run(
            ["git", "-C", str(tmp_path), *args],
            check=True,
            capture_output=True,
            text=True,
        ).stdout.strip()

    git("-c", "init.defaultBranch=master", "init", "-q")
    (tmp_path / "README.md").write_text("hello")
    git("add", "README.md")
    git(
        "-c", "user.name=test",
        "-c", "user.email=test@example.com",
        "-c", "commit.gpgsign=false",
        "commit", "-q", "-m", "initial",
    )  # fmt: skip
    return tmp_path, git("rev-parse", "HEAD")


@pytest.mark.parametrize(
    "branch, expected",
    [
        ("feature/first test", "feature_first_test"),
        ("master", "master"),
        ("a//b", "a__b"),
        ("tabs\tand  spaces", "tabs_and_spaces"),
        ("", ""),
    ],
)
def test_sanitize_branch(branch, expected):
    assert sanitize_branch(branch) == expected
    assert sanitize_branch(sanitize_branch(branch)) == sanitize_branch(branch)


def test_first_non_empty_stops_at_first_value():
    calls = []

    def candidate(value):
        def inner():
            calls.append(value)
            return value

        return inner

    assert first_non_empty(candidate(""), candidate("b"), candidate("c")) == "b"
    assert calls == ["", "b"]
    assert first_non_empty(candidate("")) == ""


def test_identify_github():
    environ = {
        "RUNNER_WORKSPACE": "/home/runner/work/reponame",
        "GITHUB_SHA": "abc123",
        "GITHUB_REF": "refs/heads/feature/first test",
    }

    result = identify(environ, untouched_repository(), WORKDIR)

    assert isinstance(result, GithubActions)
    assert result.name == "Github"
    assert result.configured
    assert result.commit == "abc123"
    assert result.build_name == "reponame"
    assert result.branch == "feature/first test"
    assert result.branch_sanitized == "feature_first_test"


def test_identify_gitlab():
    environ = {
        "CI_COMMIT_SHA": "abc123",
        "CI_PROJECT_NAME": "reponame",
        "CI_COMMIT_REF_NAME": "feature/first test",
    }

    result = identify(environ, untouched_repository(), WORKDIR)

    assert isinstance(result, GitlabCI)
    assert result.name == "Gitlab"
    assert result.commit == "abc123"
    assert result.build_name == "reponame"
    assert result.branch_sanitized == "feature_first_test"


def test_identify_buildkite():
    environ = {
        "BUILDKITE_COMMIT": "abc123",
        "BUILDKITE_PIPELINE_SLUG": "reponame",
        "BUILDKITE_BRANCH_NAME": "feature/first test",
    }

    result = identify(environ, untouched_repository(), WORKDIR)

    assert isinstance(result, Buildkite)
    assert result.name == "Buildkite"
    assert result.commit == "abc123"
    assert result.build_name == "reponame"
    assert result.branch == "feature/first test"
    assert result.branch_sanitized == "feature_first_test"


def test_identify_azure():
    environ = {
        "VSTS_PROCESS_LOOKUP_ID": "1",
        "BUILD_SOURCEVERSION": "abc123",
        "BUILD_REPOSITORY_NAME": "reponame",
        "BUILD_SOURCEBRANCHNAME": "feature/first test",
    }

    result = identify(environ, untouched_repository(), WORKDIR)

    assert isinstance(result, AzureDevOps)
    assert result.name == "Azure"
    assert result.commit == "abc123"
    assert result.build_name == "reponame"
    assert result.branch == "feature/first test"
    assert result.branch_sanitized == "feature_first_test"


def test_identify_without_ci_variables_is_noop():
    result = identify({}, repository(), WORKDIR)

    assert isinstance(result, NoOp)
    assert result.name == "none"
    assert not result.configured


def test_generic_ci_flag_is_not_a_provider():
    result = identify({"CI": "true"}, repository(), WORKDIR)

    assert isinstance(result, NoOp)


def test_priority_order_when_several_are_configured():
    environ = {
        "RUNNER_WORKSPACE": "/home/runner/work/gh",
        "BUILDKITE_PIPELINE_SLUG": "bk",
        "VSTS_PROCESS_LOOKUP_ID": "1",
    }

    result = identify(environ, untouched_repository(), WORKDIR)

    assert isinstance(result, GithubActions)


@pytest.mark.parametrize(
    "value, provider",
    [
        ("github", GithubActions),
        ("gitlab", GitlabCI),
        ("buildkite", Buildkite),
        ("azure", AzureDevOps),
        ("Azure", AzureDevOps),
    ],
)
def test_ci_variable_selects_provider_and_falls_back_to_git(value, provider):
    repo = repository(commit="abc123", branch="master", toplevel="/src/reponame")

    result = identify({"CI": value}, repo, WORKDIR)

    assert isinstance(result, provider)
    assert result.configured
    assert result.commit == "abc123"
    assert result.branch == "master"
    assert result.build_name == "reponame"


def test_partial_provider_values_fall_back_per_field():
    environ = {"CI_PROJECT_NAME": "reponame", "CI_COMMIT_SHA": "abc123"}
    repo = repository(commit="local", branch="main", toplevel="/src/local")

    result = identify(environ, repo, WORKDIR)

    assert result.commit == "abc123"
    assert result.branch == "main"
    assert result.build_name == "reponame"


def test_noop_reads_everything_from_git():
    repo = repository(commit="abc123", branch="feature/x", toplevel="/src/reponame")

    result = identify({}, repo, WORKDIR)

    assert result.commit == "abc123"
    assert result.branch == "feature/x"
    assert result.branch_sanitized == "feature_x"
    assert result.build_name == "reponame"


def test_noop_outside_repository():
    result = identify({}, repository(), WORKDIR)

    assert result.commit == ""
    assert result.branch == ""
    assert result.build_name == "app"


def test_build_identity():
    environ = {
        "CI_COMMIT_SHA": "abc123",
        "CI_PROJECT_NAME": "reponame",
        "CI_COMMIT_REF_NAME": "feature/first test",
    }

    identity = BuildIdentity.of(identify(environ, untouched_repository(), WORKDIR))

    assert identity == BuildIdentity(
        commit="abc123",
        branch="feature/first test",
        branch_sanitized="feature_first_test",
        build_name="reponame",
    )
    assert identity.is_complete


def test_build_identity_incomplete_without_branch():
    identity = BuildIdentity.of(identify({}, repository(commit="abc123"), WORKDIR))

    assert not identity.is_complete
    assert identity.build_name == "app"


def test_local_repository_reads_each_value_once():
    repo = repository(commit="abc123")

    assert repo.commit == "abc123"
    assert repo.commit == "abc123"
    assert repo.c.run.call_count == 1


def test_noop_with_real_repository(git_repo):
    path, commit = git_repo

    result = identify({}, LocalRepository(path, Context()), path)

    assert isinstance(result, NoOp)
    assert result.commit == commit
    assert result.branch == "master"
    assert result.branch_sanitized == "master"
    assert result.build_name == path.name


def test_azure_override_with_real_repository(git_repo):
    path, commit = git_repo

    result = identify({"CI": "azure"}, LocalRepository(path, Context()), path)

    assert isinstance(result, AzureDevOps)
    assert result.commit == commit
    assert result.branch == "master"


def test_real_directory_outside_repository(tmp_path):
    result = identify({}, LocalRepository(tmp_path, Context()), tmp_path)

    assert result.commit == ""
    assert result.branch == ""
    assert result.build_name == tmp_path.name
