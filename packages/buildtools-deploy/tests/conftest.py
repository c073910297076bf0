from pathlib import Path

import pytest

from buildtools.deploy.config import Environment

NAMESPACE_YAML = """
apiVersion: v1
kind: Namespace
metadata:
  name: dummy
"""


class FakeCluster:
    """In-memory cluster client that records what the pipeline asks of it."""

    def __init__(
        self,
        apply_errors: dict[int, Exception] | None = None,
        deployment: bool = False,
        rollout: bool = True,
        deployment_events: str = "Deployment events",
        pod_events: str = "Pod events",
    ):
        self.apply_errors = apply_errors or {}
        self.deployment = deployment
        self.rollout = rollout
        self._deployment_events = deployment_events
        self._pod_events = pod_events
        self.inputs: list[str] = []
        self.calls: list[str] = []
        self.cleaned_up = False

    @property
    def environment(self) -> Environment:
        return Environment(name="dummy", context="dummy")

    def apply(self, manifest: str) -> None:
        self.calls.append("apply")
        self.inputs.append(manifest)
        error = self.apply_errors.get(len(self.inputs))
        if error is not None:
            raise error

    def deployment_exists(self, name: str) -> bool:
        self.calls.append(f"deployment_exists {name}")
        return self.deployment

    def rollout_status(self, name: str) -> bool:
        self.calls.append(f"rollout_status {name}")
        return self.rollout

    def deployment_events(self, name: str) -> str:
        self.calls.append(f"deployment_events {name}")
        return self._deployment_events

    def pod_events(self, name: str) -> str:
        self.calls.append(f"pod_events {name}")
        return self._pod_events

    def cleanup(self) -> None:
        self.cleaned_up = True


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def k8s(tmp_path: Path) -> Path:
    """An empty manifest directory inside a project directory."""
    path = tmp_path / "k8s"
    path.mkdir()
    return path


def write(path: Path, content: str = NAMESPACE_YAML) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path
