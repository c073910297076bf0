"""
Kubernetes cluster access using kubectl.
"""

import shlex
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Protocol

from invoke import Context, Result

from . import console
from .config import Environment
from .errors import ApplyError

ROLLOUT_TIMEOUT = "1m0s"


class ClusterClient(Protocol):
    """What the deployment pipeline needs from a cluster."""

    @property
    def environment(self) -> Environment: ...

    def apply(self, manifest: str) -> None: ...

    def deployment_exists(self, name: str) -> bool: ...

    def rollout_status(self, name: str) -> bool: ...

    def deployment_events(self, name: str) -> str: ...

    def pod_events(self, name: str) -> str: ...

    def cleanup(self) -> None: ...


def normalize_events(output: str) -> str:
    """Reduce ``kubectl describe`` output to its last Events section.

    Returns an empty string when that section is ``<none>``.
    """
    lines = output.splitlines()
    starts = [i for i, line in enumerate(lines) if line.startswith("Events:")]
    if not starts:
        text = output.strip()
        return f"{text}\n" if text else ""

    section = lines[starts[-1] :]
    if section[0].removeprefix("Events:").strip() == "<none>":
        return ""
    while section and not section[-1].strip():
        section.pop()
    return "\n".join(section) + "\n"


class Kubectl:
    """Cluster client for one environment.

    Manifests are passed to kubectl through a private staging directory that
    is created here and removed by :meth:`cleanup`.
    """

    def __init__(self, environment: Environment, c: Context | None = None):
        self._environment = environment
        self.c = c if c is not None else Context()
        self.staging_dir = Path(tempfile.mkdtemp(prefix="buildtools-"))

    @property
    def environment(self) -> Environment:
        return self._environment

    def command(self, args: str) -> str:
        """Full kubectl command line targeting this environment."""
        flags = f"--namespace {shlex.quote(self._environment.namespace)}"
        if self._environment.context:
            flags = f"--context {shlex.quote(self._environment.context)} {flags}"
        return f"kubectl {args} {flags}"

    def _run(self, args: str) -> Result | None:
        cmd = self.command(args)
        console.debug(f"Running '{cmd}'")
        return self.c.run(cmd, hide=True, warn=True, in_stream=False)

    def apply(self, manifest: str) -> None:
        """Apply manifest text.

        Raises:
            ApplyError: If the manifest cannot be staged or kubectl rejects it
        """
        path = self.staging_dir / "content.yaml"
        try:
            path.write_text(manifest, encoding="utf-8")
        except OSError as e:
            raise ApplyError(f"Failed to write {path}: {e.strerror or e}") from e

        result = self._run(f"apply --file {shlex.quote(str(path))}")
        if result is None or not result.ok:
            detail = (result.stderr or result.stdout).strip() if result is not None else ""
            raise ApplyError(detail or "kubectl apply failed")
        console.output(result.stdout.rstrip())

    def deployment_exists(self, name: str) -> bool:
        result = self._run(f"get deployment {shlex.quote(name)}")
        return result is not None and result.ok

    def rollout_status(self, name: str) -> bool:
        """Block until the deployment is rolled out or the timeout passes."""
        result = self._run(
            f"rollout status deployment {shlex.quote(name)} --timeout={ROLLOUT_TIMEOUT}"
        )
        return result is not None and result.ok

    def _describe(self, args: str) -> str:
        result = self._run(f"describe {args} --show-events=true")
        if result is None:
            return ""
        if not result.ok:
            return (result.stderr or result.stdout).strip()
        return normalize_events(result.stdout)

    def deployment_events(self, name: str) -> str:
        return self._describe(f"deployment {shlex.quote(name)}")

    def pod_events(self, name: str) -> str:
        return self._describe(f"pods --selector {shlex.quote(f'app={name}')}")

    def cleanup(self) -> None:
        shutil.rmtree(self.staging_dir, ignore_errors=True)


@contextmanager
def kubectl(
    environment: Environment, c: Context | None = None
) -> Generator[Kubectl, None, None]:
    """Kubectl client whose staging directory is removed when the block exits.

    Example:
        with kube.kubectl(env) as client:
            pipeline.deploy(directory, commit, build_name, timestamp, env.name, client)
    """
    client = Kubectl(environment, c)
    try:
        yield client
    finally:
        client.cleanup()
