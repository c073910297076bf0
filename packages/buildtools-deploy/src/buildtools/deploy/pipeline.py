"""
Deployment pipeline.

Selects the manifests for an environment, applies them one by one and, when
a deployment named after the build exists, waits for it to roll out.
Nothing is retried or rolled back; the first failure ends the run.
"""

from dataclasses import dataclass, field
from pathlib import Path

from . import console
from .errors import RolloutFailure
from .kube import ClusterClient
from .manifests import ManifestFile, select_manifests, substitute

MANIFEST_DIR = "k8s"


@dataclass
class DeploymentOutcome:
    applied: list[ManifestFile] = field(default_factory=list)
    rolled_out: bool = False
    diagnostics: str = ""


def collect_diagnostics(client: ClusterClient, name: str) -> str:
    """Deployment events followed by events of the pods labelled ``app=<name>``."""
    return client.deployment_events(name) + client.pod_events(name)


def deploy(
    directory: Path,
    commit: str,
    build_name: str,
    timestamp: str,
    environment: str,
    client: ClusterClient,
) -> DeploymentOutcome:
    """Deploy the manifests in ``directory/k8s`` for ``environment``.

    Args:
        directory: Project directory containing the manifest directory
        commit: Value for ``${COMMIT}``
        build_name: Name of the deployment to verify
        timestamp: Value for ``${TIMESTAMP}``
        environment: Target environment name used to select manifests
        client: Cluster to deploy to

    Returns:
        What was applied and whether a rollout was verified

    Raises:
        ManifestIOError: If manifests cannot be read (nothing is applied)
        ApplyError: From the first manifest the cluster rejects
        RolloutFailure: If the deployment does not become healthy
    """
    manifests = select_manifests(directory / MANIFEST_DIR, environment)
    console.debug(f"Selected {len(manifests)} manifest(s) for '{environment}'")

    outcome = DeploymentOutcome()
    for manifest in manifests:
        console.info(f"Applying [bold]{manifest.relative_path}[/bold]")
        client.apply(substitute(manifest.content, commit, timestamp))
        outcome.applied.append(manifest)

    if not client.deployment_exists(build_name):
        console.debug(f"No deployment named '{build_name}', skipping rollout check")
        return outcome

    with console.status(f"Waiting for rollout of {build_name}"):
        outcome.rolled_out = client.rollout_status(build_name)

    if not outcome.rolled_out:
        console.warn("Rollout failed. Fetching events.")
        outcome.diagnostics = collect_diagnostics(client, build_name)
        raise RolloutFailure(build_name, outcome.diagnostics)

    console.success(f"Rolled out {build_name}")
    return outcome
