"""
buildtools.deploy - Deploy Kubernetes manifests from CI.

Submodules:
- buildtools.deploy.ci - CI provider identification and build identity
- buildtools.deploy.cli - The deploy command
- buildtools.deploy.config - Environments and .buildtools.yaml loading
- buildtools.deploy.console - Console output
- buildtools.deploy.errors - Errors and exit codes
- buildtools.deploy.git - Git utilities
- buildtools.deploy.kube - Kubernetes cluster access using kubectl
- buildtools.deploy.manifests - Manifest selection and templating
- buildtools.deploy.pipeline - Apply and rollout verification
"""

__version__ = "0.1.0"
