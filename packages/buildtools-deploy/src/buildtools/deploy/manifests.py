"""
Manifest selection and templating.

Layout of a manifest directory::

    k8s/
      ns.yaml            shared, applied to every environment
      deploy-prod.yaml   only applied to "prod"
      prod/              everything in here is applied to "prod"
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from . import console
from .errors import ManifestIOError

_PLACEHOLDERS = re.compile(r"\$\{(COMMIT|TIMESTAMP)\}")


@dataclass(frozen=True)
class ManifestFile:
    relative_path: str
    content: str


def is_for_environment(filename: str, environment: str) -> bool:
    """Whether a file outside an environment directory belongs to ``environment``."""
    if filename.endswith(f"-{environment}.yaml"):
        return True
    return filename.endswith(".yaml") and "-" not in filename


def substitute(content: str, commit: str, timestamp: str) -> str:
    """Replace ``${COMMIT}`` and ``${TIMESTAMP}`` in manifest text."""
    values = {"COMMIT": commit, "TIMESTAMP": timestamp}
    return _PLACEHOLDERS.sub(lambda m: values[m.group(1)], content)


def _read(root: Path, path: Path) -> ManifestFile:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestIOError(path, e) from e
    return ManifestFile(relative_path=path.relative_to(root).as_posix(), content=content)


def _walk(
    root: Path, directory: Path, environment: str, include_all: bool = False
) -> Iterator[ManifestFile]:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise ManifestIOError(directory, e) from e

    for entry in entries:
        path = Path(entry.path)
        if entry.name == environment and entry.is_dir():
            yield from _walk(root, path, environment, include_all=True)
        elif include_all and entry.is_dir():
            console.debug(f"Skipping directory {path}")
        elif include_all or is_for_environment(entry.name, environment):
            yield _read(root, path)


def select_manifests(root: Path, environment: str) -> list[ManifestFile]:
    """Collect the manifests under ``root`` that apply to ``environment``.

    Entries are visited in name order. A directory named exactly after the
    environment contributes all of its files, regardless of their names;
    directories nested inside it are skipped.

    Raises:
        ManifestIOError: If the directory or any selected file cannot be
            read. Nothing is returned in that case.
    """
    return list(_walk(root, root, environment))
