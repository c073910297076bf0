"""Git utilities."""

import shlex
from functools import cached_property
from pathlib import Path

from invoke import Context

from . import console


class LocalRepository:
    """Read-only view of the git checkout at ``path``.

    Each value is read on first access. Anything git cannot answer (not a
    repository, detached HEAD, git not installed) reads as an empty string.
    """

    def __init__(self, path: Path, c: Context | None = None):
        self.path = path
        self.c = c if c is not None else Context()

    def _git(self, args: str) -> str:
        cmd = f"git -C {shlex.quote(str(self.path))} {args}"
        result = self.c.run(cmd, hide=True, warn=True, in_stream=False)
        if result is None or not result.ok:
            console.debug(f"'{cmd}' failed, ignoring")
            return ""
        return result.stdout.strip()

    @cached_property
    def commit(self) -> str:
        return self._git("rev-parse HEAD")

    @cached_property
    def branch(self) -> str:
        return self._git("symbolic-ref --short -q HEAD")

    @cached_property
    def name(self) -> str:
        toplevel = self._git("rev-parse --show-toplevel")
        return Path(toplevel).name if toplevel else ""
