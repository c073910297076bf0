"""
``deploy`` command.

Usage: deploy [--context|-c CTX] [--namespace|-n NS] <environment>
"""

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Mapping

from invoke import Argument, Context, Parser, ParserContext
from invoke.exceptions import ParseError

from . import __version__, ci, config, console, kube, pipeline
from .errors import DeployError, ProviderIncompleteError
from .git import LocalRepository

USAGE = (
    "Usage: deploy [options] <environment>\n\n"
    "For example `deploy --context test-cluster --namespace test prod` would deploy to "
    "namespace `test` in the `test-cluster` but assuming to use the `prod` configuration "
    "files (if present)\n\nOptions:"
)

OPTIONS = ParserContext(
    name="deploy",
    args=[
        Argument(
            names=("context", "c"),
            help="override the context for default environment deployment target",
        ),
        Argument(
            names=("namespace", "n"),
            help="override the namespace for default environment deployment target",
        ),
        Argument(names=("version",), kind=bool, help="print version and exit"),
    ],
)


def print_usage() -> None:
    console.output(USAGE)
    for flags, text in OPTIONS.help_tuples():
        console.output(f"  {flags:<28}{text or ''}")


def timestamp(now: datetime | None = None) -> str:
    """RFC 3339 local time, with UTC written as ``Z``."""
    now = now if now is not None else datetime.now().astimezone()
    text = now.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        return text.removesuffix("+00:00") + "Z"
    return text


def run(
    c: Context,
    directory: Path,
    environment: str,
    environ: Mapping[str, str],
    context: str | None = None,
    namespace: str | None = None,
) -> pipeline.DeploymentOutcome:
    """Deploy ``directory`` to ``environment``.

    Raises:
        DeployError: Subclass matching the stage that failed
    """
    cfg = config.load(directory)
    env = cfg.environment(environment).with_overrides(context, namespace)

    provider = ci.identify(environ, LocalRepository(directory, c), directory)
    identity = ci.BuildIdentity.of(provider)
    if not identity.is_complete:
        raise ProviderIncompleteError(
            "Commit and/or branch information is missing. Perhaps you're not in a "
            "Git repository or forgot to set environment variables?"
        )
    console.debug(f"CI: {provider.name}, branch: {identity.branch}")
    console.info(
        f"Deploying [bold]{identity.build_name}[/bold] ({identity.commit}) "
        f"to [bold]{env.name}[/bold] ({env.context or 'current context'}/{env.namespace})"
    )

    with kube.kubectl(env, c) as client:
        return pipeline.deploy(
            directory,
            identity.commit,
            identity.build_name,
            timestamp(),
            environment,
            client,
        )


def main(argv: list[str] | None = None, c: Context | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        parsed = Parser(initial=OPTIONS, ignore_unknown=True).parse_argv(argv)
    except ParseError as e:
        console.error(str(e))
        print_usage()
        return 2

    args = parsed[0].args
    if args["version"].value:
        console.output(f"Version: {__version__}")
        return 0
    if not parsed.unparsed:
        print_usage()
        return 0

    environment = parsed.unparsed[0]
    if environment.startswith("-"):
        console.error(f"Unknown option: {environment}")
        print_usage()
        return 2

    try:
        run(
            c if c is not None else Context(),
            Path.cwd(),
            environment,
            os.environ,
            context=args["context"].value,
            namespace=args["namespace"].value,
        )
    except DeployError as e:
        console.error(str(e))
        return e.exit_code
    return 0


def entrypoint() -> None:
    sys.exit(main())
