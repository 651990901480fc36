"""Command line tool for deploying a helm chart from a CI job.

Inputs are read from the `INPUT_<NAME>` environment variables set by the CI
runner. For local runs they may also be supplied in a YAML or JSON file, which
takes precedence over the environment:
```
helm-deploy --inputs inputs.yaml --log-level DEBUG
```
"""

import argparse
import asyncio
import logging
import os
import pathlib
import sys
import traceback
from typing import Any

import yaml

from helm_deploy.config import ActionContext
from helm_deploy.deploy import Deployment
from helm_deploy.exceptions import DeployException, InputException
from helm_deploy.inputs import inputs_from_environ, parse_inputs
from helm_deploy.status import DeploymentState, StatusReporter

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Install, upgrade, delete or push a helm chart.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
    )
    parser.add_argument(
        "--inputs",
        type=pathlib.Path,
        help="YAML or JSON file with action inputs, overriding the environment",
    )
    return parser


def read_inputs(environ: dict[str, str], path: pathlib.Path | None) -> dict[str, Any]:
    """Return the raw action inputs from the environment and inputs file."""
    inputs: dict[str, Any] = dict(inputs_from_environ(environ))
    if path is None:
        return inputs
    try:
        doc = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as err:
        raise InputException(f"Unable to read inputs file {path}: {err}") from err
    if not isinstance(doc, dict):
        raise InputException(f"Inputs file {path} must contain a mapping")
    inputs.update(doc)
    return inputs


async def run(inputs: dict[str, Any], context: ActionContext) -> None:
    """Run the deployment, reporting a failure status on error."""
    token = inputs.get("github-token")
    reporter = StatusReporter(context, str(token) if token else None)
    try:
        config = parse_inputs(inputs)
        await Deployment(config, context, reporter).run()
    except Exception:
        await reporter.report(DeploymentState.FAILURE)
        raise


def main() -> None:
    """helm-deploy command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level)

    environ = dict(os.environ)
    try:
        context = ActionContext.from_environ(environ)
        inputs = read_inputs(environ, args.inputs)
        asyncio.run(run(inputs, context))
    except DeployException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        # Surfaces the error as an annotation on the CI run
        print(f"::error::{err}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
