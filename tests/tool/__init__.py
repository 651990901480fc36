"""Test helpers for the helm-deploy tool."""

import sys

from helm_deploy.command import Command, run

HELM_DEPLOY_CMD = [sys.executable, "-m", "helm_deploy"]


async def run_command(args: list[str], env: dict[str, str] | None = None) -> str:
    return await run(Command(HELM_DEPLOY_CMD + args, env=env))
