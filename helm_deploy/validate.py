"""Checks on a DeployConfig that span more than one input.

Checks fail on the first violation. Required inputs are checked before
credential pairs so the error for a given config is always the same.
"""

import logging

from .config import Command, DeployConfig, HelmRepo
from .exceptions import (
    CredentialsException,
    DeployException,
    MissingConfigException,
)

__all__ = [
    "validate",
    "check_credentials",
]

_LOGGER = logging.getLogger(__name__)


def check_credentials(repo: HelmRepo, dependency: str | None = None) -> None:
    """Raise if only one of the username and password was supplied.

    Errors for the primary repo name the action inputs, errors for a
    dependency name the dependency.
    """
    prefix = "repo-" if dependency is None else ""
    suffix = "" if dependency is None else f" for dependency {dependency}"
    if repo.username and not repo.password:
        raise CredentialsException(
            f"supplied {prefix}username but missing {prefix}password{suffix}"
        )
    if repo.password and not repo.username:
        raise CredentialsException(
            f"supplied {prefix}password but missing {prefix}username{suffix}"
        )


def validate(config: DeployConfig) -> None:
    """Validate the inputs required by the command of the config."""
    if not config.command:
        raise MissingConfigException("command")
    if not isinstance(config.command, Command):
        raise DeployException(f"unknown command: {config.command}")
    if config.command in (Command.UPGRADE, Command.DELETE) and not config.release:
        raise MissingConfigException("release")
    if config.command in (Command.UPGRADE, Command.PUSH) and not config.chart:
        raise MissingConfigException("chart")
    if config.command == Command.PUSH and not config.repo.url:
        raise MissingConfigException("repo")
    check_credentials(config.repo)
    _LOGGER.debug("Validated inputs for command %s", config.command)
