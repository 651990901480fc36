"""Exceptions related to helm-deploy."""

__all__ = [
    "DeployException",
    "InputException",
    "MissingConfigException",
    "CredentialsException",
    "ChartException",
    "CommandException",
    "HelmException",
]


class DeployException(Exception):
    """Generic base exception used for this library."""


class InputException(DeployException):
    """Raised when the action inputs are not formatted as expected."""


class MissingConfigException(InputException):
    """Raised when a required input was not supplied."""

    def __init__(self, name: str) -> None:
        super().__init__(f"required and not supplied: {name}")
        self.name = name


class CredentialsException(InputException):
    """Raised when only one half of a username/password pair is supplied."""


class ChartException(DeployException):
    """Raised when a chart reference can't be resolved or packaged."""


class CommandException(DeployException):
    """Raised when there is a failure running a subcommand."""


class HelmException(CommandException):
    """Raised when there is a failure running a helm command."""
