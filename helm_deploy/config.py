"""Configuration objects for helm-deploy.

The `DeployConfig` is the normalized, strongly typed form of the action
inputs and describes exactly one deployment action. The `ActionContext` holds
the process level settings read once from the environment at startup.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
import json
import logging
from pathlib import Path
from typing import Any

from .chart import ChartMetadata
from .exceptions import InputException

__all__ = [
    "Command",
    "HelmRepo",
    "DeployConfig",
    "ActionContext",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"
DEFAULT_REPO_ALIAS = "source-chart-repo"
EMPTY_VALUES = "{}"
HELM_BIN = "helm"


class Command(StrEnum):
    """The deployment action to perform."""

    UPGRADE = "upgrade"
    DELETE = "delete"
    PUSH = "push"


COMMAND_ALIASES = {
    "install": Command.UPGRADE,
    "remove": Command.DELETE,
    "uninstall": Command.DELETE,
}


@dataclass(frozen=True)
class HelmRepo:
    """Credentials and location of a chart repository."""

    url: str | None = None
    """The repository url."""

    alias: str | None = None
    """The local name of the repository used in chart references."""

    username: str | None = None
    """Username used to authenticate against the repository."""

    password: str | None = None
    """Password used to authenticate against the repository."""

    @property
    def has_credentials(self) -> bool:
        """Return true if either half of the credentials was supplied."""
        return bool(self.username or self.password)


@dataclass
class DeployConfig:
    """The deployment intent for a single run."""

    command: Command | str | None
    """The action to perform, an unrecognized value is kept verbatim."""

    release: str | None = None
    """Name of the helm release, required for upgrade and delete."""

    namespace: str = DEFAULT_NAMESPACE
    """The kubernetes namespace of the release."""

    chart: str | None = None
    """Local chart directory, or a `<alias>/<name>` or url chart reference."""

    chart_metadata: ChartMetadata | None = None
    """Contents of Chart.yaml when the chart is a local directory."""

    values: str = EMPTY_VALUES
    """Inline values as a single serialized YAML or JSON document."""

    value_files: list[str] = field(default_factory=list)
    """Value files applied in order, later files take precedence."""

    secrets: dict[str, Any] = field(default_factory=dict)
    """Secrets available to value file templates."""

    repo: HelmRepo = field(default_factory=HelmRepo)
    """The primary chart repository."""

    dependencies: list[HelmRepo] = field(default_factory=list)
    """Additional repositories used to resolve chart dependencies."""

    dry_run: bool = False
    atomic: bool = True
    use_oci: bool = True
    force: bool = False

    chart_version: str | None = None
    app_version: str | None = None
    timeout: str | None = None

    kubeconfig_path: str | None = None
    """Path to a kubeconfig file passed with --kubeconfig."""

    kubeconfig_inline: str | None = None
    """Inline kubeconfig contents, written to a transient file before use."""

    github_token: str | None = None
    """Token used to report the deployment status."""

    @property
    def has_values(self) -> bool:
        """Return true if inline values need to be passed to helm."""
        return self.values.strip() not in ("", EMPTY_VALUES)

    @property
    def has_repositories(self) -> bool:
        """Return true if any repository needs to be synced before running."""
        return bool(self.repo.url) or bool(self.dependencies)


@dataclass(frozen=True)
class ActionContext:
    """Process level settings, built once at startup."""

    event: dict[str, Any] = field(default_factory=dict)
    """The payload of the event that triggered the run."""

    repository: str | None = None
    """The `owner/repo` slug of the repository running the action."""

    sha: str | None = None
    """The commit sha that triggered the run."""

    server_url: str = "https://github.com"
    api_url: str = "https://api.github.com"

    workdir: Path = field(default_factory=Path.cwd)
    """Directory used to resolve relative chart paths."""

    data_home: Path | None = None
    """Directory holding transient files, the system default when unset."""

    helm_bin: str = HELM_BIN

    @property
    def deployment(self) -> dict[str, Any] | None:
        """The deployment that triggered the run, if any."""
        return self.event.get("deployment")

    @property
    def checks_url(self) -> str | None:
        """Url of the checks page of the triggering commit."""
        if not self.repository or not self.sha:
            return None
        return f"{self.server_url}/{self.repository}/commit/{self.sha}/checks"

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "ActionContext":
        """Build the context from the CI runner environment variables."""
        event: dict[str, Any] = {}
        if event_path := environ.get("GITHUB_EVENT_PATH"):
            try:
                event = json.loads(Path(event_path).read_text()) or {}
            except (OSError, ValueError) as err:
                raise InputException(
                    f"Unable to read event payload {event_path}: {err}"
                ) from err
        else:
            _LOGGER.debug("No event payload available")
        data_home = environ.get("DEPLOY_ACTION_DATA_HOME")
        return cls(
            event=event,
            repository=environ.get("GITHUB_REPOSITORY"),
            sha=environ.get("GITHUB_SHA"),
            server_url=environ.get("GITHUB_SERVER_URL", "https://github.com"),
            api_url=environ.get("GITHUB_API_URL", "https://api.github.com"),
            workdir=Path(environ.get("GITHUB_WORKSPACE") or Path.cwd()),
            data_home=Path(data_home) if data_home else None,
            helm_bin=environ.get("HELM_BIN", HELM_BIN),
        )
