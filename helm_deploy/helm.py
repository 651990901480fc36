"""Library for running the helm commands of a deployment.

Every command that reaches a chart repository is passed the repository and
registry config files of the run, see `registry.HelmConfigFiles`.

This is an example that upgrades a release:
```python
from helm_deploy.helm import Helm, UpgradeOptions

helm = Helm(config_files)
await helm.repo_update()
await helm.upgrade(
    "my-release",
    "stable/linkerd",
    UpgradeOptions(namespace="linkerd", value_files=["values.yaml"]),
)
```
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path

from . import command
from .config import HELM_BIN, DeployConfig
from .exceptions import HelmException
from .registry import HelmConfigFiles

__all__ = [
    "Helm",
    "UpgradeOptions",
    "PackageOptions",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class UpgradeOptions:
    """Options to use when upgrading a release.

    These translate into command line flags, in the order they are declared.
    """

    namespace: str | None = None
    """Value of the helm -n flag."""

    kubeconfig: str | None = None
    """Value of the helm --kubeconfig flag."""

    dry_run: bool = False
    """Simulate the upgrade."""

    version: str | None = None
    """Value of the helm --version flag."""

    timeout: str | None = None
    """Value of the helm --timeout flag."""

    atomic: bool = True
    """Roll back the changes of a failed upgrade."""

    value_files: list[str] = field(default_factory=list)
    """Value files passed with --values, later files take precedence."""

    @classmethod
    def from_config(
        cls, config: DeployConfig, values_file: Path | None = None
    ) -> "UpgradeOptions":
        """Build the options from the deploy config.

        The values file holding the inline values is always passed last.
        """
        value_files = list(config.value_files)
        if values_file is not None:
            value_files.append(str(values_file))
        return cls(
            namespace=config.namespace,
            kubeconfig=config.kubeconfig_path,
            dry_run=config.dry_run,
            version=config.chart_version,
            timeout=config.timeout,
            atomic=config.atomic,
            value_files=value_files,
        )

    @property
    def args(self) -> list[str]:
        """Helm upgrade CLI arguments built from the options."""
        args: list[str] = []
        if self.namespace:
            args.extend(["-n", self.namespace])
        if self.kubeconfig:
            args.extend(["--kubeconfig", self.kubeconfig])
        if self.dry_run:
            args.append("--dry-run")
        if self.version:
            args.extend(["--version", self.version])
        if self.timeout:
            args.extend(["--timeout", self.timeout])
        if self.atomic:
            args.append("--atomic")
        for value_file in self.value_files:
            args.extend(["--values", value_file])
        return args


@dataclass
class PackageOptions:
    """Options to use when packaging a chart."""

    version: str | None = None
    """Overrides the chart version."""

    app_version: str | None = None
    """Overrides the app version."""

    @property
    def args(self) -> list[str]:
        """Helm package CLI arguments built from the options."""
        args: list[str] = []
        if self.version:
            args.extend(["--version", self.version])
        if self.app_version:
            args.extend(["--app-version", self.app_version])
        return args


class Helm:
    """Runs helm commands against the repositories of a run."""

    def __init__(self, config_files: HelmConfigFiles, helm_bin: str = HELM_BIN) -> None:
        """Initialize Helm."""
        self._helm_bin = helm_bin
        self._flags = config_files.flags

    async def _run(self, args: list[str], cwd: Path | None = None) -> str:
        cmd = command.Command([self._helm_bin, *args], cwd=cwd, exc=HelmException)
        out = await command.run(cmd)
        if out:
            _LOGGER.info("%s", out.rstrip())
        return out

    async def repo_update(self) -> None:
        """Update the index of all configured repositories.

        This must run before any command that resolves a remote chart.
        """
        await self._run(["repo", "update", *self._flags])

    async def delete(
        self, release: str, namespace: str, kubeconfig: str | None = None
    ) -> None:
        """Delete the release."""
        args = ["delete", "-n", namespace]
        if kubeconfig:
            args.extend(["--kubeconfig", kubeconfig])
        args.append(release)
        await self._run(args)

    async def upgrade(self, release: str, chart: str, options: UpgradeOptions) -> None:
        """Install the chart, or upgrade the release if it already exists."""
        await self._run(
            [
                "upgrade",
                release,
                chart,
                "--install",
                "--wait",
                *self._flags,
                *options.args,
            ]
        )

    async def inspect_chart(self, chart: Path) -> None:
        """Print the chart definition, failing on an invalid chart."""
        await self._run(["inspect", "chart", str(chart)])

    async def dependency_update(self, chart: Path) -> None:
        """Download the chart dependencies into the charts directory."""
        await self._run(["dependency", "update", str(chart), *self._flags])

    async def package(self, chart: Path, options: PackageOptions) -> None:
        """Package the chart into an archive inside the chart directory."""
        await self._run(["package", *options.args, str(chart)], cwd=chart)

    async def push(
        self, package: Path, remote: str, force: bool = False, cwd: Path | None = None
    ) -> None:
        """Upload the packaged chart to the remote repository."""
        args = ["push", str(package), remote, *self._flags]
        if force:
            args.append("--force")
        await self._run(args, cwd=cwd)
