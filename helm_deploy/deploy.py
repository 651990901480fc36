"""Runs a single deployment from a DeployConfig.

A deployment moves through these states, one helm command at a time:
```
INIT -> REPO_SYNC -> VALUES_PREPARED -> KUBECONFIG_PREPARED -> DISPATCHED
  -> UPGRADE_DONE | DELETE_DONE | PUSH_DONE -> CLEANUP -> SUCCESS
```
Any error moves straight to CLEANUP and then FAILURE. Transient files
written along the way are removed in CLEANUP on both paths.
"""

import dataclasses
from enum import StrEnum
import logging
from pathlib import Path

from aiofiles.ospath import exists

from .chart import resolve_chart
from .config import ActionContext, Command, DeployConfig
from .exceptions import ChartException, DeployException, MissingConfigException
from .helm import Helm, PackageOptions, UpgradeOptions
from .registry import write_config_files
from .status import DeploymentState, StatusReporter
from .transient import TransientFiles
from .url import replace_scheme
from .validate import validate
from .values import render_files

__all__ = [
    "DeployState",
    "Deployment",
]

_LOGGER = logging.getLogger(__name__)

VALUES_SUFFIX = "-values.yml"
KUBECONFIG_SUFFIX = "-kubeconfig.yml"


class DeployState(StrEnum):
    """States of a deployment run."""

    INIT = "init"
    REPO_SYNC = "repo_sync"
    VALUES_PREPARED = "values_prepared"
    KUBECONFIG_PREPARED = "kubeconfig_prepared"
    DISPATCHED = "dispatched"
    UPGRADE_DONE = "upgrade_done"
    DELETE_DONE = "delete_done"
    PUSH_DONE = "push_done"
    CLEANUP = "cleanup"
    SUCCESS = "success"
    FAILURE = "failure"


class Deployment:
    """A single deployment action."""

    def __init__(
        self,
        config: DeployConfig,
        context: ActionContext,
        reporter: StatusReporter,
    ) -> None:
        """Initialize Deployment."""
        self._config = dataclasses.replace(config)
        self._context = context
        self._reporter = reporter
        self._states = [DeployState.INIT]

    @property
    def config(self) -> DeployConfig:
        """The config of the deployment including resolved values."""
        return self._config

    @property
    def state(self) -> DeployState:
        """The current state of the deployment."""
        return self._states[-1]

    @property
    def states(self) -> list[DeployState]:
        """All states the deployment went through."""
        return list(self._states)

    def _transition(self, state: DeployState) -> None:
        _LOGGER.debug("Deployment state %s -> %s", self.state, state)
        self._states.append(state)

    async def run(self) -> None:
        """Run the deployment, raising on the first failure."""
        await self._reporter.report(DeploymentState.PENDING)
        try:
            validate(self._config)
            await self._resolve_chart()
            self._resolve_value_files()
            async with TransientFiles(self._context.data_home) as files:
                try:
                    await self._execute(files)
                finally:
                    self._transition(DeployState.CLEANUP)
        except Exception:
            self._transition(DeployState.FAILURE)
            raise
        self._transition(DeployState.SUCCESS)

    async def _resolve_chart(self) -> None:
        config = self._config
        if config.command not in (Command.UPGRADE, Command.PUSH) or not config.chart:
            return
        ref = await resolve_chart(config.chart, self._context.workdir)
        config.chart = ref.chart
        config.chart_metadata = ref.metadata

    def _resolve_value_files(self) -> None:
        workdir = self._context.workdir
        self._config.value_files = [
            str(workdir / Path(value_file).expanduser())
            for value_file in self._config.value_files
        ]

    async def _execute(self, files: TransientFiles) -> None:
        config = self._config
        config_files = await write_config_files(config, files)
        helm = Helm(config_files, helm_bin=self._context.helm_bin)

        self._transition(DeployState.REPO_SYNC)
        if config.has_repositories:
            await helm.repo_update()

        values_file: Path | None = None
        if config.has_values:
            values_file = await files.write(VALUES_SUFFIX, config.values)
        self._transition(DeployState.VALUES_PREPARED)

        if config.kubeconfig_inline:
            kubeconfig = await files.write(KUBECONFIG_SUFFIX, config.kubeconfig_inline)
            config.kubeconfig_path = str(kubeconfig)
        self._transition(DeployState.KUBECONFIG_PREPARED)

        render = list(config.value_files)
        if values_file is not None:
            render.append(str(values_file))
        await render_files(render, config.secrets, self._context.deployment)

        self._transition(DeployState.DISPATCHED)
        match config.command:
            case Command.DELETE:
                await self._delete(helm)
            case Command.PUSH:
                await self._push(helm)
            case Command.UPGRADE:
                await self._upgrade(helm, values_file)
            case _:
                raise DeployException(f"unknown command: {config.command}")

    async def _delete(self, helm: Helm) -> None:
        config = self._config
        if not config.release:
            raise MissingConfigException("release")
        await helm.delete(config.release, config.namespace, config.kubeconfig_path)
        self._transition(DeployState.DELETE_DONE)
        await self._reporter.report(DeploymentState.INACTIVE)

    async def _push(self, helm: Helm) -> None:
        config = self._config
        if not config.chart:
            raise MissingConfigException("chart")
        if not await exists(config.chart):
            raise ChartException(f"{config.chart} does not exist")
        if not (metadata := config.chart_metadata):
            raise MissingConfigException("chart metadata")
        if not config.repo.url:
            raise MissingConfigException("repo")

        chart = Path(config.chart)
        await helm.inspect_chart(chart)
        await helm.dependency_update(chart)
        await helm.package(
            chart,
            PackageOptions(version=config.chart_version, app_version=config.app_version),
        )

        package = chart / metadata.package_name(config.chart_version)
        if not await exists(package):
            raise ChartException(f"Could not find packaged chart, expected {package}")

        remote = config.repo.url
        if config.use_oci:
            remote = replace_scheme(remote)
        await helm.push(package, remote, force=config.force, cwd=chart)
        self._transition(DeployState.PUSH_DONE)
        await self._reporter.report(DeploymentState.SUCCESS)

    async def _upgrade(self, helm: Helm, values_file: Path | None) -> None:
        config = self._config
        if not config.release:
            raise MissingConfigException("release")
        if not config.chart:
            raise MissingConfigException("chart")
        await helm.upgrade(
            config.release,
            config.chart,
            UpgradeOptions.from_config(config, values_file),
        )
        self._transition(DeployState.UPGRADE_DONE)
        await self._reporter.report(DeploymentState.SUCCESS)
