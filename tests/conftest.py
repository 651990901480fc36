"""Test fixtures for helm-deploy."""

from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from helm_deploy.command import Command
from helm_deploy.config import ActionContext
from helm_deploy.status import StatusReporter

# Transient files are replaced with these names in recorded commands
PLACEHOLDERS = {
    "-registries.json": "<registry-config>",
    "-repositories.yaml": "<repository-config>",
    "-values.yml": "<values>",
    "-kubeconfig.yml": "<kubeconfig>",
}

CHART_YAML = """\
apiVersion: v2
name: mychart
description: A Helm chart for Kubernetes
type: application
version: 0.1.0
appVersion: "1.16.0"
"""


def _placeholder(arg: str) -> str:
    for suffix, name in PLACEHOLDERS.items():
        if Path(arg).name.startswith("helm-deploy-") and arg.endswith(suffix):
            return name
    return arg


@dataclass
class HelmRecorder:
    """Records helm commands instead of running them."""

    calls: list[list[str]] = field(default_factory=list)
    cwds: list[Path | None] = field(default_factory=list)
    files: dict[str, str] = field(default_factory=dict)
    """Contents of the transient files when first passed to helm."""

    fail_on: str | None = None
    """Raise the command exception when running this subcommand."""

    async def run(self, cmd: Command) -> str:
        for arg in cmd.cmd:
            if (name := _placeholder(arg)) != arg and name not in self.files:
                self.files[name] = Path(arg).read_text()
        self.calls.append([_placeholder(arg) for arg in cmd.cmd])
        self.cwds.append(cmd.cwd)
        if self.fail_on and cmd.cmd[1] == self.fail_on:
            raise cmd.exc(f"Command '{cmd}' failed with return code 1")
        return ""


@pytest.fixture(name="helm_recorder")
def helm_recorder_fixture() -> Generator[HelmRecorder, None, None]:
    """Fixture that records the helm commands of a test."""
    recorder = HelmRecorder()
    with patch("helm_deploy.helm.command.run", side_effect=recorder.run):
        yield recorder


@pytest.fixture(name="data_home")
def data_home_fixture(tmp_path: Path) -> Path:
    """Directory holding the transient files of a run."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture(name="event")
def event_fixture() -> dict[str, Any]:
    """The event payload that triggered the run."""
    return {}


@pytest.fixture(name="context")
def context_fixture(tmp_path: Path, data_home: Path, event: dict[str, Any]) -> ActionContext:
    """Fixture for the ActionContext of a run."""
    return ActionContext(
        event=event,
        repository="octo-org/octo-repo",
        sha="ffac537e6cbbf934b08745a378932722df287a53",
        workdir=tmp_path,
        data_home=data_home,
    )


@pytest.fixture(name="reporter")
def reporter_fixture(context: ActionContext) -> StatusReporter:
    """A StatusReporter without a token, which reports nothing."""
    return StatusReporter(context, token=None)


@pytest.fixture(name="chart_dir")
def chart_dir_fixture(tmp_path: Path) -> Path:
    """A local chart directory."""
    path = tmp_path / "my-charts" / "mychart"
    path.mkdir(parents=True)
    (path / "Chart.yaml").write_text(CHART_YAML)
    return path
