"""Tests for reporting the deployment status."""

from collections.abc import AsyncGenerator
import json
import logging
from pathlib import Path

import httpx
import pytest

from helm_deploy.config import ActionContext
from helm_deploy.status import DeploymentState, StatusReporter

CHECKS_URL = (
    "https://github.com/octo-org/octo-repo/commit/"
    "ffac537e6cbbf934b08745a378932722df287a53/checks"
)


@pytest.fixture(name="event")
def event_fixture() -> dict:
    """The event of a run triggered by a deployment."""
    return {"deployment": {"id": 42, "ref": "main"}}


@pytest.fixture(name="requests")
def requests_fixture() -> list[httpx.Request]:
    """Requests received by the mock API."""
    return []


@pytest.fixture(name="status_code")
def status_code_fixture() -> int:
    """Status code returned by the mock API."""
    return 201


@pytest.fixture(name="client")
async def client_fixture(
    requests: list[httpx.Request], status_code: int
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """An httpx client backed by a mock API."""

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield client


async def test_report(
    context: ActionContext, client: httpx.AsyncClient, requests: list[httpx.Request]
) -> None:
    """Test creating a deployment status."""
    reporter = StatusReporter(context, "ghs_token", client=client)
    await reporter.report(DeploymentState.SUCCESS)

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == (
        "https://api.github.com/repos/octo-org/octo-repo/deployments/42/statuses"
    )
    assert request.headers["Authorization"] == "Bearer ghs_token"
    assert request.headers["Accept"] == "application/vnd.github+json"
    assert json.loads(request.content) == {
        "state": "success",
        "log_url": CHECKS_URL,
        "target_url": CHECKS_URL,
    }


async def test_no_token(
    context: ActionContext, client: httpx.AsyncClient, requests: list[httpx.Request]
) -> None:
    """Test nothing is reported without a token."""
    reporter = StatusReporter(context, None, client=client)
    await reporter.report(DeploymentState.PENDING)
    assert not requests


@pytest.mark.parametrize("event", [{}, {"push": {"ref": "main"}}])
async def test_no_deployment(
    context: ActionContext, client: httpx.AsyncClient, requests: list[httpx.Request]
) -> None:
    """Test nothing is reported for a run not triggered by a deployment."""
    reporter = StatusReporter(context, "ghs_token", client=client)
    await reporter.report(DeploymentState.PENDING)
    assert not requests


async def test_no_repository(
    tmp_path: Path,
    client: httpx.AsyncClient,
    requests: list[httpx.Request],
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test a run without a repository logs a warning."""
    context = ActionContext(event={"deployment": {"id": 42}}, workdir=tmp_path)
    reporter = StatusReporter(context, "ghs_token", client=client)
    await reporter.report(DeploymentState.FAILURE)
    assert not requests
    assert "failed to set deployment status" in caplog.text


@pytest.mark.parametrize("status_code", [401, 500])
async def test_api_error(
    context: ActionContext,
    client: httpx.AsyncClient,
    requests: list[httpx.Request],
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test an API error is logged and not raised."""
    caplog.set_level(logging.INFO)
    reporter = StatusReporter(context, "ghs_token", client=client)
    await reporter.report(DeploymentState.INACTIVE)
    assert len(requests) == 1
    assert "failed to set deployment status" in caplog.text
    assert "Set deployment status" not in caplog.text


async def test_connection_error(
    context: ActionContext, caplog: pytest.LogCaptureFixture
) -> None:
    """Test a connection error is logged and not raised."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        reporter = StatusReporter(context, "ghs_token", client=client)
        await reporter.report(DeploymentState.ERROR)
    assert "connection refused" in caplog.text
