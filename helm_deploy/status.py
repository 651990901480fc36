"""Reports the state of the deployment to the CI platform.

Reporting is best effort: a missing token, a run that was not triggered by a
deployment or a failed request is logged and never changes the outcome of
the deployment.
"""

from enum import StrEnum
import logging

import httpx

from .config import ActionContext

__all__ = [
    "DeploymentState",
    "StatusReporter",
]

_LOGGER = logging.getLogger(__name__)

_TIMEOUT = 30.0


class DeploymentState(StrEnum):
    """States of a deployment status."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    INACTIVE = "inactive"
    ERROR = "error"
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"


class StatusReporter:
    """Creates deployment statuses for the triggering deployment."""

    def __init__(
        self,
        context: ActionContext,
        token: str | None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize StatusReporter."""
        self._context = context
        self._token = token
        self._client = client

    async def _post(self, url: str, payload: dict[str, str]) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
        }
        if self._client is not None:
            response = await self._client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            return
        async with httpx.AsyncClient(timeout=_TIMEOUT) as client:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()

    async def report(self, state: DeploymentState) -> None:
        """Create a deployment status, failures are only logged."""
        deployment = self._context.deployment
        if not self._token or not deployment:
            _LOGGER.debug("Not reporting deployment status %s", state)
            return
        try:
            if not self._context.repository:
                raise ValueError("the repository of the run is unknown")
            url = (
                f"{self._context.api_url}/repos/{self._context.repository}"
                f"/deployments/{deployment['id']}/statuses"
            )
            payload = {"state": str(state)}
            if checks_url := self._context.checks_url:
                payload["log_url"] = checks_url
                payload["target_url"] = checks_url
            await self._post(url, payload)
        except Exception as err:  # pylint: disable=broad-except
            _LOGGER.warning("failed to set deployment status: %s", err)
            return
        _LOGGER.info("Set deployment status to %s", state)
