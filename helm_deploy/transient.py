"""A context manager that owns the transient files of a run.

Credential files, the inline kubeconfig and the values file are created with
unique names and are removed when the context exits, whether the body
succeeded or raised. A hard kill of the process skips the removal.
"""

import logging
import os
from pathlib import Path
import tempfile
from types import TracebackType

import aiofiles
import aiofiles.os

__all__ = [
    "FILE_MODE",
    "TransientFiles",
]

_LOGGER = logging.getLogger(__name__)

# Readable and writable by the helm process even when it runs as another user
FILE_MODE = 0o666


class TransientFiles:
    """Creates files that are deleted when the context exits."""

    def __init__(self, tmp_dir: Path | None = None) -> None:
        """Initialize TransientFiles."""
        self._tmp_dir = tmp_dir
        self._paths: list[Path] = []

    @property
    def paths(self) -> list[Path]:
        """Files currently owned by the context."""
        return list(self._paths)

    def create(self, suffix: str) -> Path:
        """Create an empty file with a unique name."""
        fd, name = tempfile.mkstemp(
            suffix=suffix, prefix="helm-deploy-", dir=self._tmp_dir
        )
        try:
            os.fchmod(fd, FILE_MODE)
        finally:
            os.close(fd)
        path = Path(name)
        self._paths.append(path)
        return path

    async def write(self, suffix: str, content: str) -> Path:
        """Create a file with the specified content."""
        path = self.create(suffix)
        async with aiofiles.open(path, mode="w") as f:
            await f.write(content)
        return path

    async def remove(self) -> None:
        """Remove all files, failures are logged and not raised."""
        while self._paths:
            path = self._paths.pop()
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                _LOGGER.debug("Transient file %s already removed", path)
            except OSError as err:
                _LOGGER.warning("Failed to remove transient file %s: %s", path, err)

    async def __aenter__(self) -> "TransientFiles":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        _LOGGER.debug("Removing %d transient files", len(self._paths))
        await self.remove()
