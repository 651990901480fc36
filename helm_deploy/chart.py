"""Library for resolving the chart reference of a deployment.

A chart may be referenced in one of three ways:
- A local directory containing a `Chart.yaml` (or the `Chart.yaml` itself)
- A `<repo-alias>/<chart-name>` reference to a chart in a configured repository
- An absolute url such as `oci://registry.example.com/charts/podinfo`

A local path always wins when it exists on disk, even if the string would
also be a valid remote reference.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
from typing import Any
from urllib.parse import urlsplit

import aiofiles
from aiofiles.ospath import isdir, isfile
from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
import yaml

from .exceptions import ChartException

__all__ = [
    "CHART_FILE",
    "ChartMetadata",
    "ChartReference",
    "resolve_chart",
    "is_remote_reference",
]

_LOGGER = logging.getLogger(__name__)

CHART_FILE = "Chart.yaml"

_SHORTHAND_RE = re.compile(r"^[A-Za-z0-9][\w.-]*/[A-Za-z0-9][\w.-]*$")


@dataclass
class ChartMetadata(DataClassDictMixin):
    """The contents of a chart's Chart.yaml.

    Only the name and version are used when packaging, the rest is kept
    for logging.
    """

    name: str
    """The name of the chart."""

    version: str
    """The SemVer 2 version of the chart."""

    api_version: str | None = field(
        metadata=field_options(alias="apiVersion"), default=None
    )
    app_version: str | None = field(
        metadata=field_options(alias="appVersion"), default=None
    )
    description: str | None = None
    type: str | None = None

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ChartMetadata":
        """Parse the ChartMetadata from the Chart.yaml document."""
        if not (name := doc.get("name")):
            raise ChartException(f"Invalid {CHART_FILE} missing name: {doc}")
        if not (version := doc.get("version")):
            raise ChartException(f"Invalid {CHART_FILE} missing version: {doc}")
        return cls.from_dict({**doc, "name": str(name), "version": str(version)})

    def package_name(self, version: str | None = None) -> str:
        """Return the file name of the archive built by `helm package`."""
        return f"{self.name}-{version or self.version}.tgz"

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass(frozen=True)
class ChartReference:
    """A resolved chart reference."""

    chart: str
    """The chart argument passed to helm."""

    metadata: ChartMetadata | None = None
    """The chart metadata, only available for local charts."""

    @property
    def is_local(self) -> bool:
        """Return true if the chart is a local directory."""
        return self.metadata is not None


def is_remote_reference(chart: str) -> bool:
    """Return true if the chart is a valid repository reference or url."""
    if _SHORTHAND_RE.match(chart):
        return True
    parts = urlsplit(chart)
    return bool(parts.scheme and parts.netloc)


async def _read_metadata(chart_dir: Path) -> ChartMetadata:
    """Read and parse the Chart.yaml inside the chart directory."""
    chart_file = chart_dir / CHART_FILE
    if not await isfile(chart_file):
        raise ChartException(f"Chart directory {chart_dir} has no {CHART_FILE}")
    async with aiofiles.open(chart_file, mode="r") as f:
        content = await f.read()
    try:
        doc = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise ChartException(f"Unable to parse {chart_file}: {err}") from err
    if not isinstance(doc, dict):
        raise ChartException(f"Invalid {chart_file}, expected a mapping")
    return ChartMetadata.parse_doc(doc)


async def resolve_chart(chart: str, workdir: Path) -> ChartReference:
    """Classify the chart and load its metadata when it is a local directory.

    Relative paths are resolved against the workdir.
    """
    path = workdir / Path(chart).expanduser()
    try:
        path = path.resolve(strict=True)
    except OSError as err:
        if is_remote_reference(chart):
            _LOGGER.debug("Using remote chart reference %s", chart)
            return ChartReference(chart=chart)
        raise ChartException(f"{chart} does not exist: {err}") from err

    if path.name == CHART_FILE:
        path = path.parent
    if not await isdir(path):
        raise ChartException(f"Chart path {path} is not a directory")
    metadata = await _read_metadata(path)
    _LOGGER.info(
        "Using local chart %s version %s from %s",
        metadata.name,
        metadata.version,
        path,
    )
    return ChartReference(chart=str(path), metadata=metadata)
