"""Library for writing the helm repository and registry config files.

Credentials are handed to helm through a repository config file and a registry
config file passed with `--repository-config` and `--registry-config` instead of
command line arguments. Every helm command that talks to a repository gets
both flags so helm never falls back to the config of the user running it.

The repository config lists every dependency repository and the primary
repository:
```yaml
apiVersion: ""
generated: "2024-01-01T00:00:00+00:00"
repositories:
- name: source-chart-repo
  url: oci://registry.example.com/charts
  username: admin
  password: secret
  pass_credentials_all: true
```

The registry config is a container registry auth file:
```json
{"auths": {"https://registry.example.com/charts": {"Username": "admin", "Password": "secret"}}}
```
"""

from dataclasses import dataclass, field
import datetime
import json
import logging
from pathlib import Path
from typing import Any

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
import yaml

from .config import DeployConfig, HelmRepo
from .transient import TransientFiles
from .url import replace_scheme
from .validate import check_credentials

__all__ = [
    "RepositoryEntry",
    "RepositoryConfig",
    "RegistryAuth",
    "RegistryConfig",
    "HelmConfigFiles",
    "write_config_files",
]

_LOGGER = logging.getLogger(__name__)

REPOSITORY_CONFIG_SUFFIX = "-repositories.yaml"
REGISTRY_CONFIG_SUFFIX = "-registries.json"


@dataclass
class RepositoryEntry(DataClassDictMixin):
    """A repository in the helm repository config file."""

    name: str
    url: str
    username: str | None = None
    password: str | None = None
    ca_file: str | None = field(metadata=field_options(alias="caFile"), default=None)
    cert_file: str | None = field(
        metadata=field_options(alias="certFile"), default=None
    )
    key_file: str | None = field(metadata=field_options(alias="keyFile"), default=None)
    insecure_skip_tls_verify: bool = False
    pass_credentials_all: bool = True
    """Send credentials on every request, including chart downloads."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass
class RegistryAuth(DataClassDictMixin):
    """Credentials for a registry in the container registry auth file."""

    username: str | None = field(
        metadata=field_options(alias="Username"), default=None
    )
    password: str | None = field(
        metadata=field_options(alias="Password"), default=None
    )

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


def _repo_url(repo: HelmRepo, use_oci: bool) -> str:
    url = repo.url or ""
    if use_oci:
        return replace_scheme(url)
    return url


class RepositoryConfig:
    """Generates a helm repository configuration from the configured repos."""

    def __init__(self, repos: list[HelmRepo], use_oci: bool) -> None:
        """Initialize RepositoryConfig."""
        self._repos = repos
        self._use_oci = use_oci

    @property
    def entries(self) -> list[RepositoryEntry]:
        """Return an entry for each repo with a url."""
        return [
            RepositoryEntry(
                name=repo.alias or f"dependency-{index}",
                url=_repo_url(repo, self._use_oci),
                username=repo.username,
                password=repo.password,
            )
            for index, repo in enumerate(self._repos)
            if repo.url
        ]

    @property
    def config(self) -> dict[str, Any]:
        """Return a synthetic repository config object."""
        now = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)
        return {
            "apiVersion": "",
            "generated": now.isoformat(),
            "repositories": [entry.to_dict() for entry in self.entries],
        }


class RegistryConfig:
    """Generates a registry auth configuration from the configured repos."""

    def __init__(self, primary: HelmRepo, dependencies: list[HelmRepo]) -> None:
        """Initialize RegistryConfig."""
        self._primary = primary
        self._dependencies = dependencies

    @property
    def config(self) -> dict[str, Any]:
        """Return the registry auth config object keyed by repository url."""
        auths: dict[str, dict[str, Any]] = {}
        for dep in self._dependencies:
            if dep.url and dep.has_credentials:
                auths[dep.url] = RegistryAuth(dep.username, dep.password).to_dict()
        if self._primary.url:
            auths[self._primary.url] = RegistryAuth(
                self._primary.username, self._primary.password
            ).to_dict()
        return {"auths": auths}


@dataclass(frozen=True)
class HelmConfigFiles:
    """Paths of the helm config files for a run."""

    repository_config: Path
    registry_config: Path

    @property
    def flags(self) -> list[str]:
        """Helm CLI arguments that point helm at the config files."""
        return [
            "--registry-config",
            str(self.registry_config),
            "--repository-config",
            str(self.repository_config),
        ]


async def write_config_files(
    config: DeployConfig, files: TransientFiles
) -> HelmConfigFiles:
    """Write the helm config files for the configured repositories.

    All credentials are checked before any file is written.
    """
    check_credentials(config.repo)
    for dep in config.dependencies:
        check_credentials(dep, dependency=dep.alias or dep.url or "")

    repos = [*config.dependencies, config.repo]
    repository_content = yaml.dump(
        RepositoryConfig(repos, config.use_oci).config, sort_keys=False
    )
    registry_content = json.dumps(
        RegistryConfig(config.repo, config.dependencies).config
    )

    registry_config = await files.write(REGISTRY_CONFIG_SUFFIX, registry_content)
    repository_config = await files.write(
        REPOSITORY_CONFIG_SUFFIX, repository_content
    )
    _LOGGER.debug(
        "Wrote helm config for %d repositories",
        len([repo for repo in repos if repo.url]),
    )
    return HelmConfigFiles(
        repository_config=repository_config, registry_config=registry_config
    )
