"""Module for normalizing the raw action inputs into a `DeployConfig`.

Inputs arrive as strings from the CI runner, or as already structured values
when read from an inputs file. Each structured field is parsed with the same
ladder: an already structured value is used as is, a string is decoded as YAML
(a superset of JSON) and a scalar is wrapped or replaced by an empty default.

Every parser accepts its own output, so normalizing twice is a no-op.
"""

from collections.abc import Mapping
import json
import logging
from typing import Any

import yaml

from .config import (
    COMMAND_ALIASES,
    DEFAULT_NAMESPACE,
    DEFAULT_REPO_ALIAS,
    EMPTY_VALUES,
    Command,
    DeployConfig,
    HelmRepo,
)
from .exceptions import InputException

__all__ = [
    "INPUTS",
    "inputs_from_environ",
    "parse_inputs",
    "parse_bool",
    "parse_command",
    "parse_values",
    "parse_value_files",
    "parse_dependencies",
    "parse_secrets",
]

_LOGGER = logging.getLogger(__name__)

INPUTS = [
    "command",
    "release",
    "namespace",
    "chart",
    "chart-version",
    "app-version",
    "repo",
    "repo-alias",
    "repo-username",
    "repo-password",
    "use-oci",
    "values",
    "value-files",
    "secrets",
    "dependencies",
    "timeout",
    "dry-run",
    "atomic",
    "force",
    "kubeconfig-path",
    "kubeconfig-inline",
    "github-token",
]

# Older names of inputs, used when the current name is not supplied
LEGACY_INPUTS = {
    "repo-name": "repo-alias",
    "version": "chart-version",
}

_TRUE = ("true", "yes")
_FALSE = ("false", "no")


def _env_name(name: str) -> str:
    return f"INPUT_{name.replace(' ', '_').upper()}"


def inputs_from_environ(environ: Mapping[str, str]) -> dict[str, str]:
    """Return the action inputs supplied by the CI runner environment."""
    inputs: dict[str, str] = {}
    for name in [*INPUTS, *LEGACY_INPUTS]:
        if (value := environ.get(_env_name(name))) is not None:
            inputs[name] = value
    return inputs


def _is_empty(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, str):
        return not raw.strip()
    return False


def _optional_str(raw: Any) -> str | None:
    if _is_empty(raw):
        return None
    return str(raw).strip()


def _decode(name: str, raw: Any) -> Any:
    """Decode a string holding a YAML or JSON document."""
    if not isinstance(raw, str):
        return raw
    if not raw.strip():
        return None
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as err:
        raise InputException(f"{name} must be valid YAML or JSON") from err


def parse_bool(name: str, raw: Any, default: bool) -> bool:
    """Parse a boolean input, case insensitive."""
    if isinstance(raw, bool):
        return raw
    if _is_empty(raw):
        return default
    value = str(raw).strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise InputException(
        f"{name} must be one of true, yes, false or no but got '{raw}'"
    )


def parse_command(raw: Any) -> Command | str | None:
    """Parse the command, unknown commands are returned verbatim."""
    if isinstance(raw, Command):
        return raw
    if not (value := _optional_str(raw)):
        return None
    value = value.lower()
    if value in COMMAND_ALIASES:
        return COMMAND_ALIASES[value]
    try:
        return Command(value)
    except ValueError:
        return value


def parse_values(raw: Any) -> str:
    """Parse inline values into a single serialized document."""
    if _is_empty(raw):
        return EMPTY_VALUES
    if isinstance(raw, str):
        return raw
    return json.dumps(raw)


def parse_value_files(raw: Any) -> list[str]:
    """Parse a list of value files.

    A string holding a JSON array is decoded, any other string is a single
    file name.
    """
    files = raw
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            files = json.loads(raw)
        except ValueError:
            files = [raw]
    if not isinstance(files, list):
        return []
    return [str(f) for f in files if f]


def _parse_repo(name: str, doc: Any) -> HelmRepo:
    if isinstance(doc, HelmRepo):
        return doc
    if not isinstance(doc, dict):
        raise InputException(f"{name} entries must be objects but got '{doc}'")
    return HelmRepo(
        url=_optional_str(doc.get("url") or doc.get("repository")),
        alias=_optional_str(doc.get("alias") or doc.get("name")),
        username=_optional_str(doc.get("username")),
        password=_optional_str(doc.get("password")),
    )


def parse_dependencies(raw: Any) -> list[HelmRepo]:
    """Parse the dependency repositories.

    A single object is treated as a list with one element.
    """
    deps = _decode("dependencies", raw)
    if isinstance(deps, (dict, HelmRepo)):
        deps = [deps]
    if not isinstance(deps, list):
        return []
    return [_parse_repo("dependencies", dep) for dep in deps]


def parse_secrets(raw: Any) -> dict[str, Any]:
    """Parse the secrets available to value file templates."""
    secrets = _decode("secrets", raw)
    if secrets is None:
        return {}
    if not isinstance(secrets, dict):
        _LOGGER.warning("Ignoring secrets, expected a mapping of names to values")
        return {}
    return dict(secrets)


def _parse_kubeconfig(raw: Any) -> str | None:
    if _is_empty(raw):
        return None
    if isinstance(raw, str):
        return raw
    return yaml.safe_dump(raw, sort_keys=False)


def _get(inputs: Mapping[str, Any], name: str) -> Any:
    if (value := inputs.get(name)) is not None and not _is_empty(value):
        return value
    for legacy, current in LEGACY_INPUTS.items():
        if current == name and (value := inputs.get(legacy)) is not None:
            return value
    return inputs.get(name)


def parse_inputs(inputs: Mapping[str, Any]) -> DeployConfig:
    """Parse the raw action inputs into a DeployConfig.

    This only checks the format of each input, see `validate` for checks
    that span multiple inputs.
    """
    unknown = set(inputs) - set(INPUTS) - set(LEGACY_INPUTS)
    if unknown:
        _LOGGER.warning("Ignoring unknown inputs: %s", ", ".join(sorted(unknown)))
    return DeployConfig(
        command=parse_command(_get(inputs, "command")),
        release=_optional_str(_get(inputs, "release")),
        namespace=_optional_str(_get(inputs, "namespace")) or DEFAULT_NAMESPACE,
        chart=_optional_str(_get(inputs, "chart")),
        chart_version=_optional_str(_get(inputs, "chart-version")),
        app_version=_optional_str(_get(inputs, "app-version")),
        repo=HelmRepo(
            url=_optional_str(_get(inputs, "repo")),
            alias=_optional_str(_get(inputs, "repo-alias")) or DEFAULT_REPO_ALIAS,
            username=_optional_str(_get(inputs, "repo-username")),
            password=_optional_str(_get(inputs, "repo-password")),
        ),
        use_oci=parse_bool("use-oci", _get(inputs, "use-oci"), default=True),
        values=parse_values(_get(inputs, "values")),
        value_files=parse_value_files(_get(inputs, "value-files")),
        secrets=parse_secrets(_get(inputs, "secrets")),
        dependencies=parse_dependencies(_get(inputs, "dependencies")),
        timeout=_optional_str(_get(inputs, "timeout")),
        dry_run=parse_bool("dry-run", _get(inputs, "dry-run"), default=False),
        atomic=parse_bool("atomic", _get(inputs, "atomic"), default=True),
        force=parse_bool("force", _get(inputs, "force"), default=False),
        kubeconfig_path=_optional_str(_get(inputs, "kubeconfig-path")),
        kubeconfig_inline=_parse_kubeconfig(_get(inputs, "kubeconfig-inline")),
        github_token=_optional_str(_get(inputs, "github-token")),
    )
