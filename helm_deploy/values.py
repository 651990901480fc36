"""Module for rendering value files before they are passed to helm.

Value files may reference secrets and the triggering deployment using the
same `${{ ... }}` syntax as the CI workflow files:
```yaml
image:
  tag: ${{ deployment.ref }}
auth:
  token: ${{ secrets.api_token }}
```

References that can't be resolved render as an empty string.
"""

from collections.abc import Iterable
import logging
from typing import Any

import aiofiles
import jinja2

from .exceptions import InputException

__all__ = [
    "render",
    "render_files",
]

_LOGGER = logging.getLogger(__name__)

# Only the variable syntax is used, block and comment delimiters are chosen
# so they don't collide with helm templates embedded in values.
_ENV = jinja2.Environment(
    variable_start_string="${{",
    variable_end_string="}}",
    block_start_string="${%",
    block_end_string="%}",
    comment_start_string="${#",
    comment_end_string="#}",
    undefined=jinja2.ChainableUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


def render(content: str, context: dict[str, Any]) -> str:
    """Render the template variables in the content."""
    return _ENV.from_string(content).render(context)


async def render_files(
    files: Iterable[str],
    secrets: dict[str, Any],
    deployment: dict[str, Any] | None,
) -> None:
    """Render each of the files in place.

    A file is only written after its content rendered successfully, so an
    error leaves it and the files rendered before it intact.
    """
    context = {"secrets": secrets, "deployment": deployment or {}}
    for file in files:
        try:
            async with aiofiles.open(file, mode="r") as f:
                content = await f.read()
        except OSError as err:
            raise InputException(f"Unable to read value file {file}: {err}") from err
        try:
            rendered = render(content, context)
        except jinja2.TemplateError as err:
            raise InputException(f"Unable to render value file {file}: {err}") from err
        if rendered == content:
            continue
        _LOGGER.debug("Rendered template variables in %s", file)
        async with aiofiles.open(file, mode="w") as f:
            await f.write(rendered)
