"""Helpers for rewriting repository urls."""

import re
from urllib.parse import urlsplit

from .exceptions import InputException

__all__ = [
    "OCI_SCHEME",
    "replace_scheme",
]

OCI_SCHEME = "oci"

_SCHEME_RE = re.compile(r"^[^:/]+:")


def replace_scheme(url: str, scheme: str = OCI_SCHEME) -> str:
    """Return the url with its scheme replaced by the specified scheme.

    A url without a scheme is treated as a bare host and gets `<scheme>://`
    prepended. A url that already uses the scheme is returned unchanged.
    """
    if "://" not in url:
        return f"{scheme}://{url.lstrip('/')}"
    old = urlsplit(url).scheme
    if old == scheme:
        return url
    result = _SCHEME_RE.sub(f"{scheme}:", url, count=1)
    if urlsplit(result).scheme == old:
        raise InputException(f"Unable to replace scheme of {url} with {scheme}")
    return result
