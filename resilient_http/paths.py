"""URL placeholder substitution and dot-path lookups."""

import re
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import quote

from .exceptions import PathParameterError

_PLACEHOLDER = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


def _split_url(url: str) -> Tuple[str, str, str]:
    """Split into (scheme://authority, path, ?query#fragment)."""
    prefix = ""
    rest = url
    scheme_end = url.find("://")
    if scheme_end != -1:
        path_start = url.find("/", scheme_end + 3)
        if path_start == -1:
            path_start = len(url)
        prefix, rest = url[:path_start], url[path_start:]

    match = re.search(r"[?#]", rest)
    if match:
        return prefix, rest[:match.start()], rest[match.start():]
    return prefix, rest, ""


def resolve_path(url: str, path_params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Replace `:name` placeholders in the path with percent-encoded values.

    Only the path is scanned, so ports and query strings are left alone.
    Entries in `path_params` without a placeholder are ignored.

    Raises:
        PathParameterError: A placeholder has no value.
    """
    params = path_params or {}
    prefix, path, suffix = _split_url(url)

    def _substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        value = params.get(name)
        if value is None:
            raise PathParameterError(name, url)
        return quote(str(value), safe="")

    return prefix + _PLACEHOLDER.sub(_substitute, path) + suffix


def get_path_value(obj: Any, path: str) -> Any:
    """Follow a dot path such as `data.errors.0.message`; None if any step is missing."""
    current = obj
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, (list, tuple)):
            if not part.lstrip("-").isdigit():
                return None
            index = int(part)
            if not -len(current) <= index < len(current):
                return None
            current = current[index]
        else:
            current = getattr(current, part, None)
    return current
