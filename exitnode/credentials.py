"""Resolving credentials from a value, a file or an environment variable."""

from __future__ import annotations

import os
from pathlib import Path

from exitnode.core.exceptions import ConfigurationError


def resolve_secret(
    value: str | None = None,
    file: str | Path | None = None,
    env_var: str | None = None,
    *,
    required: bool = True,
    what: str = "access token",
) -> str:
    """Return the first non-empty of ``value``, the contents of ``file``, or ``$env_var``.

    File contents and environment values are stripped of surrounding
    whitespace. Raises ConfigurationError if ``file`` cannot be read, or if
    nothing yields a value and ``required`` is set.
    """
    if value:
        return value

    if file:
        path = Path(file).expanduser()
        try:
            content = path.read_text().strip()
        except OSError as e:
            raise ConfigurationError(f"cannot read {what} from {path}: {e}") from e
        if content:
            return content

    if env_var and (env_value := os.environ.get(env_var, "").strip()):
        return env_value

    if required:
        sources = ["a value"]
        if file is not None:
            sources.append(f"a file ({file})")
        if env_var:
            sources.append(f"${env_var}")
        raise ConfigurationError(f"no {what} given: set {' or '.join(sources)}")
    return ""
