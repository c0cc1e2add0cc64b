"""Render a resolved environment for a shell, or apply it to a process."""

import json
import logging
import os
import shlex
from collections.abc import Mapping, MutableMapping
from typing import Literal

logger = logging.getLogger(__name__)

ExportFormat = Literal["shell", "json", "dotenv"]


def render_exports(environment: Mapping[str, str], fmt: ExportFormat = "shell") -> str:
    """Render variables in evaluation order (json is sorted by key).

    Raises:
        ValueError: If fmt is not a known format
    """
    if fmt == "shell":
        return "\n".join(
            f"export {name}={shlex.quote(value)}" for name, value in environment.items()
        )
    if fmt == "dotenv":
        return "\n".join(f"{name}={value}" for name, value in environment.items())
    if fmt == "json":
        return json.dumps(dict(environment), indent=2, sort_keys=True)
    raise ValueError(f"Unknown export format: {fmt!r}")


def apply_environment(
    environment: Mapping[str, str],
    target: MutableMapping[str, str] | None = None,
) -> MutableMapping[str, str]:
    """Write resolved values into target (default: os.environ) and return it."""
    if target is None:
        target = os.environ
    for name, value in environment.items():
        target[name] = value
    logger.debug(f"Applied {len(environment)} variables")
    return target
