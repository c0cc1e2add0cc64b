"""Utility functions and helpers."""

from devshell.utils.environment import detect_environment, detect_platform
from devshell.utils.exporter import apply_environment, render_exports

__all__ = [
    "detect_environment",
    "detect_platform",
    "apply_environment",
    "render_exports",
]
