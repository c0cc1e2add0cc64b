"""Detect the host platform the development shell is resolved for."""

import platform

from devshell.core.declaration import PlatformKind

_SYSTEMS: dict[str, PlatformKind] = {
    "Darwin": PlatformKind.MACOS,
    "Linux": PlatformKind.LINUX,
}


def detect_platform(system: str | None = None) -> PlatformKind:
    """Classify the host OS; anything but Darwin and Linux is ``other``."""
    return _SYSTEMS.get(system or platform.system(), PlatformKind.OTHER)


def detect_environment() -> dict[str, str]:
    """Return host details.

    Returns a dict with keys:
        os: e.g. "Darwin", "Linux", "Windows"
        machine: e.g. "arm64", "x86_64"
        system: e.g. "x86_64-linux", "x86_64-darwin"
        platform_kind: "macos", "linux" or "other"
    """
    os_name = platform.system()
    machine = platform.machine()
    return {
        "os": os_name,
        "machine": machine,
        "system": f"{machine}-{os_name.lower()}",
        "platform_kind": detect_platform(os_name).value,
    }
