"""Shared fixtures for devshell tests."""

import hashlib
import os
from pathlib import Path

import pytest

from devshell.core.declaration import Condition, DependencyGroup

STORE_PACKAGES = [
    "llvm-10.0.1",
    "pkgconfig-0.29.2",
    "libcxx-10.0.1",
    "libcxxabi-10.0.1",
    "libunwind-10.0.1",
    "vulkan-loader-1.2.162.0",
    "libX11-1.6.12",
]


def store_entry(name: str) -> str:
    return f"{hashlib.md5(name.encode()).hexdigest()}-{name}"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host DEVSHELL_* settings out of tests."""
    for key in list(os.environ):
        if key.startswith("DEVSHELL_"):
            monkeypatch.delenv(key)


@pytest.fixture
def groups() -> tuple[DependencyGroup, DependencyGroup, DependencyGroup]:
    """base = [A, B], mac = [C], linux = [D, E]."""
    return (
        DependencyGroup.of("base", Condition.ALWAYS, ["A", "B"]),
        DependencyGroup.of("mac", Condition.MACOS_ONLY, ["C"]),
        DependencyGroup.of("linux", Condition.LINUX_ONLY, ["D", "E"]),
    )


@pytest.fixture
def store(tmp_path: Path) -> Path:
    """A package store with the toolchain and library packages."""
    store_dir = tmp_path / "store"
    store_dir.mkdir()
    for name in STORE_PACKAGES:
        (store_dir / store_entry(name) / "lib").mkdir(parents=True)
    return store_dir
