import logging
import os
import tomllib
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from devshell.core.errors import DeclarationError, UnknownPlatform

logger = logging.getLogger(__name__)


class PlatformKind(Enum):
    MACOS = "macos"
    LINUX = "linux"
    OTHER = "other"

    @classmethod
    def parse(cls, value: "PlatformKind | str") -> "PlatformKind":
        """Return the PlatformKind for a member or its string value.

        Raises:
            UnknownPlatform: If the value does not name a known platform
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnknownPlatform(value)

    @property
    def path_separator(self) -> str:
        if self is PlatformKind.OTHER:
            return os.pathsep
        return ":"


class Condition(Enum):
    ALWAYS = "always"
    MACOS_ONLY = "macos-only"
    LINUX_ONLY = "linux-only"


@dataclass(frozen=True)
class DependencySpec:
    name: str

    @property
    def pname(self) -> str:
        """Package name without its attribute path (``xorg.libX11`` -> ``libX11``)."""
        return self.name.rsplit(".", 1)[-1]

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class DependencyGroup:
    name: str
    condition: Condition
    specs: tuple[DependencySpec, ...] = ()

    @classmethod
    def of(
        cls, name: str, condition: Condition, names: list[str] | tuple[str, ...]
    ) -> "DependencyGroup":
        return cls(name=name, condition=condition, specs=tuple(DependencySpec(n) for n in names))

    def names(self) -> list[str]:
        return [spec.name for spec in self.specs]

    def __iter__(self) -> Iterator[DependencySpec]:
        return iter(self.specs)

    def __len__(self) -> int:
        return len(self.specs)


BASE_INPUTS = (
    # build libraries
    "rustc",
    "cargo",
    "clippy",
    "rustfmt",
    "cmake",
    "git",
    "python3",
    "llvmPackages_10.llvm",
    "llvmPackages_10.clang",
    "valgrind",
    "pkg-config",
    "zig",
    # llvm bindings
    "libffi",
    "libxml2",
    "zlib",
    # linker
    "llvmPackages_10.lld",
    # dev tools
    "rust-analyzer",
    "ccls",
)

DARWIN_FRAMEWORKS = tuple(
    f"darwin.apple_sdk.frameworks.{framework}"
    for framework in (
        "AppKit",
        "CoreFoundation",
        "CoreServices",
        "CoreVideo",
        "Foundation",
        "Metal",
        "Security",
    )
)

LINUX_ONLY = (
    "vulkan-headers",
    "vulkan-loader",
    "vulkan-tools",
    "vulkan-validation-layers",
    "xorg.libX11",
    "xorg.libXcursor",
    "xorg.libXrandr",
    "xorg.libXi",
)

LIBRARY_INPUTS = (
    "pkgconfig",
    "llvmPackages_10.libcxx",
    "llvmPackages_10.libcxxabi",
    "libunwind",
)


class PackageSnapshot(BaseModel):
    """Pinned revision of the package repository."""

    model_config = ConfigDict(extra="forbid")

    name: str = "nixpkgs-2020-11-24"
    url: str = "https://github.com/nixos/nixpkgs/"
    ref: str = "refs/heads/nixpkgs-unstable"
    rev: str = "6625284c397b44bc9518a5a1567c1b5aae455c08"

    @field_validator("rev")
    @classmethod
    def _check_rev(cls, value: str) -> str:
        if len(value) != 40 or any(c not in "0123456789abcdef" for c in value.lower()):
            raise ValueError(f"rev must be a 40-character commit hash, got {value!r}")
        return value.lower()


class Declaration(BaseModel):
    """Static description of a development shell.

    The defaults reproduce the compiler toolchain shell: Rust and LLVM 10
    build inputs for every host, Darwin frameworks on macOS, Vulkan and X11
    libraries on Linux.
    """

    model_config = ConfigDict(extra="forbid")

    snapshot: PackageSnapshot = Field(default_factory=PackageSnapshot)
    base: list[str] = Field(default_factory=lambda: list(BASE_INPUTS))
    macos: list[str] = Field(default_factory=lambda: list(DARWIN_FRAMEWORKS))
    linux: list[str] = Field(default_factory=lambda: list(LINUX_ONLY))
    library_inputs: list[str] = Field(default_factory=lambda: list(LIBRARY_INPUTS))
    toolchain: str = Field(
        default="llvmPackages_10.llvm",
        description="Package whose prefix is exported as LLVM_SYS_<VERSION>_PREFIX",
    )
    llvm_version: str = Field(default="100", pattern=r"^[0-9]+$")
    bin_dir: str = Field(
        default="nix/bin",
        description="Project-relative directory appended to PATH",
    )

    def base_group(self) -> DependencyGroup:
        return DependencyGroup.of("base", Condition.ALWAYS, self.base)

    def macos_group(self) -> DependencyGroup:
        return DependencyGroup.of("darwin-frameworks", Condition.MACOS_ONLY, self.macos)

    def linux_group(self) -> DependencyGroup:
        return DependencyGroup.of("linux-only", Condition.LINUX_ONLY, self.linux)

    def groups(self) -> tuple[DependencyGroup, DependencyGroup, DependencyGroup]:
        return self.base_group(), self.macos_group(), self.linux_group()


def load_declaration(path: Path) -> Declaration:
    """Load a declaration from a TOML file.

    Missing keys fall back to the built-in declaration.

    Raises:
        DeclarationError: If the file is missing, malformed or invalid
    """
    path = Path(path)
    try:
        data: dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise DeclarationError(f"Declaration file not found: {path}") from e
    except tomllib.TOMLDecodeError as e:
        raise DeclarationError(f"Invalid TOML in {path}: {e}") from e

    try:
        declaration = Declaration.model_validate(data)
    except ValidationError as e:
        raise DeclarationError(f"Invalid declaration in {path}:\n{e}") from e

    logger.info(f"Loaded declaration from {path}")
    return declaration
