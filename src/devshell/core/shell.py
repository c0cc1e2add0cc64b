import logging
from collections.abc import Mapping
from pathlib import Path

from devshell.core.declaration import (
    Declaration,
    DependencyGroup,
    DependencySpec,
    PlatformKind,
)
from devshell.core.errors import MissingLocator
from devshell.core.locator import PackageLocator, library_path
from devshell.core.resolver import (
    DependencySet,
    ResolvedEnvironment,
    Rule,
    default_rules,
    resolve,
    select_platform_group,
)

logger = logging.getLogger(__name__)


class DevShell:
    """A declaration bound to a package locator and a project directory."""

    def __init__(
        self,
        declaration: Declaration | None = None,
        locator: PackageLocator | None = None,
        project_dir: Path | None = None,
    ) -> None:
        """Initialize DevShell.

        Args:
            declaration: Shell declaration. If None, uses the built-in one.
            locator: Package locator used to find toolchain and library prefixes.
                Required by rules(), resolve() and locate_all().
            project_dir: Directory the declaration's bin_dir is relative to
                (defaults to cwd)
        """
        self.declaration = declaration or Declaration()
        self.locator = locator
        self.project_dir = Path(project_dir or Path.cwd())

    def groups(self) -> tuple[DependencyGroup, DependencyGroup, DependencyGroup]:
        return self.declaration.groups()

    def dependencies(self, platform: PlatformKind | str) -> DependencySet:
        base, mac, linux = self.groups()
        return tuple(base) + select_platform_group(platform, mac, linux)

    def library_inputs(self, platform: PlatformKind | str) -> list[DependencySpec]:
        """Packages whose lib/ directories make up APPEND_LIBRARY_PATH.

        The linux-only group is added on linux only; macOS gets no extra
        entries in its place.
        """
        kind = PlatformKind.parse(platform)
        inputs = [DependencySpec(name) for name in self.declaration.library_inputs]
        if kind is PlatformKind.LINUX:
            inputs.extend(self.declaration.linux_group())
        return inputs

    def _require_locator(self) -> PackageLocator:
        if self.locator is None:
            raise MissingLocator("DevShell has no package locator")
        return self.locator

    def rules(self, platform: PlatformKind | str) -> list[Rule]:
        """Locate the toolchain and libraries and build the environment rules.

        Raises:
            UnknownPlatform: If platform is not a known PlatformKind
            UnresolvedExternalDependency: If a package cannot be located
        """
        locator = self._require_locator()
        toolchain = locator.locate(DependencySpec(self.declaration.toolchain))
        library_dirs = [
            library_path(locator.locate(spec)) for spec in self.library_inputs(platform)
        ]
        return default_rules(
            toolchain_prefix=toolchain,
            library_dirs=library_dirs,
            bin_dir=self.project_dir / self.declaration.bin_dir,
            llvm_version=self.declaration.llvm_version,
        )

    def resolve(
        self,
        platform: PlatformKind | str,
        prior_env: Mapping[str, str] | None = None,
    ) -> tuple[DependencySet, ResolvedEnvironment]:
        kind = PlatformKind.parse(platform)
        base, mac, linux = self.groups()
        logger.info(f"Resolving development shell for {kind.value}")
        return resolve(kind, base, mac, linux, self.rules(kind), prior_env)

    def locate_all(self, platform: PlatformKind | str) -> dict[str, Path]:
        """Map each dependency to its installation prefix.

        Raises:
            UnresolvedExternalDependency: On the first dependency that cannot be located
        """
        locator = self._require_locator()
        return {spec.name: locator.locate(spec) for spec in self.dependencies(platform)}
