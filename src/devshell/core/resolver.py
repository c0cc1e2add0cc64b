"""Configuration resolver for development shells.

Turns a platform and three dependency groups into the final dependency set,
and a fixed list of rules into the environment exported by the shell.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from string import Template

from devshell.core.declaration import DependencySpec, PlatformKind
from devshell.core.errors import MissingTemplateSource

logger = logging.getLogger(__name__)

DependencySet = tuple[DependencySpec, ...]
ResolvedEnvironment = dict[str, str]


def _references(text: str) -> list[str]:
    return Template(text).get_identifiers()


def _expand(rule_name: str, text: str, resolved: Mapping[str, str]) -> str:
    for reference in _references(text):
        if reference not in resolved:
            raise MissingTemplateSource(rule_name, reference)
    return Template(text).substitute(resolved)


class Rule(ABC):
    """A named rule producing one environment variable."""

    name: str

    @abstractmethod
    def evaluate(
        self,
        resolved: Mapping[str, str],
        prior_env: Mapping[str, str],
        separator: str,
    ) -> str:
        """Compute the variable's value.

        Args:
            resolved: Values produced by the rules evaluated before this one
            prior_env: Externally observed environment before resolution
            separator: Path-list separator of the target platform
        """


@dataclass(frozen=True)
class LiteralRule(Rule):
    name: str
    value: str

    def evaluate(
        self,
        resolved: Mapping[str, str],
        prior_env: Mapping[str, str],
        separator: str,
    ) -> str:
        return self.value


@dataclass(frozen=True)
class TemplateRule(Rule):
    """Substitute one previously resolved variable into a template.

    The reference uses shell syntax, ``$NAME`` or ``${NAME}``.
    """

    name: str
    template: str

    def __post_init__(self) -> None:
        references = set(_references(self.template))
        if len(references) != 1:
            raise ValueError(
                f"Template for {self.name} must reference exactly one variable, "
                f"found {sorted(references)}"
            )

    @property
    def source(self) -> str:
        return _references(self.template)[0]

    def evaluate(
        self,
        resolved: Mapping[str, str],
        prior_env: Mapping[str, str],
        separator: str,
    ) -> str:
        return _expand(self.name, self.template, resolved)


@dataclass(frozen=True)
class PathListRule(Rule):
    """Join path entries with the platform separator.

    With ``inherit`` set, a non-empty prior value of the same variable is kept
    in front and the entries are appended after it. Repeated resolution
    appends again; nothing is deduplicated.
    """

    name: str
    entries: tuple[str, ...] = field(default_factory=tuple)
    inherit: bool = False

    def evaluate(
        self,
        resolved: Mapping[str, str],
        prior_env: Mapping[str, str],
        separator: str,
    ) -> str:
        segments = [_expand(self.name, entry, resolved) for entry in self.entries]
        segments = [segment for segment in segments if segment]
        if self.inherit:
            prior = prior_env.get(self.name, "")
            if prior:
                segments.insert(0, prior)
        return separator.join(segments)


def _literal(path: str | Path) -> str:
    return str(path).replace("$", "$$")


def default_rules(
    toolchain_prefix: str | Path,
    library_dirs: Iterable[str | Path],
    bin_dir: str | Path,
    llvm_version: str = "100",
) -> list[Rule]:
    """Build the fixed rule set exported by the development shell.

    Order matters: LD_LIBRARY_PATH reads APPEND_LIBRARY_PATH. Paths are
    escaped so a literal "$" in a directory name is never a reference.
    """
    return [
        LiteralRule(f"LLVM_SYS_{llvm_version}_PREFIX", str(toolchain_prefix)),
        PathListRule("APPEND_LIBRARY_PATH", tuple(_literal(d) for d in library_dirs)),
        PathListRule("LD_LIBRARY_PATH", ("${APPEND_LIBRARY_PATH}",), inherit=True),
        PathListRule("PATH", (_literal(bin_dir),), inherit=True),
    ]


def select_platform_group(
    platform: PlatformKind | str,
    mac_group: Iterable[DependencySpec],
    linux_group: Iterable[DependencySpec],
) -> tuple[DependencySpec, ...]:
    """Return the platform-conditional group active for ``platform``.

    Raises:
        UnknownPlatform: If platform is not a known PlatformKind
    """
    kind = PlatformKind.parse(platform)
    branches: dict[PlatformKind, Iterable[DependencySpec]] = {
        PlatformKind.MACOS: mac_group,
        PlatformKind.LINUX: linux_group,
        PlatformKind.OTHER: (),
    }
    return tuple(branches[kind])


def evaluate_rules(
    rules: Sequence[Rule],
    prior_env: Mapping[str, str] | None = None,
    separator: str = ":",
) -> ResolvedEnvironment:
    """Evaluate rules in order, each seeing only the values before it.

    Raises:
        MissingTemplateSource: If a rule references a variable not resolved yet
        ValueError: If two rules share a name
    """
    prior_env = prior_env or {}
    resolved: ResolvedEnvironment = {}
    for rule in rules:
        if rule.name in resolved:
            raise ValueError(f"Duplicate rule for {rule.name}")
        resolved[rule.name] = rule.evaluate(resolved, prior_env, separator)
        logger.debug(f"{rule.name}={resolved[rule.name]}")
    return resolved


def resolve(
    platform: PlatformKind | str,
    base_group: Iterable[DependencySpec],
    mac_group: Iterable[DependencySpec],
    linux_group: Iterable[DependencySpec],
    rules: Sequence[Rule] = (),
    prior_env: Mapping[str, str] | None = None,
) -> tuple[DependencySet, ResolvedEnvironment]:
    """Resolve the dependency set and environment for a platform.

    Args:
        platform: Target platform
        base_group: Dependencies included on every platform
        mac_group: Dependencies included only on macOS
        linux_group: Dependencies included only on Linux
        rules: Environment rules, evaluated in order
        prior_env: Environment observed before resolution, read by inheriting rules

    Returns:
        The ordered dependency set and the resolved environment

    Raises:
        UnknownPlatform: If platform is not a known PlatformKind
        MissingTemplateSource: If a rule references a variable not resolved earlier
    """
    kind = PlatformKind.parse(platform)
    selected = select_platform_group(kind, mac_group, linux_group)
    dependencies: DependencySet = tuple(base_group) + selected
    logger.debug(f"Platform {kind.value}: {len(dependencies)} dependencies")

    environment = evaluate_rules(rules, prior_env, kind.path_separator)
    return dependencies, environment
