"""Locate declared packages in the package repository's store."""

import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from devshell.core.declaration import DependencySpec
from devshell.core.errors import UnresolvedExternalDependency

logger = logging.getLogger(__name__)

# <32-char hash>-<pname>[-<version>]
_STORE_ENTRY = re.compile(r"^[0-9a-z]{32}-(?P<rest>.+)$")


class PackageLocator(Protocol):
    def locate(self, spec: DependencySpec) -> Path: ...


def library_path(prefix: Path) -> Path:
    return prefix / "lib"


class MappingLocator:
    """Locator backed by an explicit name -> prefix mapping."""

    def __init__(self, prefixes: Mapping[str, str | Path]) -> None:
        self.prefixes = {name: Path(prefix) for name, prefix in prefixes.items()}

    def locate(self, spec: DependencySpec) -> Path:
        for key in (spec.name, spec.pname):
            if key in self.prefixes:
                return self.prefixes[key]
        logger.warning(f"No prefix configured for {spec}")
        raise UnresolvedExternalDependency(spec, "no prefix configured")


class StoreLocator:
    """Find packages in a store directory of ``<hash>-<name>-<version>`` entries.

    Overrides are consulted first. When several store entries match, the main
    output (no suffix such as "-dev") wins over split outputs, then the highest
    version compared component by component, numeric parts as integers.
    """

    def __init__(
        self,
        store_dir: Path,
        overrides: Mapping[str, str | Path] | None = None,
    ) -> None:
        self.store_dir = Path(store_dir)
        self.overrides = MappingLocator(overrides or {})
        self._entries: list[str] | None = None

    def _list_entries(self) -> list[str]:
        if self._entries is None:
            if not self.store_dir.is_dir():
                self._entries = []
            else:
                self._entries = sorted(
                    entry.name
                    for entry in self.store_dir.iterdir()
                    if not entry.name.endswith(".drv")
                )
        return self._entries

    @staticmethod
    def _parse(entry: str, pname: str) -> tuple[str, str] | None:
        """Split a matching entry into (version, output), or None if it does not match.

        "libX11-1.6.12" matches libX11 and "libX11-dev-1.0" does not.
        "libunwind-10.0.1-dev" is version "10.0.1" with output "dev".
        """
        match = _STORE_ENTRY.match(entry)
        if not match:
            return None
        rest = match.group("rest")
        if rest == pname:
            return "", ""
        if not rest.startswith(pname + "-"):
            return None
        version, _, output = rest[len(pname) + 1 :].partition("-")
        if not version[:1].isdigit():
            return None
        return version, output

    @staticmethod
    def _rank(entry: str, version: str, output: str) -> tuple[int, tuple, str]:
        # main output, then lib/out, then any other split output
        output_rank = 2 if not output else 1 if output in ("lib", "out") else 0
        version_key = tuple(
            (1, int(part), "") if part.isdigit() else (0, 0, part)
            for part in re.split(r"[._]", version)
            if part
        )
        return output_rank, version_key, entry

    def locate(self, spec: DependencySpec) -> Path:
        if spec.name in self.overrides.prefixes or spec.pname in self.overrides.prefixes:
            return self.overrides.locate(spec)

        candidates: list[tuple[str, str, str]] = []
        for entry in self._list_entries():
            parsed = self._parse(entry, spec.pname)
            if parsed is not None:
                candidates.append((entry, *parsed))
        if not candidates:
            logger.warning(f"{spec} not found in {self.store_dir}")
            raise UnresolvedExternalDependency(spec, f"not found in {self.store_dir}")

        chosen = max(candidates, key=lambda c: self._rank(*c))[0]
        logger.debug(f"Located {spec} at {chosen}")
        return self.store_dir / chosen
