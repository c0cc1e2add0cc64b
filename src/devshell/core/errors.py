"""Errors raised while resolving a development shell."""

from typing import Any


class DevShellError(Exception):
    """Base class for all devshell errors."""

    pass


class UnknownPlatform(DevShellError):
    """Raised when a platform indicator is not a known PlatformKind."""

    def __init__(self, platform: Any) -> None:
        self.platform = platform
        super().__init__(f"Unknown platform: {platform!r} (expected macos, linux or other)")


class MissingTemplateSource(DevShellError):
    """Raised when a rule references a variable not resolved before it."""

    def __init__(self, variable: str, missing: str) -> None:
        self.variable = variable
        self.missing = missing
        super().__init__(
            f"Rule for {variable} references ${missing}, "
            f"which is not resolved earlier in the evaluation order"
        )


class UnresolvedExternalDependency(DevShellError):
    """Raised when the package repository cannot locate a declared dependency."""

    def __init__(self, spec: Any, reason: str = "") -> None:
        self.spec = spec
        message = f"Cannot locate dependency: {spec}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class MissingLocator(DevShellError):
    """Raised when packages must be located but no locator was configured."""

    pass


class DeclarationError(DevShellError):
    """Raised when a declaration file cannot be read or validated."""

    pass
