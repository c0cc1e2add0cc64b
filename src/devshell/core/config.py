from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from devshell.core.declaration import Declaration, PlatformKind, load_declaration
from devshell.core.errors import UnknownPlatform


def find_dotenv(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for a .env file.

    Returns the first `.env` path found, or ``None``.
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DEVSHELL_",
        env_file=find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    store_dir: Path = Field(
        default=Path("/nix/store"),
        description="Package store searched for declared dependencies",
    )
    project_dir: Path = Field(
        default_factory=Path.cwd,
        description="Project root; the declaration's bin_dir is relative to it",
    )
    declaration_file: Path | None = Field(
        default=None,
        description="TOML declaration replacing the built-in one",
    )
    package_prefixes: dict[str, str] = Field(
        default_factory=dict,
        description="Explicit package -> prefix overrides, consulted before the store",
    )
    platform: str | None = Field(
        default=None,
        description="Force a platform (macos, linux, other) instead of detecting it",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional log file path",
    )

    @field_validator("platform")
    @classmethod
    def _check_platform(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            return PlatformKind.parse(value).value
        except UnknownPlatform as e:
            raise ValueError(str(e)) from e

    def load_declaration(self) -> Declaration:
        """Declaration from declaration_file, or the built-in one."""
        if self.declaration_file is None:
            return Declaration()
        return load_declaration(self.declaration_file)

    def model_post_init(self, __context: object) -> None:
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
