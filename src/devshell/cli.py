import logging
import os
import subprocess
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from devshell.core.config import Config
from devshell.core.declaration import PlatformKind
from devshell.core.errors import DevShellError
from devshell.core.locator import StoreLocator
from devshell.core.shell import DevShell
from devshell.utils.environment import detect_platform
from devshell.utils.exporter import apply_environment, render_exports

app = typer.Typer(
    name="devshell",
    help="devshell - resolve development shell dependencies and environment",
    add_completion=False,
)

console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

PLATFORM_OPTION = typer.Option(
    None, "--platform", "-p", help="Target platform: macos, linux or other (default: detect)"
)
DECLARATION_OPTION = typer.Option(
    None, "--declaration", "-d", help="TOML declaration replacing the built-in one"
)


def _load_config() -> Config:
    try:
        return Config()
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{escape(str(e))}")
        raise typer.Exit(1)


def _setup_logging(config: Config) -> None:
    if config.log_file:
        logging.basicConfig(
            filename=config.log_file, level=config.log_level, format=LOG_FORMAT
        )
    else:
        logging.basicConfig(level=config.log_level, format=LOG_FORMAT)


def _build_shell(config: Config, declaration_file: Path | None) -> DevShell:
    if declaration_file is not None:
        config.declaration_file = declaration_file
    locator = StoreLocator(config.store_dir, overrides=config.package_prefixes)
    return DevShell(config.load_declaration(), locator, config.project_dir)


def _target_platform(config: Config, platform: str | None) -> PlatformKind:
    chosen = platform or config.platform
    if chosen is None:
        return detect_platform()
    return PlatformKind.parse(chosen)


@app.callback()
def main() -> None:
    """Resolve development shell dependencies and environment."""
    _setup_logging(_load_config())


@app.command()
def deps(
    platform: str | None = PLATFORM_OPTION,
    declaration: Path | None = DECLARATION_OPTION,
    locate: bool = typer.Option(False, "--locate", "-l", help="Show located store paths"),
) -> None:
    """List the dependency set for a platform."""
    config = _load_config()
    try:
        kind = _target_platform(config, platform)
        shell = _build_shell(config, declaration)
        dependencies = shell.dependencies(kind)
        located = shell.locate_all(kind) if locate else {}
    except DevShellError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    membership = {spec.name: group.name for group in shell.groups() for spec in group}

    table = Table(title=f"Dependencies ({kind.value})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Package", style="cyan")
    table.add_column("Group")
    if locate:
        table.add_column("Path")
    for i, spec in enumerate(dependencies, 1):
        row = [str(i), spec.name, membership.get(spec.name, "")]
        if locate:
            row.append(str(located[spec.name]))
        table.add_row(*row)
    console.print(table)


@app.command()
def env(
    platform: str | None = PLATFORM_OPTION,
    declaration: Path | None = DECLARATION_OPTION,
    fmt: str = typer.Option("shell", "--format", "-f", help="Output format: shell, json, dotenv"),
) -> None:
    """Print the resolved shell environment."""
    if fmt not in ("shell", "json", "dotenv"):
        console.print(f"[red]Unknown format: {fmt}[/red]")
        raise typer.Exit(1)

    config = _load_config()
    try:
        kind = _target_platform(config, platform)
        shell = _build_shell(config, declaration)
        _, environment = shell.resolve(kind, prior_env=dict(os.environ))
    except DevShellError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    typer.echo(render_exports(environment, fmt))  # type: ignore[arg-type]


@app.command()
def pin(declaration: Path | None = DECLARATION_OPTION) -> None:
    """Show the pinned package repository snapshot."""
    config = _load_config()
    try:
        shell = _build_shell(config, declaration)
    except DevShellError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    snapshot = shell.declaration.snapshot
    table = Table(show_header=False)
    table.add_row("[cyan]Name[/cyan]", snapshot.name)
    table.add_row("[cyan]URL[/cyan]", snapshot.url)
    table.add_row("[cyan]Ref[/cyan]", snapshot.ref)
    table.add_row("[cyan]Rev[/cyan]", snapshot.rev)
    console.print(Panel(table, title="Package Snapshot"))


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def run(
    command: list[str] = typer.Argument(..., help="Command to run inside the shell environment"),
    platform: str | None = PLATFORM_OPTION,
    declaration: Path | None = DECLARATION_OPTION,
) -> None:
    """Run a command with the resolved environment applied."""
    config = _load_config()
    try:
        kind = _target_platform(config, platform)
        shell = _build_shell(config, declaration)
        _, environment = shell.resolve(kind, prior_env=dict(os.environ))
    except DevShellError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    child_env = apply_environment(environment, dict(os.environ))
    try:
        result = subprocess.run(command, env=dict(child_env), check=False)
    except FileNotFoundError:
        console.print(f"[red]Command not found: {command[0]}[/red]")
        raise typer.Exit(127)
    raise typer.Exit(result.returncode)


@app.command()
def version() -> None:
    """Show devshell version."""
    from devshell import __version__

    console.print(f"[bold]devshell[/bold] version {__version__}")


if __name__ == "__main__":
    app()
