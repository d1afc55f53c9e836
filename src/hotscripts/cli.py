"""hotscripts CLI entry point."""

import logging
import time
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from hotscripts import __version__
from hotscripts.controller import ScriptController
from hotscripts.environment import ScriptEnvironment
from hotscripts.errors import HotScriptsError
from hotscripts.settings import EnvironmentSettings, load_settings

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


def build_settings(
    config: str | None,
    init_script: str | None,
    poll_rate: float | None,
    default_imports: tuple[str, ...] = (),
) -> EnvironmentSettings:
    """Combine a settings file with command line overrides."""
    settings = load_settings(config) if config else EnvironmentSettings()

    overrides: dict = {}
    if init_script:
        overrides["init_script"] = init_script
    if poll_rate is not None:
        overrides["poll_interval"] = poll_rate
    if default_imports:
        overrides["default_imports"] = default_imports

    if overrides:
        settings = settings.merged_with(EnvironmentSettings(**overrides))
    return settings


def _settings_or_exit(
    config: str | None,
    init_script: str | None,
    poll_rate: float | None,
    default_imports: tuple[str, ...] = (),
) -> EnvironmentSettings:
    try:
        return build_settings(config, init_script, poll_rate, default_imports)
    except (HotScriptsError, ValidationError) as e:
        raise click.ClickException(str(e)) from e


def render_scripts(environment: ScriptEnvironment) -> Table:
    """Table of loaded scripts and what they depend on."""
    table = Table(title=f"Scripts in {environment.directory}")
    table.add_column("Path", style="cyan")
    table.add_column("Name")
    table.add_column("State")
    table.add_column("Depends on", style="dim")

    for path, script in sorted(environment.registry.all().items()):
        depends = sorted(p.as_posix() for p in script.dependencies if p != path)
        state_color = {
            "running": "green",
            "constructed": "yellow",
            "terminated": "red",
        }.get(script.state.value, "white")
        table.add_row(
            path.as_posix(),
            script.name,
            f"[{state_color}]{script.state.value}[/{state_color}]",
            ", ".join(depends) if depends else "-",
        )

    return table


@click.group()
@click.version_option(__version__, prog_name="hotscripts")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """hotscripts - hot-reloading script environments."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--init", "init_script", help="Entry point script, relative to DIRECTORY")
@click.option("--poll-rate", type=float, help="Seconds between reload cycles")
@click.option("--import", "default_imports", multiple=True, help="Module bound into every script")
@click.option("--config", type=click.Path(exists=True, dir_okay=False), help="TOML settings file")
def run(
    directory: Path,
    init_script: str | None,
    poll_rate: float | None,
    default_imports: tuple[str, ...],
    config: str | None,
) -> None:
    """Run the scripts in DIRECTORY, reloading them as they change."""
    settings = _settings_or_exit(config, init_script, poll_rate, default_imports)

    controller = ScriptController(settings)
    environment = controller.setup_new_environment(directory)
    console.print(
        f"[bold green]Watching {environment.directory} "
        f"({len(environment.registry)} scripts loaded)[/bold green]"
    )

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down[/yellow]")
    finally:
        controller.shutdown()


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--init", "init_script", help="Entry point script, relative to DIRECTORY")
@click.option("--config", type=click.Path(exists=True, dir_okay=False), help="TOML settings file")
def inspect(directory: Path, init_script: str | None, config: str | None) -> None:
    """Preload DIRECTORY once and show the loaded scripts."""
    settings = _settings_or_exit(config, init_script, None)

    environment = ScriptEnvironment(directory, settings)
    try:
        if not len(environment.registry):
            console.print(f"[yellow]No scripts loaded (entry point: {settings.init_script})[/yellow]")
            return

        console.print(render_scripts(environment))

        missing = sorted(
            p.as_posix() for p in environment.loader.watch_set if p not in environment.registry
        )
        if missing:
            console.print(f"[red]Watched but missing:[/red] {', '.join(missing)}")
    finally:
        environment.close()


if __name__ == "__main__":
    cli()
