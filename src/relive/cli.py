"""relive CLI entry point."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from relive.config import SupervisorConfig, load_config
from relive.errors import ConfigError
from relive.reload.reloader import path_to_module
from relive.reload.watcher import ChangeScanner, FileRegistry

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


def _load(config_path: str | None, **overrides) -> SupervisorConfig:
    try:
        return load_config(config_path, **overrides)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """relive - live code reloading and crash recovery."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False), default=".")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Config file")
def scan(path: str, config_path: str | None) -> None:
    """List the module files relive would watch under PATH."""
    config = _load(config_path, watch_path=Path(path))
    scanner = ChangeScanner(
        config.watch_path,
        FileRegistry(),
        extension=config.extension,
        ignore_patterns=config.ignore_patterns,
    )
    files = scanner.files()

    table = Table(title=f"Watched modules in {config.watch_path}")
    table.add_column("File", style="cyan")
    table.add_column("Module", style="green")
    table.add_column("Loaded", style="yellow")

    for file in files:
        module_name = path_to_module(file, config.import_root) or "-"
        loaded = "yes" if module_name in sys.modules else ""
        table.add_row(str(file.relative_to(config.watch_path)), module_name, loaded)

    console.print(table)
    console.print(f"[dim]{len(files)} files[/dim]")


@cli.command()
@click.argument("module")
@click.option("--watch", "watch_path", type=click.Path(exists=True, file_okay=False), help="Directory to watch")
@click.option("--interval", type=float, help="Seconds between scans")
@click.option("--fps", default=30.0, help="Frames per second")
@click.option("--quiet", is_flag=True, help="Log failed swaps instead of freezing")
@click.option("--unprotected", is_flag=True, help="Do not intercept errors")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Config file")
def run(
    module: str,
    watch_path: str | None,
    interval: float | None,
    fps: float,
    quiet: bool,
    unprotected: bool,
    config_path: str | None,
) -> None:
    """Run application MODULE in a frame loop with live reloading."""
    from relive.runner import FrameLoop

    config = _load(
        config_path,
        watch_path=Path(watch_path) if watch_path else None,
        scan_interval=interval,
        quiet=True if quiet else None,
        protected=False if unprotected else None,
    )

    import_root = str(config.import_root.resolve())
    if import_root not in sys.path:
        sys.path.insert(0, import_root)

    loop = FrameLoop(module, config, fps=fps, console=console)
    console.print(f"[bold green]Watching {config.watch_path} for changes[/bold green]")

    try:
        frames = loop.run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")
        return
    console.print(f"[dim]Exited after {frames} frames[/dim]")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
