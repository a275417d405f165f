"""Command line interface for storagedriver."""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from storagedriver import __version__
from storagedriver.config import PASSWORD_ENV
from storagedriver.config import URL_ENV
from storagedriver.config import DriverConfig
from storagedriver.config import open_driver
from storagedriver.drivers import Driver
from storagedriver.registry import drivers
from storagedriver.utils.logging import setup_logging

console = Console()


class _Session:
    """Lazily opened driver shared by the commands of one invocation."""

    def __init__(self, url: str, password: str | None):
        self.url = url
        self.password = password
        self._driver: Driver | None = None

    @property
    def driver(self) -> Driver:
        if self._driver is None:
            config = DriverConfig.from_url(self.url)
            if self.password:
                config.password = self.password
            self._driver = open_driver(config)
        return self._driver

    def close(self) -> None:
        if self._driver is not None:
            self._driver.close()
            self._driver = None


pass_session = click.make_pass_decorator(_Session)


def _fail(error: Exception) -> None:
    console.print(f"[red]✗[/red] Error: {error}")
    raise click.Abort()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--url",
    "-u",
    envvar=URL_ENV,
    default=".",
    show_default=True,
    help="Storage URL: a local path, nfs:///path or ftps://user@host[:port]/root",
)
@click.option("--password", envvar=PASSWORD_ENV, default=None, help="Password (overrides the one in the URL)")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log driver activity")
@click.pass_context
def cli(ctx: click.Context, url: str, password: str | None, verbose: bool) -> None:
    """storagedriver - Uniform file access for local disks and FTPS servers."""
    setup_logging(verbose)
    session = _Session(url, password)
    ctx.obj = session
    ctx.call_on_close(session.close)


@cli.command("drivers")
def list_drivers() -> None:
    """List registered storage drivers."""
    table = Table(title="Storage drivers")
    table.add_column("Protocol", style="cyan")
    table.add_column("Description")
    table.add_column("Local", style="green")

    for driver_class in drivers():
        table.add_row(driver_class.protocol, driver_class.description, "yes" if driver_class.local else "no")

    console.print(table)


@cli.command()
@click.argument("path", type=str, default="/")
@pass_session
def ls(session: _Session, path: str) -> None:
    """List a directory."""
    try:
        driver = session.driver
        if not driver.dir_exists(path):
            raise FileNotFoundError(f"Directory not found: {path}")

        table = Table(title=driver.dir(path).path)
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Size", justify="right")

        for entry in driver.obj_entries(path):
            if entry.is_file():
                table.add_row(entry.name, "file", f"{entry.size():,}")
            else:
                table.add_row(f"{entry.name}/", "dir", "")

        console.print(table)

    except Exception as e:
        _fail(e)


@cli.command()
@click.argument("path", type=str)
@pass_session
def cat(session: _Session, path: str) -> None:
    """Print a file to stdout."""
    try:
        data = session.driver.file(path).read()
    except Exception as e:
        _fail(e)
    else:
        click.echo(data, nl=False)


@cli.command()
@click.argument("remote", type=str)
@click.argument("local", type=click.Path(dir_okay=False, path_type=Path))
@pass_session
def get(session: _Session, remote: str, local: Path) -> None:
    """Download REMOTE to the LOCAL file."""
    try:
        session.driver.file(remote).copy_to(local)
        console.print(f"[green]✓[/green] {remote} → {local}")
    except Exception as e:
        _fail(e)


@cli.command()
@click.argument("local", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("remote", type=str)
@pass_session
def put(session: _Session, local: Path, remote: str) -> None:
    """Upload the LOCAL file to REMOTE."""
    try:
        session.driver.file(remote).copy_from(local)
        console.print(f"[green]✓[/green] {local} → {remote}")
    except Exception as e:
        _fail(e)


@cli.command()
@click.argument("path", type=str)
@pass_session
def mkdir(session: _Session, path: str) -> None:
    """Create a directory and any missing parents."""
    try:
        if session.driver.mkpath(path) is None:
            raise OSError(f"Could not create directory: {path}")
        console.print(f"[green]✓[/green] Created {path}")
    except Exception as e:
        _fail(e)


@cli.command()
@click.argument("path", type=str)
@click.option("--recursive", "-r", is_flag=True, default=False, help="Delete directories with their content")
@pass_session
def rm(session: _Session, path: str, recursive: bool) -> None:
    """Delete a file or directory."""
    try:
        driver = session.driver
        deleted = driver.delete_tree(path) if recursive else driver.delete(path)
        if not deleted:
            raise OSError(f"Could not delete: {path}")
        console.print(f"[yellow]🗑[/yellow] Deleted {path}")
    except Exception as e:
        _fail(e)


@cli.command()
@click.argument("path", type=str)
@click.argument("dest_dir", type=str)
@pass_session
def mv(session: _Session, path: str, dest_dir: str) -> None:
    """Move PATH into DEST_DIR (relative to PATH's parent unless absolute)."""
    try:
        new_path = session.driver.move(path, dest_dir)
        if new_path is None:
            raise OSError(f"Could not move {path} to {dest_dir}")
        console.print(f"[green]✓[/green] {path} → {new_path}")
    except Exception as e:
        _fail(e)


@cli.command()
@click.argument("path", type=str)
@click.argument("new_name", type=str)
@pass_session
def rename(session: _Session, path: str, new_name: str) -> None:
    """Rename PATH within its directory."""
    try:
        entry = session.driver.entry(path)
        if entry is None:
            raise FileNotFoundError(f"Not found: {path}")
        old_path = entry.path
        if entry.rename(new_name) is None:
            raise OSError(f"Could not rename {path} to {new_name}")
        console.print(f"[green]✓[/green] {old_path} → {entry.path}")
    except Exception as e:
        _fail(e)


@cli.command()
@click.argument("path", type=str)
@pass_session
def info(session: _Session, path: str) -> None:
    """Show information about a file or directory."""
    try:
        driver = session.driver
        entry = driver.entry(path)
        if entry is None:
            raise FileNotFoundError(f"Not found: {path}")

        metadata = entry.metadata()

        table = Table(title=f"Entry Info: {entry.path}")
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Driver", driver.name)
        table.add_row("Protocol", entry.protocol)
        table.add_row("Type", "file" if entry.is_file() else "dir")
        table.add_row("Size", f"{metadata.size:,} bytes")
        table.add_row("Modified", metadata.mtime.isoformat() if metadata.mtime else "unknown")

        console.print(table)

    except Exception as e:
        _fail(e)


if __name__ == "__main__":
    cli()
