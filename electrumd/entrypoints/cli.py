"""electrumd CLI entrypoint.

Command-line interface for locating, downloading and running throwaway
Electrum daemons.
"""

from __future__ import annotations

import functools
import json
import logging
import sys
import time
from pathlib import Path

import click

from electrumd.domain.config import Conf
from electrumd.domain.exceptions import ElectrumdError
from electrumd.version import __version__

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
RUN_POLL_INTERVAL = 0.5


class ElectrumdCliError(click.ClickException):
    """CLI error with actionable hint for users.

    Attributes:
        message: The primary error message.
        hint: Optional actionable suggestion for the user.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def format_message(self) -> str:
        """Format the error message with hint if present."""
        if self.hint:
            return f"{self.message}\nHint: {self.hint}"
        return self.message


def handle_cli_errors(command_name: str):
    """Decorator converting library errors into ElectrumdCliError.

    Args:
        command_name: Name of the command for error messages.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ElectrumdCliError:
                raise
            except ElectrumdError as e:
                raise ElectrumdCliError(e.message, hint=e.hint) from e
            except (ValueError, FileNotFoundError) as e:
                raise ElectrumdCliError(f"{command_name}: {e}") from e

        return wrapper

    return decorator


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


@click.group()
@click.version_option(version=__version__, prog_name="electrumd")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """electrumd - throwaway Electrum daemons for integration tests."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


@cli.command(name="exe-path")
@handle_cli_errors("exe-path")
def exe_path_cmd() -> None:
    """Print the resolved Electrum executable."""
    from electrumd.adapters.exe.locator import exe_path

    click.echo(str(exe_path()))


@cli.command()
@click.option("--version", "electrum_version", default=None, help="Electrum version to fetch.")
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Download cache directory.",
)
@click.option(
    "--sha256",
    default=None,
    help="Expected SHA-256 hex digest (default: $ELECTRUMD_SHA256 or the pinned digest).",
)
@handle_cli_errors("download")
def download(electrum_version: str | None, cache_dir: Path | None, sha256: str | None) -> None:
    """Download the Electrum AppImage into the cache."""
    from electrumd.adapters.exe.download import download_exe

    path = download_exe(electrum_version, cache_dir=cache_dir, expected_sha256=sha256)
    click.echo(str(path))


def _build_conf(
    config_path: Path | None,
    network: str | None,
    view_stdout: bool,
    extra_args: tuple[str, ...],
    startup_timeout: float | None,
) -> Conf:
    from electrumd.shared.config_io import load_conf

    conf = load_conf(config_path)
    overrides: dict = {}
    if network:
        overrides["network"] = network
    if view_stdout:
        overrides["view_stdout"] = True
    if extra_args:
        overrides["args"] = tuple(conf.args) + tuple(extra_args)
    if startup_timeout is not None:
        overrides["startup_timeout"] = startup_timeout
    return Conf.from_partial(conf, overrides)


@cli.command()
@click.option(
    "--exe",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Electrum executable (default: $ELECTRUMD_EXE or download cache).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="TOML config file (default: $ELECTRUMD_CONFIG).",
)
@click.option("--network", default=None, help="Network flag without dashes (default: regtest).")
@click.option("--view-stdout", is_flag=True, help="Show Electrum output.")
@click.option("--arg", "extra_args", multiple=True, help="Extra Electrum argument (repeatable).")
@click.option("--startup-timeout", type=float, default=None, help="Seconds to wait for readiness.")
@handle_cli_errors("run")
def run(
    exe: Path | None,
    config_path: Path | None,
    network: str | None,
    view_stdout: bool,
    extra_args: tuple[str, ...],
    startup_timeout: float | None,
) -> None:
    """Start a daemon, print its connect params and wait for Ctrl-C."""
    from electrumd.adapters.electrum.instance import ElectrumD
    from electrumd.adapters.exe.locator import resolve_exe_path

    conf = _build_conf(config_path, network, view_stdout, extra_args, startup_timeout)
    executable = exe if exe is not None else resolve_exe_path()

    with ElectrumD(executable, conf) as electrumd:
        click.echo(json.dumps({"pid": electrumd.pid, **electrumd.params.to_dict()}, indent=2))
        click.echo("Daemon ready, press Ctrl-C to stop", err=True)
        try:
            while electrumd.is_running():
                time.sleep(RUN_POLL_INTERVAL)
        except KeyboardInterrupt:
            click.echo("Stopping daemon...", err=True)
            return
    raise ElectrumdCliError("Daemon exited unexpectedly")


@cli.group()
def config() -> None:
    """Manage electrumd config files."""
    pass


@config.command(name="init")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
@handle_cli_errors("config init")
def config_init(path: Path, force: bool) -> None:
    """Write a config file with default values to PATH."""
    from electrumd.shared.config_io import save_conf

    if path.exists() and not force:
        raise ElectrumdCliError(f"{path} already exists", hint="Use --force to overwrite")
    save_conf(Conf.default(), path)
    click.echo(f"Wrote {path}")


def main() -> int:
    """Main entrypoint for the CLI."""
    try:
        cli(obj={})
        return 0
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
