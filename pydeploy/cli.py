"""CLI interface for PyDeploy."""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import click

from . import __version__
from .cli_progress import DeployProgressDisplay
from .config import config
from .exceptions import DeployError, DeployNotFoundError, DeployStateDecodeError
from .ftp_client import FtpClient
from .output import OutputFormatter
from .sync import DeployTarget, SyncEngine, decode_inventory, load_targets_from_json
from .sync.ignore import DEFAULT_EXCLUDES
from .utils import (
    DEFAULT_FTP_PORT,
    DEFAULT_STATE_NAME,
    DEFAULT_TIMEOUT,
    format_size,
    format_timestamp_ms,
)

logger = logging.getLogger(__name__)


def _connection_options(func: Callable) -> Callable:
    """Options shared by every command that talks to the server."""
    options = [
        click.option(
            "--server", "-s", envvar="PYDEPLOY_SERVER", help="FTP server host name"
        ),
        click.option(
            "--username", "-u", envvar="PYDEPLOY_USERNAME", help="FTP username"
        ),
        click.option(
            "--password", "-p", envvar="PYDEPLOY_PASSWORD", help="FTP password"
        ),
        click.option(
            "--port", type=int, default=DEFAULT_FTP_PORT, show_default=True
        ),
        click.option(
            "--protocol",
            type=click.Choice(["ftp", "ftps"]),
            default="ftp",
            show_default=True,
            help="Use ftps for explicit TLS",
        ),
        click.option(
            "--server-dir",
            default="./",
            show_default=True,
            help="Folder on the server to deploy into",
        ),
        click.option(
            "--state-name",
            default=DEFAULT_STATE_NAME,
            show_default=True,
            help="Path of the state document inside the synchronized tree",
        ),
        click.option(
            "--timeout",
            type=float,
            default=DEFAULT_TIMEOUT,
            show_default=True,
            help="Socket timeout in seconds",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _deploy_options(func: Callable) -> Callable:
    """Options shared by deploy and plan."""
    options = [
        click.argument(
            "local", type=click.Path(file_okay=False, path_type=Path), required=False
        ),
        _connection_options,
        click.option(
            "--include",
            "-i",
            multiple=True,
            help="Glob pattern to include (additive, never restricts the upload)",
        ),
        click.option(
            "--exclude",
            "-e",
            multiple=True,
            help="Glob pattern to exclude (overrides --include)",
        ),
        click.option(
            "--no-default-excludes",
            is_flag=True,
            help=f"Do not exclude {', '.join(DEFAULT_EXCLUDES)}",
        ),
        click.option(
            "--config",
            "config_file",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            help="JSON file with deploy targets (replaces LOCAL and options)",
        ),
        click.option(
            "--workers",
            "-w",
            type=int,
            default=1,
            show_default=True,
            help="Number of threads used to hash local files",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _resolve_targets(
    local: Optional[Path],
    config_file: Optional[Path],
    server: Optional[str],
    username: Optional[str],
    password: Optional[str],
    port: int,
    protocol: str,
    server_dir: str,
    state_name: str,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    no_default_excludes: bool,
    dangerous_clean_slate: bool = False,
) -> list[DeployTarget]:
    """Build deploy targets from a config file or from the CLI options."""
    if config_file is not None:
        return load_targets_from_json(config_file)

    server = server or config.server
    if not server:
        raise click.UsageError(
            "No server configured. Use --server, set PYDEPLOY_SERVER "
            "or run 'pydeploy init'."
        )

    excludes = [] if no_default_excludes else list(DEFAULT_EXCLUDES)
    excludes.extend(exclude)

    return [
        DeployTarget(
            local=local or Path("."),
            server=server,
            username=username or config.username or "anonymous",
            password=password or config.password or "",
            port=port,
            protocol=protocol,
            server_dir=server_dir,
            state_name=state_name,
            include=list(include),
            exclude=excludes,
            dangerous_clean_slate=dangerous_clean_slate,
        )
    ]


def _make_client(target: DeployTarget, timeout: float, verbose: bool) -> FtpClient:
    return FtpClient(
        host=target.server,
        username=target.username,
        password=target.password,
        port=target.port,
        secure=target.secure,
        timeout=timeout,
        server_dir=target.server_dir,
        verbose=verbose,
    )


def _run_targets(
    ctx: Any,
    targets: list[DeployTarget],
    dry_run: bool,
    timeout: float,
    workers: int,
) -> None:
    out: OutputFormatter = ctx.obj["out"]
    verbose: bool = ctx.obj["verbose"]
    results = []

    for target in targets:
        if len(targets) > 1:
            out.info(f"Deploying: {target.display_name}")

        client = _make_client(target, timeout, verbose)
        try:
            if out.quiet or out.json_output or dry_run:
                engine = SyncEngine(client, out, max_workers=workers)
                result = engine.deploy(target, dry_run=dry_run)
            else:
                with DeployProgressDisplay() as display:
                    engine = SyncEngine(
                        client,
                        out,
                        max_workers=workers,
                        progress_tracker=display.create_tracker(),
                    )
                    result = engine.deploy(target, dry_run=dry_run)
        except ValueError as e:
            out.error(str(e))
            ctx.exit(1)
        except DeployError as e:
            logger.debug("Deployment failed", exc_info=True)
            out.error(str(e))
            ctx.exit(1)

        results.append(result.to_dict())

    if out.json_output:
        out.output_json(results if len(results) > 1 else results[0])


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """PyDeploy - Deploy only what changed to an FTP server."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pydeploy").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@_deploy_options
@click.option(
    "--dangerous-clean-slate",
    is_flag=True,
    help="Delete everything in the server folder before deploying",
)
@click.option("--dry-run", is_flag=True, help="Show changes without applying them")
@click.pass_context
def deploy(
    ctx: Any,
    local: Optional[Path],
    server: Optional[str],
    username: Optional[str],
    password: Optional[str],
    port: int,
    protocol: str,
    server_dir: str,
    state_name: str,
    timeout: float,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    no_default_excludes: bool,
    config_file: Optional[Path],
    workers: int,
    dangerous_clean_slate: bool,
    dry_run: bool,
) -> None:
    """Deploy LOCAL (default: current folder) to the server.

    Only files that changed since the last deployment are uploaded; files
    removed locally are removed from the server.

    Note: --include patterns never restrict what is deployed. A path that
    matches no include pattern is still deployed; use --exclude to leave
    paths out.
    """
    targets = _resolve_targets(
        local,
        config_file,
        server,
        username,
        password,
        port,
        protocol,
        server_dir,
        state_name,
        include,
        exclude,
        no_default_excludes,
        dangerous_clean_slate,
    )
    _run_targets(ctx, targets, dry_run=dry_run, timeout=timeout, workers=workers)


@main.command()
@_deploy_options
@click.pass_context
def plan(
    ctx: Any,
    local: Optional[Path],
    server: Optional[str],
    username: Optional[str],
    password: Optional[str],
    port: int,
    protocol: str,
    server_dir: str,
    state_name: str,
    timeout: float,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    no_default_excludes: bool,
    config_file: Optional[Path],
    workers: int,
) -> None:
    """Show what a deployment of LOCAL would change (no changes are made)."""
    targets = _resolve_targets(
        local,
        config_file,
        server,
        username,
        password,
        port,
        protocol,
        server_dir,
        state_name,
        include,
        exclude,
        no_default_excludes,
    )
    _run_targets(ctx, targets, dry_run=True, timeout=timeout, workers=workers)


@main.command()
@_connection_options
@click.pass_context
def status(
    ctx: Any,
    server: Optional[str],
    username: Optional[str],
    password: Optional[str],
    port: int,
    protocol: str,
    server_dir: str,
    state_name: str,
    timeout: float,
) -> None:
    """Show the last deployment recorded on the server."""
    out: OutputFormatter = ctx.obj["out"]
    targets = _resolve_targets(
        None,
        None,
        server,
        username,
        password,
        port,
        protocol,
        server_dir,
        state_name,
        (),
        (),
        False,
    )
    target = targets[0]

    try:
        with _make_client(target, timeout, ctx.obj["verbose"]) as client:
            inventory = decode_inventory(client.download_to_memory(target.state_name))
    except DeployNotFoundError:
        out.warning(f'No state document "{target.state_name}" on the server')
        ctx.exit(1)
    except DeployStateDecodeError as e:
        out.error(f"State document is unreadable: {e}")
        ctx.exit(1)
    except DeployError as e:
        out.error(str(e))
        ctx.exit(1)

    files = [e for e in inventory.entries if e.is_file]
    if out.json_output:
        out.output_json(
            {
                "generated_time": inventory.generated_time,
                "version": inventory.version,
                "files": len(files),
                "folders": len(inventory) - len(files),
                "total_size": inventory.total_size,
            }
        )
        return

    out.info(f"Last published on {format_timestamp_ms(inventory.generated_time)}")
    out.info(
        f"{len(files)} file(s), {len(inventory) - len(files)} folder(s), "
        f"{format_size(inventory.total_size)}"
    )


@main.command()
@click.option("--server", "-s", prompt="FTP server", help="FTP server host name")
@click.option("--username", "-u", prompt="FTP username", help="FTP username")
@click.option(
    "--password",
    "-p",
    prompt="FTP password (leave empty to use PYDEPLOY_PASSWORD)",
    default="",
    hide_input=True,
    show_default=False,
    help="FTP password",
)
@click.pass_context
def init(ctx: Any, server: str, username: str, password: str) -> None:
    """Store server credentials in ~/.config/pydeploy/config."""
    out: OutputFormatter = ctx.obj["out"]
    path = config.save(server, username, password or None)
    out.success(f"Configuration saved to {path}")


if __name__ == "__main__":
    main()
