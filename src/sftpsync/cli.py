"""
CLI entry point for sftpsync.

Provides the command-line interface using Click. Each command opens a
workspace session, runs one command through it and closes the connection.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from sftpsync import __version__
from sftpsync.errors import SftpSyncError
from sftpsync.session import DEFAULT_DIFF_TOOL, WorkspaceSession
from sftpsync.utils import mask_secret

# Suppress paramiko's verbose error messages
logging.getLogger("paramiko").setLevel(logging.CRITICAL)


def version_callback(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Callback to display version and exit."""
    if value and not ctx.resilient_parsing:
        click.echo(f"sftpsync version {__version__}")
        ctx.exit()


def configure_logging(verbose: bool) -> None:
    """Send log lines to stderr; ``verbose`` shows every transfer."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("paramiko").setLevel(logging.CRITICAL)


def open_session(ctx: click.Context) -> WorkspaceSession:
    """Open the session for the selected workspace, exiting if unconfigured."""
    workspace: Path = ctx.obj["workspace"]
    session = WorkspaceSession(workspace, diff_tool=ctx.obj.get("diff_tool", DEFAULT_DIFF_TOOL))
    if session.open() is None:
        if session.manager.find_config_file() is None:
            click.echo(
                f"Error: SFTP configuration not found. Checked: "
                f"{workspace / '.zed' / 'sftp.json'}, {workspace / '.vscode' / 'sftp.json'}, "
                f"{workspace / 'sftp.json'}",
                err=True,
            )
        sys.exit(1)
    ctx.call_on_close(session.close)
    return session


def run_command(ctx: click.Context, command: str, paths: Tuple[Path, ...]) -> None:
    """Run one session command and exit non-zero if any step failed."""
    session = open_session(ctx)
    arguments = [str(p.absolute()) for p in paths]
    if not session.execute_command(command, arguments):
        sys.exit(1)


path_argument = click.argument(
    "paths", nargs=-1, required=True, type=click.Path(path_type=Path)
)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--version",
    "-v",
    is_flag=True,
    callback=version_callback,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option(
    "-w",
    "--workspace",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Workspace root containing .zed/sftp.json, .vscode/sftp.json or sftp.json [default: current directory]",
)
@click.option("-V", "--verbose", is_flag=True, help="Log every connection and transfer.")
@click.pass_context
def main(ctx: click.Context, workspace: Path, verbose: bool) -> None:
    """
    Keep a local workspace in sync with a remote SFTP/FTP/FTPS directory.

    \b
    Configuration:
      The first existing file is used:
        1. <workspace>/.zed/sftp.json
        2. <workspace>/.vscode/sftp.json
        3. <workspace>/sftp.json

    \b
    Examples:
      sftpsync upload src/index.php            # Upload one file
      sftpsync download src/index.php          # Replace local file with the remote copy
      sftpsync upload-folder assets            # Upload a folder recursively
      sftpsync sync                            # Upload the whole context root
      sftpsync diff src/index.php              # Open remote vs local in the diff viewer
      sftpsync watch                           # Upload files as they are saved
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["workspace"] = workspace.absolute()


@main.command()
@path_argument
@click.pass_context
def upload(ctx: click.Context, paths: Tuple[Path, ...]) -> None:
    """Upload files to their remote paths."""
    run_command(ctx, "upload", paths)


@main.command()
@path_argument
@click.pass_context
def download(ctx: click.Context, paths: Tuple[Path, ...]) -> None:
    """Download files from their remote paths."""
    run_command(ctx, "download", paths)


@main.command("upload-folder")
@path_argument
@click.pass_context
def upload_folder(ctx: click.Context, paths: Tuple[Path, ...]) -> None:
    """Upload folders recursively, skipping ignored files."""
    run_command(ctx, "uploadFolder", paths)


@main.command("download-folder")
@path_argument
@click.pass_context
def download_folder(ctx: click.Context, paths: Tuple[Path, ...]) -> None:
    """Download folders recursively."""
    run_command(ctx, "downloadFolder", paths)


@main.command()
@click.argument("paths", nargs=-1, type=click.Path(path_type=Path))
@click.pass_context
def sync(ctx: click.Context, paths: Tuple[Path, ...]) -> None:
    """
    Upload folders one way, local to remote (default: the context root).

    Nothing is deleted or compared on the remote side.
    """
    run_command(ctx, "sync", paths)


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--tool",
    default=DEFAULT_DIFF_TOOL,
    envvar="SFTPSYNC_DIFF_TOOL",
    show_default=True,
    help="Diff viewer, invoked as: TOOL --diff REMOTE_COPY LOCAL_FILE",
)
@click.pass_context
def diff(ctx: click.Context, path: Path, tool: str) -> None:
    """Compare a local file with its remote copy."""
    ctx.obj["diff_tool"] = tool
    run_command(ctx, "diff", (path,))


@main.command("ls")
@click.argument("remote_path", required=False)
@click.pass_context
def list_remote(ctx: click.Context, remote_path: Optional[str]) -> None:
    """List a remote directory (default: the configured remotePath)."""
    session = open_session(ctx)
    assert session.dispatcher is not None
    target = remote_path or session.dispatcher.config.remote_path or "/"
    try:
        names = session.dispatcher.list_remote_files(target)
    except SftpSyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for name in sorted(names):
        click.echo(name)


@main.command("rm")
@click.argument("remote_path")
@click.confirmation_option(prompt="Delete this remote file?")
@click.pass_context
def remove_remote(ctx: click.Context, remote_path: str) -> None:
    """Delete a remote file."""
    session = open_session(ctx)
    assert session.dispatcher is not None
    try:
        session.dispatcher.delete_remote_file(remote_path)
    except SftpSyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"🗑️  Deleted {remote_path}")


@main.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Upload files when they change (uploadOnSave / watcher settings)."""
    from sftpsync.watcher import watch_workspace

    session = open_session(ctx)
    config = session.manager.config
    assert config is not None
    watcher_config = config.watcher or {}
    if not (config.upload_on_save or watcher_config.get("autoUpload") or watcher_config.get("autoDelete")):
        click.echo(
            "Warning: uploadOnSave, watcher.autoUpload and watcher.autoDelete are all disabled; "
            "changes will not be synced.",
            err=True,
        )

    click.echo(f"👀 Watching {session.manager.context_path} (Ctrl+C to stop)")
    watch_workspace(session)


@main.command("show-config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Display the effective configuration and resolved paths."""
    session = open_session(ctx)
    manager = session.manager
    config = manager.config
    assert config is not None

    data = config.to_dict()
    for secret in ("password", "passphrase"):
        if secret in data:
            data[secret] = mask_secret(data[secret])

    click.echo(click.style("\n📋 Configuration File:", fg="cyan", bold=True))
    click.echo(f"  {manager.config_path}")

    click.echo(click.style("\n🔀 Effective Configuration:", fg="cyan", bold=True))
    click.echo(click.style(json.dumps(data, indent=2), fg="green"))

    click.echo(click.style("\n📍 Resolved Paths:", fg="cyan", bold=True))
    click.echo(f"  context root: {manager.context_path}")
    click.echo(f"  remote root:  {config.remote_path}")

    click.echo(click.style("\n🚫 Ignore patterns:", fg="cyan", bold=True))
    for pattern in manager.ignore_patterns:
        click.echo(f"  • {click.style(pattern, fg='white')}")


if __name__ == "__main__":
    main()
