"""Thin CLI wrapper for remote_destroy.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from remote_destroy import __version__
from remote_destroy.config import get_settings, print_settings_json

app = typer.Typer(
    name="okteto-remote-destroy",
    help="Okteto remote destroy - tear down development environments in the cluster",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"okteto-remote-destroy version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Okteto remote destroy - tear down development environments in the cluster."""


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
        return

    tmp_dir_display = str(settings.tmp_dir) if settings.tmp_dir else "(system default)"
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Cluster:[/bold]")
    console.print(f"  Context:             {settings.context or '(not set)'}")
    console.print(f"  Namespace:           {settings.namespace or '(not set)'}")
    token_display = "(set)" if settings.token else "(not set)"
    console.print(f"  Token:               {token_display}")
    console.print()
    console.print("[bold]Remote execution:[/bold]")
    console.print(f"  Action name:         {settings.action_name or '(not set)'}")
    console.print(f"  Git commit:          {settings.git_commit or '(not set)'}")
    console.print(f"  CLI version:         {settings.cli_version or '(development)'}")
    console.print(f"  CLI image override:  {settings.remote_cli_image or '(not set)'}")
    console.print(f"  Temp directory:      {tmp_dir_display}")
    console.print(f"  Log level:           {settings.log_level}")
    console.print()
    console.print("[bold]Timeouts (seconds):[/bold]")
    console.print(f"  Request timeout:     {settings.request_timeout}")
    console.print(f"  Build timeout:       {settings.build_timeout}")


@app.command()
def destroy(
    name: Annotated[
        str,
        typer.Option("--name", help="Development environment name"),
    ] = "",
    namespace: Annotated[
        str,
        typer.Option("--namespace", "-n", help="Namespace of the environment"),
    ] = "",
    manifest_path: Annotated[
        str,
        typer.Option("--file", "-f", help="Path to the okteto manifest"),
    ] = "",
    volumes: Annotated[
        bool,
        typer.Option("--volumes", "-v", help="Also destroy persistent volumes"),
    ] = False,
    force_destroy: Annotated[
        bool,
        typer.Option(
            "--force-destroy",
            help="Destroy resources even if the destroy commands fail",
        ),
    ] = False,
    image: Annotated[
        str,
        typer.Option(
            "--image",
            help="Image to run the destroy in (defaults to the cluster runner)",
        ),
    ] = "",
) -> None:
    """Destroy a development environment inside the cluster."""
    from remote_destroy.builder import DockerBuilder
    from remote_destroy.destroy.remote import RemoteDestroyer
    from remote_destroy.errors import (
        ClusterMetadataError,
        ManifestValueError,
        UserError,
        WorkspaceStagingError,
    )
    from remote_destroy.types import DestroyOptions

    settings = get_settings()
    configure_logging(settings.log_level)

    builder = DockerBuilder(timeout=settings.build_timeout)
    destroyer = RemoteDestroyer.from_settings(settings, builder, destroy_image=image)
    options = DestroyOptions(
        name=name,
        namespace=namespace,
        manifest_path=manifest_path,
        destroy_volumes=volumes,
        force_destroy=force_destroy,
    )

    try:
        destroyer.destroy(options)
    except UserError as e:
        stage = destroyer.stage_log.stage
        console.print(f"[red]Destroy failed at stage '{stage}': {e}[/red]")
        if e.hint:
            console.print(f"[yellow]{e.hint}[/yellow]")
        raise typer.Exit(code=1) from None
    except (ClusterMetadataError, ManifestValueError, WorkspaceStagingError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None

    console.print(
        "[green]Development environment destroyed "
        f"(stage: {destroyer.stage_log.stage})[/green]"
    )


if __name__ == "__main__":
    app()
