"""CLI entry point"""

from pathlib import Path
from typing import Optional

import grpc
import toml
import typer
from rich.console import Console
from rich.markup import escape

from ..client import DEFAULT_TARGET, GreeterClient
from ..config import Config, get_config_path, load_config, save_config
from ..errors import GreeterError
from ..observability import setup_logging
from ..server import serve as run_server

app = typer.Typer(help="Greeter gRPC service with OpenTelemetry")
config_app = typer.Typer(help="Show or create the configuration file")
app.add_typer(config_app, name="config")

console = Console()


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Run the Greeter server until interrupted"""
    try:
        config = load_config(config_path)
        if port is not None:
            config.server.port = port

        setup_logging(
            level=config.logging.level,
            json_output=config.logging.json_output,
            log_file=config.logging.log_file,
        )

        run_server(config)
    except GreeterError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command()
def greet(
    name: str = typer.Argument("world", help="Name to greet"),
    target: str = typer.Option(DEFAULT_TARGET, "--target", "-t", help="Server address"),
    timeout: float = typer.Option(10.0, "--timeout", help="Call deadline in seconds"),
):
    """Call SayHello on a running server"""
    try:
        with GreeterClient(target) as client:
            message = client.say_hello(name, timeout=timeout)
    except grpc.RpcError as e:
        console.print(f"[red]RPC failed: {e.code().name} {escape(e.details() or '')}[/red]")
        raise typer.Exit(1)

    console.print(f"Greeter client received: [cyan]{escape(message)}[/cyan]")


@config_app.command("show")
def config_show(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Print the effective configuration"""
    try:
        config = load_config(config_path)
    except GreeterError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"[dim]{config_path or get_config_path()}[/dim]\n")
    console.print(toml.dumps(config.to_dict()), markup=False)


@config_app.command("init")
def config_init(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a configuration file with default values"""
    path = Path(config_path or get_config_path()).expanduser()
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists. Use --force to overwrite.[/yellow]")
        raise typer.Exit(1)

    save_config(Config(), path)
    console.print(f"[green]Configuration saved to {path}[/green]")


if __name__ == "__main__":
    app()
