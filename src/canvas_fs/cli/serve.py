from typing import Annotated

import typer
from rich.console import Console

serve_app = typer.Typer(help="Start servers.")
console = Console()


@serve_app.command("api")
def api(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8000,
) -> None:
    """Start the REST and WebSocket API server."""
    import uvicorn

    from canvas_fs.api.app import create_app
    from canvas_fs.config import Settings, configure_logging

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)
    console.print(f"[green]Starting API server on {host}:{port} ({settings.storage} storage)[/green]")
    uvicorn.run(app, host=host, port=port)
