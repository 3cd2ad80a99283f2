import typer

from canvas_fs.cli.db import db_app
from canvas_fs.cli.project import project_app
from canvas_fs.cli.serve import serve_app
from canvas_fs.cli.tree import tree_app
from canvas_fs.config import configure_logging

app = typer.Typer(
    name="canvas-fs",
    help="Canvas FS CLI: manage projects and their file trees.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.add_typer(db_app, name="db")
app.add_typer(project_app, name="project")
app.add_typer(tree_app, name="tree")
app.add_typer(serve_app, name="serve")


@app.callback()
def _configure(
    log_level: str = typer.Option("INFO", "--log-level", envvar="CANVAS_FS_LOG_LEVEL", help="Logging level."),
) -> None:
    configure_logging(log_level)


def main() -> None:
    app()
