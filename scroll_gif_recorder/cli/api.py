import os
import typer

from scroll_gif_recorder.cli.common import verbose_callback
from scroll_gif_recorder.config import get_config
from scroll_gif_recorder.console import console
import uvicorn

api_app = typer.Typer()


@api_app.callback()
def api(
    verbose: bool = typer.Option(
        False,
        callback=verbose_callback,
        help="show the log messages",
    ),
):
    "api server cli"


@api_app.command()
def run(
    env: str = typer.Option(
        "dev",
        help="environment to run",
    ),
):
    os.environ["ENV"] = env
    config = get_config()
    console.log(f"running {env}")
    uvicorn.run(
        "scroll_gif_recorder.api.app:app",
        host=config.api_server_host,
        port=config.api_server_port,
    )
