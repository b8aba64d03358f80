import typer

from scroll_gif_recorder.cli.common import verbose_callback
from scroll_gif_recorder.config import get_config
from scroll_gif_recorder.console import console

config_app = typer.Typer()


@config_app.callback()
def config(
    verbose: bool = typer.Option(
        False,
        callback=verbose_callback,
        help="show the log messages",
    ),
):
    "configuration cli"


@config_app.command()
def show(
    verbose: bool = typer.Option(
        False,
        callback=verbose_callback,
        help="show the log messages",
    ),
):
    console.print(get_config())
