import typer

from scroll_gif_recorder.cli.common import verbose_callback
from scroll_gif_recorder.cli.config import config_app
from scroll_gif_recorder.cli.api import api_app
from scroll_gif_recorder.cli.record import record

app = typer.Typer(
    name="scroll-gif",
    help="Record a web page scrolling into an animated gif.",
)
app.add_typer(config_app, name="config")
app.add_typer(api_app, name="api")
app.command(name="record")(record)


def version_callback(value: bool) -> None:
    """Callback function to print the version of the scroll-gif-recorder package.

    Args:
        value (bool): Boolean value to determine if the version should be printed.

    Raises:
        typer.Exit: If the value is True, the version will be printed and the program will exit.

    Example:
        version_callback(True)
    """
    if value:
        from scroll_gif_recorder.__about__ import __version__

        typer.echo(f"{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        callback=verbose_callback,
        help="show the log messages",
    ),
) -> None:
    return


if __name__ == "__main__":
    app()
