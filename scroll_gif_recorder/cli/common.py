import logging

from scroll_gif_recorder.console import setup_logging


def verbose_callback(value: bool) -> bool:
    if value:
        setup_logging(verbose=True)
    elif not logging.getLogger().handlers:
        setup_logging()
    return value
