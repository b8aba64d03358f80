import logging

from scroll_gif_recorder.capture import add_frame
from scroll_gif_recorder.gif import GifAssembler
from scroll_gif_recorder.models import ScrollParameters

logger = logging.getLogger(__name__)

# documentElement rather than body, body height is not always the document height
PAGE_HEIGHT_JS = "() => document.documentElement.scrollHeight"
SCROLL_TOP_JS = "() => document.documentElement.scrollTop"
SCROLL_BY_JS = "(amount) => window.scrollBy(0, amount)"


class ScrollParameterError(ValueError):
    pass


def compute_scroll_parameters(
    viewport_height: int,
    scroll_percentage: float,
    document_height: int,
    scroll_top: int,
) -> ScrollParameters:
    """Work out where scrolling starts and how far each step goes.

    ``initial_position`` is the bottom edge of the viewport. The scroll loop
    stops once it reaches ``page_height``, so a step of zero would never
    finish and is rejected here.
    """
    if scroll_percentage <= 0:
        raise ScrollParameterError("scroll percentage must be greater than 0")

    step_size = round(viewport_height * scroll_percentage / 100)
    if step_size <= 0:
        raise ScrollParameterError(
            f"scroll step for {scroll_percentage}% of {viewport_height}px rounds to 0"
        )

    return ScrollParameters(
        page_height=document_height,
        initial_position=viewport_height + scroll_top,
        step_size=step_size,
    )


async def get_scroll_parameters(
    page, viewport_height: int, scroll_percentage: float
) -> ScrollParameters:
    page_height = await page.evaluate(PAGE_HEIGHT_JS)
    scroll_top = await page.evaluate(SCROLL_TOP_JS)
    return compute_scroll_parameters(
        viewport_height, scroll_percentage, page_height, scroll_top
    )


async def scroll_down_process(
    page, gif: GifAssembler, viewport_height: int, scroll_percentage: float
) -> int:
    """Capture a frame, scroll one step, repeat until the bottom of the page.

    Returns the number of frames added to the gif.
    """
    params = await get_scroll_parameters(page, viewport_height, scroll_percentage)
    logger.debug(f"Scroll parameters: {params}")
    scrolled_until = params.initial_position
    frames = 0

    while scrolled_until < params.page_height:
        await add_frame(page, gif)
        frames += 1

        logger.info(f"Scrolling down by {params.step_size} pixels")
        await page.evaluate(SCROLL_BY_JS, params.step_size)
        scrolled_until += params.step_size

    return frames
