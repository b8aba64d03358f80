import asyncio
import math

import pytest

from conftest import FakePage
from scroll_gif_recorder.gif import GifAssembler
from scroll_gif_recorder.scroll import (
    ScrollParameterError,
    compute_scroll_parameters,
    scroll_down_process,
)


def test_compute_scroll_parameters():
    params = compute_scroll_parameters(
        viewport_height=1000, scroll_percentage=50, document_height=2000, scroll_top=0
    )
    assert params.page_height == 2000
    assert params.initial_position == 1000
    assert params.step_size == 500


def test_initial_position_includes_scroll_top():
    params = compute_scroll_parameters(768, 10, 3000, 250)
    assert params.initial_position == 768 + 250
    assert params.step_size == round(76.8)


@pytest.mark.parametrize("scroll_percentage", [0, -5])
def test_non_positive_scroll_percentage_rejected(scroll_percentage):
    with pytest.raises(ScrollParameterError):
        compute_scroll_parameters(1000, scroll_percentage, 2000, 0)


def test_step_rounding_to_zero_rejected():
    with pytest.raises(ScrollParameterError):
        compute_scroll_parameters(10, 1, 2000, 0)


def run_scroll(page: FakePage, viewport_height: int, scroll_percentage: int):
    page.viewport = {"width": 4, "height": viewport_height}
    gif = GifAssembler()
    gif.open(4, viewport_height, 10)
    frames = asyncio.run(scroll_down_process(page, gif, viewport_height, scroll_percentage))
    return frames, gif


def test_scroll_down_scenario():
    page = FakePage(document_height=2000)
    frames, gif = run_scroll(page, 1000, 50)

    assert frames == 2
    assert gif.frame_count == 2
    # each frame is taken before the scroll that follows it
    assert page.screenshot_positions == [0, 500]
    assert page.scrolls == [500, 500]


def test_page_that_does_not_scroll_adds_no_frames():
    page = FakePage(document_height=600)
    frames, _ = run_scroll(page, 600, 25)
    assert frames == 0
    assert page.scrolls == []


def test_page_already_at_bottom_adds_no_frames():
    page = FakePage(document_height=1500, scroll_top=900)
    frames, _ = run_scroll(page, 600, 25)
    assert frames == 0


@pytest.mark.parametrize(
    "document_height,viewport_height,scroll_percentage",
    [(2000, 100, 10), (1234, 200, 33), (5000, 400, 100), (401, 400, 1), (999, 120, 7)],
)
def test_scroll_loop_terminates_with_increasing_positions(
    document_height, viewport_height, scroll_percentage
):
    page = FakePage(document_height=document_height)
    frames, _ = run_scroll(page, viewport_height, scroll_percentage)

    step = round(viewport_height * scroll_percentage / 100)
    assert frames <= math.ceil(document_height / step) + 1
    positions = page.screenshot_positions
    assert all(a < b for a, b in zip(positions, positions[1:]))
    assert viewport_height + page.scroll_top >= document_height
