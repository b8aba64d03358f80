import asyncio
import io
import logging
import math

from PIL import Image, UnidentifiedImageError

from scroll_gif_recorder.gif import GifAssembler

logger = logging.getLogger(__name__)


class FrameDecodeError(Exception):
    """A viewport snapshot could not be decoded into pixels."""


async def take_screenshot(page) -> bytes:
    """Take a png snapshot of the current viewport"""
    logger.debug("Taking screenshot")
    return await page.screenshot(type="png", full_page=False)


def decode_png(buffer: bytes) -> tuple[int, int, bytes]:
    """Decode a png snapshot into (width, height, rgb pixels)."""
    try:
        with Image.open(io.BytesIO(buffer)) as image:
            if image.format != "PNG":
                raise FrameDecodeError(f"expected a png snapshot, got {image.format}")
            rgb = image.convert("RGB")
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise FrameDecodeError(f"could not decode snapshot: {e}") from e
    return rgb.width, rgb.height, rgb.tobytes()


async def capture_frame(page) -> bytes:
    """Snapshot the viewport and return its rgb pixels."""
    screenshot = await take_screenshot(page)
    _, _, pixels = decode_png(screenshot)
    return pixels


async def add_frame(page, gif: GifAssembler) -> None:
    """Capture one frame and append it to the gif.

    Encoding runs in a worker thread; the next capture waits for it.
    """
    pixels = await capture_frame(page)
    await asyncio.to_thread(gif.append_frame, pixels)


def burst_frame_count(recording_time: int, frame_rate: int) -> int:
    return math.ceil(recording_time / 1000 * frame_rate)


async def record(page, gif: GifAssembler, recording_time: int, frame_rate: int) -> int:
    """Capture frames back to back for ``recording_time`` ms worth of gif."""
    frames = burst_frame_count(recording_time, frame_rate)
    logger.info(f"Recording {frames} frames")
    for _ in range(frames):
        await add_frame(page, gif)
    return frames
