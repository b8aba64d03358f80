"""Streaming animated GIF encoder.

Frames are quantized and LZW-encoded one at a time with Pillow's GIF plugin,
and the encoded bytes are handed to ``on_data`` as soon as they are ready, so
a recording never holds more than one raw frame in memory.

The header carries the NETSCAPE2.0 loop extension. Every frame carries its
own adaptive colour table and the same delay.
"""

import logging
from typing import Callable, Optional

from PIL import GifImagePlugin, Image

logger = logging.getLogger(__name__)

BYTES_PER_PIXEL = 3
# 0 loops forever
REPEAT = 0

_TRAILER = b";"


class EncoderStateError(Exception):
    """Encoder methods called out of open -> append_frame -> finalize order."""


class FrameSizeError(ValueError):
    """Pixel buffer does not match the canvas size."""


def frame_delay(frame_rate: float) -> int:
    """Delay between frames in hundredths of a second, at least 1.

    Viewers play a delay of 0 at their own default speed.
    """
    return max(1, round(100 / frame_rate))


class GifAssembler:
    """Incremental encoder for a looping, fixed frame rate animated GIF.

    Usage::

        chunks = []
        gif = GifAssembler(on_data=chunks.append)
        gif.open(width, height, frame_rate)
        gif.append_frame(pixels)
        gif.finalize()
        data = b"".join(chunks)
    """

    def __init__(self, on_data: Optional[Callable[[bytes], None]] = None):
        self._chunks: list[bytes] = []
        self._on_data = on_data
        self.width: Optional[int] = None
        self.height: Optional[int] = None
        self.delay: Optional[int] = None
        self.repeat = REPEAT
        self.header_written = False
        self.finished = False
        self.frame_count = 0

    @property
    def frame_size(self) -> int:
        return self.width * self.height * BYTES_PER_PIXEL

    def _emit(self, chunk: bytes) -> None:
        if self._on_data is not None:
            self._on_data(chunk)
        else:
            self._chunks.append(chunk)

    def open(self, width: int, height: int, frame_rate: float) -> None:
        """Write the stream header. Must be called exactly once."""
        if self.header_written:
            raise EncoderStateError("header already written")
        if width <= 0 or height <= 0:
            raise ValueError(f"invalid canvas size {width}x{height}")
        if frame_rate <= 0:
            raise ValueError("frame rate must be positive")

        self.width = width
        self.height = height
        self.delay = frame_delay(frame_rate)

        canvas = Image.new("P", (width, height))
        header, _ = GifImagePlugin.getheader(canvas, info={"loop": self.repeat})
        self.header_written = True
        self._emit(b"".join(header))

    def encode_frame(self, pixels: bytes) -> bytes:
        image = Image.frombytes("RGB", (self.width, self.height), pixels)
        paletted = image.convert("P", palette=Image.Palette.ADAPTIVE, colors=256)
        # duration is in milliseconds, the control block stores hundredths
        chunks = GifImagePlugin.getdata(
            paletted, duration=self.delay * 10, include_color_table=True
        )
        return b"".join(chunks)

    def append_frame(self, pixels: bytes) -> None:
        """Encode one RGB frame and emit it."""
        if not self.header_written:
            raise EncoderStateError("open() must be called before append_frame()")
        if self.finished:
            raise EncoderStateError("cannot append a frame to a finished gif")
        if len(pixels) != self.frame_size:
            raise FrameSizeError(
                f"frame has {len(pixels)} bytes, expected {self.frame_size} "
                f"for a {self.width}x{self.height} canvas"
            )

        self._emit(self.encode_frame(pixels))
        self.frame_count += 1
        logger.debug("Added frame %s to gif", self.frame_count)

    def finalize(self) -> None:
        """Write the trailer. No frames may be added afterwards."""
        if not self.header_written:
            raise EncoderStateError("open() must be called before finalize()")
        if self.finished:
            raise EncoderStateError("gif already finalized")
        self.finished = True
        self._emit(_TRAILER)

    def getvalue(self) -> bytes:
        """Joined output, only kept when no ``on_data`` callback was given."""
        return b"".join(self._chunks)
