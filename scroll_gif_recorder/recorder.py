"""Recording run: load a page, record it scrolling into a gif, store the gif.

One :class:`ScrollGifRecorder` drives one attempt through its states in
order. :func:`run_recording` retries whole attempts, each on a fresh page,
and reports the outcome as a :class:`RunResult`.
"""

import asyncio
import logging
from typing import Optional

from scroll_gif_recorder import browser
from scroll_gif_recorder.capture import record
from scroll_gif_recorder.compression import (
    LOSSLESS,
    LOSSY,
    UnsupportedCompressionError,
    compress_gif,
)
from scroll_gif_recorder.config import Config
from scroll_gif_recorder.gif import EncoderStateError, FrameSizeError, GifAssembler
from scroll_gif_recorder.models import (
    OutputRecord,
    RecordingInput,
    RunResult,
    RunState,
    RunStatus,
)
from scroll_gif_recorder.scroll import ScrollParameterError, scroll_down_process

logger = logging.getLogger(__name__)

GIF_CONTENT_TYPE = "image/gif"
ORIGINAL = "original"

# the same input fails the same way on every attempt
NOT_RETRYABLE = (
    EncoderStateError,
    FrameSizeError,
    ScrollParameterError,
    UnsupportedCompressionError,
)

FILE_SUFFIXES = {
    ORIGINAL: "_original",
    LOSSY: "_lossy-comp",
    LOSSLESS: "_losless-comp",
}


def artifact_name(recording_input: RecordingInput, variant: str) -> str:
    return f"{recording_input.base_file_name}{FILE_SUFFIXES[variant]}"


class PageTimeoutError(Exception):
    pass


class ScrollGifRecorder:
    def __init__(
        self,
        recording_input: RecordingInput,
        config: Config,
        key_value_store,
        dataset,
    ):
        self.input = recording_input
        self.config = config
        self.key_value_store = key_value_store
        self.dataset = dataset
        self.state = RunState.NOT_STARTED
        self.chunks: list[bytes] = []
        self.gif = GifAssembler(on_data=self.chunks.append)
        self._slow_down_task: Optional[asyncio.Task] = None

    @property
    def frame_count(self) -> int:
        return self.gif.frame_count

    def _enter(self, state: RunState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state

    async def load_page(self, page) -> None:
        self._enter(RunState.PAGE_LOADING)
        width, height = self.input.viewport_width, self.input.viewport_height
        logger.info(f"Setting page viewport to {width}x{height}")
        await page.set_viewport_size({"width": width, "height": height})

        if self.input.slow_down_animations:
            self._slow_down_task = browser.start_slow_down_animations(page)

        logger.info(f"Opening page: {self.input.url}")
        await page.goto(
            self.input.url,
            wait_until="networkidle",
            timeout=self.config.navigation_timeout_ms,
        )

    async def dismiss_cookie_window(self, page) -> None:
        self._enter(RunState.COOKIE_DISMISS)
        selector = self.input.cookie_window_selector
        try:
            await page.wait_for_selector(
                selector, timeout=self.config.selector_timeout_ms
            )
            logger.info("Removing cookie pop-up window")
            await page.eval_on_selector(selector, "(el) => el.remove()")
        except Exception as e:
            logger.warning(f"Selector for cookie pop-up window is likely incorrect: {e}")

    async def click_element(self, page) -> bool:
        selector = self.input.click_selector
        try:
            await page.wait_for_selector(
                selector, timeout=self.config.selector_timeout_ms
            )
            logger.info(f"Clicking element with selector {selector}")
            await page.click(selector)
        except Exception as e:
            logger.warning(f"Click selector is likely incorrect: {e}")
            return False
        return True

    async def record_page(self, page) -> bytes:
        """Drive the page and return the finished gif."""
        try:
            await self.load_page(page)

            if self.input.wait_to_load_page:
                self._enter(RunState.PRE_ACTION_WAIT)
                logger.info(f"Wait for {self.input.wait_to_load_page} ms")
                await asyncio.sleep(self.input.wait_to_load_page / 1000)

            if self.input.cookie_window_selector:
                await self.dismiss_cookie_window(page)

            self._enter(RunState.INITIAL_CAPTURE)
            self.gif.open(
                self.input.viewport_width,
                self.input.viewport_height,
                self.input.frame_rate,
            )
            # repeat the first view so the gif pauses before it starts moving
            await record(
                page,
                self.gif,
                self.input.recording_time_before_action,
                self.input.frame_rate,
            )

            if self.input.scroll_down:
                self._enter(RunState.SCROLL_CAPTURE)
                await scroll_down_process(
                    page,
                    self.gif,
                    self.input.viewport_height,
                    self.input.scroll_percentage,
                )

            if self.input.click_selector:
                self._enter(RunState.CLICK_AND_CAPTURE)
                if await self.click_element(page):
                    await record(
                        page,
                        self.gif,
                        self.input.recording_time_after_click,
                        self.input.frame_rate,
                    )
        finally:
            if self._slow_down_task is not None and not self._slow_down_task.done():
                self._slow_down_task.cancel()

        self._enter(RunState.FINALIZING)
        self.gif.finalize()
        gif_buffer = b"".join(self.chunks)
        logger.info(f"Recorded {self.frame_count} frames ({len(gif_buffer)} bytes)")
        return gif_buffer

    async def compress(self, gif_buffer: bytes) -> dict[str, bytes]:
        self._enter(RunState.COMPRESSING)
        artifacts = {ORIGINAL: gif_buffer}
        if self.input.lossy_compression:
            artifacts[LOSSY] = await compress_gif(
                gif_buffer, LOSSY, self.config.gifsicle_path
            )
        if self.input.lossless_compression:
            artifacts[LOSSLESS] = await compress_gif(
                gif_buffer, LOSSLESS, self.config.gifsicle_path
            )
        return artifacts

    async def persist(self, artifacts: dict[str, bytes]) -> OutputRecord:
        self._enter(RunState.PERSISTING)
        urls = {}
        for variant, buffer in artifacts.items():
            name = artifact_name(self.input, variant)
            await self.key_value_store.set_value(name, buffer, GIF_CONTENT_TYPE)
            urls[variant] = self.key_value_store.get_public_url(name)

        output = OutputRecord(
            gif_url_original=urls.get(ORIGINAL),
            gif_url_lossy=urls.get(LOSSY),
            gif_url_lossless=urls.get(LOSSLESS),
        )
        await self.dataset.push_record(output.to_dataset_item())
        return output

    async def run(self, open_page=browser.open_page, proxy_url: Optional[str] = None) -> OutputRecord:
        try:
            async with open_page(headless=self.config.headless, proxy_url=proxy_url) as page:
                try:
                    gif_buffer = await asyncio.wait_for(
                        self.record_page(page), timeout=self.config.page_timeout_secs
                    )
                except asyncio.TimeoutError as e:
                    raise PageTimeoutError(
                        f"Page interaction timed out after {self.config.page_timeout_secs}s "
                        f"in state {self.state.value}"
                    ) from e

            artifacts = await self.compress(gif_buffer)
            output = await self.persist(artifacts)
        except Exception:
            self._enter(RunState.FAILED)
            raise

        self._enter(RunState.DONE)
        return output


async def run_recording(
    recording_input: RecordingInput,
    config: Config,
    *,
    key_value_store=None,
    dataset=None,
    open_page=browser.open_page,
) -> RunResult:
    """Record ``recording_input.url``, retrying the whole visit on failure."""
    key_value_store = key_value_store or config.key_value_store
    dataset = dataset or config.dataset
    max_attempts = config.max_request_retries + 1
    last_error = None
    recorder = None
    attempts = 0

    for attempt in range(max_attempts):
        attempts = attempt + 1
        proxy_url = None
        if recording_input.proxy_configuration:
            proxy_url = recording_input.proxy_configuration.for_attempt(attempt)

        recorder = ScrollGifRecorder(recording_input, config, key_value_store, dataset)
        try:
            output = await recorder.run(open_page, proxy_url)
        except NOT_RETRYABLE as e:
            last_error = str(e) or e.__class__.__name__
            logger.warning(
                f"Attempt {attempts}/{max_attempts} for {recording_input.url} failed, not retrying: {last_error}"
            )
            break
        except Exception as e:
            last_error = str(e) or e.__class__.__name__
            logger.warning(
                f"Attempt {attempts}/{max_attempts} for {recording_input.url} failed: {last_error}"
            )
            continue

        logger.info("Recording finished")
        return RunResult(
            url=recording_input.url,
            status=RunStatus.SUCCEEDED,
            state=recorder.state,
            attempts=attempts,
            frame_count=recorder.frame_count,
            record=output,
        )

    logger.error(f"Recording {recording_input.url} failed: {last_error}")
    return RunResult(
        url=recording_input.url,
        status=RunStatus.FAILED,
        state=recorder.state,
        attempts=attempts,
        frame_count=recorder.frame_count,
        error=last_error,
    )
