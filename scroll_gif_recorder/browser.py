import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from urllib.parse import unquote, urlparse

from playwright.async_api import Page, async_playwright

logger = logging.getLogger(__name__)

ANIMATION_PLAYBACK_RATE = 0.1


def proxy_settings(proxy_url: Optional[str]) -> Optional[dict]:
    """Translate a proxy url into playwright's proxy option."""
    if not proxy_url:
        return None
    parsed = urlparse(proxy_url)
    server = f"{parsed.scheme}://{parsed.hostname}"
    if parsed.port:
        server += f":{parsed.port}"
    proxy = {"server": server}
    if parsed.username:
        proxy["username"] = unquote(parsed.username)
    if parsed.password:
        proxy["password"] = unquote(parsed.password)
    return proxy


@asynccontextmanager
async def open_page(headless: bool = True, proxy_url: Optional[str] = None) -> AsyncIterator[Page]:
    """Launch chromium and yield a fresh page, closing the browser afterwards."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(
            headless=headless,
            args=["--no-sandbox", "--disable-extensions"],
            proxy=proxy_settings(proxy_url),
        )
        try:
            context = await browser.new_context(device_scale_factor=1)
            yield await context.new_page()
        finally:
            await browser.close()


async def slow_down_animations(page) -> None:
    logger.info("Slowing down animations")
    session = await page.context.new_cdp_session(page)
    await asyncio.gather(
        session.send("Animation.enable"),
        session.send(
            "Animation.setPlaybackRate", {"playbackRate": ANIMATION_PLAYBACK_RATE}
        ),
    )


def _log_background_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"Could not slow down animations: {error}")


def start_slow_down_animations(page) -> asyncio.Task:
    """Fire off the playback rate change without waiting for it.

    It races the first captured frames and may not apply to them.
    """
    task = asyncio.create_task(slow_down_animations(page))
    task.add_done_callback(_log_background_failure)
    return task
