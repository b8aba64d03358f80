from __future__ import annotations

import io
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from PIL import Image

from scroll_gif_recorder import compression
from scroll_gif_recorder.config import Config
from scroll_gif_recorder.scroll import PAGE_HEIGHT_JS, SCROLL_BY_JS, SCROLL_TOP_JS
from scroll_gif_recorder.storage import LocalDataset, LocalKeyValueStore


def png_bytes(width: int, height: int, color=(255, 0, 0)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeCDPSession:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, dict | None]] = []

    async def send(self, method: str, params: dict | None = None):
        if self.fail:
            raise RuntimeError("cdp session closed")
        self.sent.append((method, params))


class FakeContext:
    def __init__(self, session: FakeCDPSession):
        self.session = session

    async def new_cdp_session(self, page):
        return self.session


class FakePage:
    """Stands in for a playwright page.

    Screenshots are real pngs of the viewport size whose colour follows the
    scroll position, and every scroll, click and removal is recorded.
    """

    def __init__(
        self,
        document_height: int = 100,
        scroll_top: int = 0,
        selectors: tuple[str, ...] = (),
        screenshot_failures: int = 0,
        cdp_fails: bool = False,
    ):
        self.document_height = document_height
        self.scroll_top = scroll_top
        self.selectors = set(selectors)
        self.screenshot_failures = screenshot_failures
        self.viewport: dict | None = None
        self.visited: list[tuple[str, str | None]] = []
        self.scrolls: list[int] = []
        self.screenshot_positions: list[int] = []
        self.clicked: list[str] = []
        self.removed: list[str] = []
        self.context = FakeContext(FakeCDPSession(fail=cdp_fails))

    async def set_viewport_size(self, size: dict) -> None:
        self.viewport = size

    async def goto(self, url: str, wait_until: str | None = None, timeout: float | None = None):
        self.visited.append((url, wait_until))

    async def screenshot(self, type: str = "png", full_page: bool = False) -> bytes:
        if self.screenshot_failures:
            self.screenshot_failures -= 1
            return b"not a png"
        self.screenshot_positions.append(self.scroll_top)
        shade = min(self.scroll_top // 4, 255)
        return png_bytes(self.viewport["width"], self.viewport["height"], (shade, 80, 160))

    async def evaluate(self, expression: str, arg=None):
        if expression == PAGE_HEIGHT_JS:
            return self.document_height
        if expression == SCROLL_TOP_JS:
            return self.scroll_top
        if expression == SCROLL_BY_JS:
            self.scrolls.append(arg)
            self.scroll_top += arg
            return None
        raise AssertionError(f"unexpected script {expression}")

    async def wait_for_selector(self, selector: str, timeout: float | None = None):
        if selector not in self.selectors:
            raise TimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def click(self, selector: str) -> None:
        self.clicked.append(selector)

    async def eval_on_selector(self, selector: str, expression: str) -> None:
        self.selectors.discard(selector)
        self.removed.append(selector)


def fake_open_page(page: FakePage, launches: list | None = None):
    @asynccontextmanager
    async def open_page(**kwargs):
        if launches is not None:
            launches.append(kwargs)
        yield page

    return open_page


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        _env_file=None,
        storage_dir=str(tmp_path / "storage"),
        max_request_retries=0,
        selector_timeout_ms=10,
        page_timeout_secs=30,
    )


@pytest.fixture
def key_value_store(config: Config) -> LocalKeyValueStore:
    return LocalKeyValueStore(config.storage_dir)


@pytest.fixture
def dataset(config: Config) -> LocalDataset:
    return LocalDataset(config.storage_dir)


@pytest.fixture
def gifsicle_calls(monkeypatch) -> list[list[str]]:
    """Replace the gifsicle subprocess, tagging output with the options used."""
    calls: list[list[str]] = []

    async def fake_run_gifsicle(cmd: list[str], gif_buffer: bytes) -> bytes:
        calls.append(cmd)
        return b"|".join([*(c.encode() for c in cmd[1:]), gif_buffer[:6]])

    monkeypatch.setattr(compression, "run_gifsicle", fake_run_gifsicle)
    return calls
