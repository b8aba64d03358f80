from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ProxyConfiguration(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    proxy_urls: list[str] = []

    @field_validator("proxy_urls")
    @classmethod
    def validate_proxy_urls(cls, v: list[str]) -> list[str]:
        for proxy_url in v:
            parsed = urlparse(proxy_url)
            if not parsed.scheme or not parsed.hostname:
                raise ValueError(f"invalid proxy url: {proxy_url}")
        return v

    def for_attempt(self, attempt: int) -> Optional[str]:
        """Pick the proxy url for a retry attempt, rotating through the list."""
        if not self.proxy_urls:
            return None
        return self.proxy_urls[attempt % len(self.proxy_urls)]


class RecordingInput(BaseModel):
    """Options for one recording run.

    Accepts both snake_case names and the camelCase keys used by the actor
    input schema, so an ``INPUT.json`` can be loaded as is.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    viewport_width: int = Field(1366, gt=0)
    viewport_height: int = Field(768, gt=0)
    slow_down_animations: bool = False
    wait_to_load_page: int = Field(0, ge=0)
    cookie_window_selector: Optional[str] = None
    frame_rate: int = Field(7, gt=0, le=100)
    recording_time_before_action: int = Field(1000, ge=0)
    scroll_down: bool = True
    scroll_percentage: int = Field(10, ge=1, le=100)
    click_selector: Optional[str] = None
    recording_time_after_click: int = Field(1000, ge=0)
    lossy_compression: bool = True
    lossless_compression: bool = Field(False, alias="loslessCompression")
    proxy_configuration: Optional[ProxyConfiguration] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError("url must be an absolute http(s) url")
        return v

    @field_validator("cookie_window_selector", "click_selector")
    @classmethod
    def empty_selector_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def hostname(self) -> str:
        return urlparse(self.url).hostname

    @property
    def base_file_name(self) -> str:
        return f"{self.hostname}-scroll"


class ScrollParameters(BaseModel):
    page_height: int
    initial_position: int
    step_size: int


class OutputRecord(BaseModel):
    """Record pushed to the dataset once the artifacts are stored."""

    model_config = ConfigDict(populate_by_name=True)

    gif_url_original: Optional[str] = Field(None, alias="gifUrlOriginal")
    gif_url_lossy: Optional[str] = Field(None, alias="gifUrlLossy")
    gif_url_lossless: Optional[str] = Field(None, alias="gifUrlLosless")

    def to_dataset_item(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    PAGE_LOADING = "page_loading"
    PRE_ACTION_WAIT = "pre_action_wait"
    COOKIE_DISMISS = "cookie_dismiss"
    INITIAL_CAPTURE = "initial_capture"
    SCROLL_CAPTURE = "scroll_capture"
    CLICK_AND_CAPTURE = "click_and_capture"
    FINALIZING = "finalizing"
    COMPRESSING = "compressing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class RunStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunResult(BaseModel):
    url: str
    status: RunStatus
    state: RunState
    attempts: int
    frame_count: int = 0
    error: Optional[str] = None
    record: Optional[OutputRecord] = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCEEDED
