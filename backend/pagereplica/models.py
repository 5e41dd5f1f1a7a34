"""Pydantic models shared by every stage of an extraction job."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SLUG_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")

AssetKind = Literal["input", "button", "image", "icon", "heading", "link", "video"]
VideoType = Literal["html5", "youtube", "vimeo", "wistia", "widget", "keen-slide"]
BlockType = Literal["Hero", "ProductGrid", "FormBlock", "CTA", "SearchBlock", "Generic"]


class JobState(str, Enum):
    CREATED = "created"
    LOADING = "loading"
    STABILIZING = "stabilizing"
    SURVEYING = "surveying"
    SANITIZING = "sanitizing"
    RECONSTRUCTING = "reconstructing"
    INDEXING = "indexing"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Survey
# ---------------------------------------------------------------------------

class Asset(BaseModel):
    """One surveyed element. Taken once per job and never mutated."""

    model_config = ConfigDict(frozen=True)

    type: AssetKind
    tag: str = ""
    input_type: str | None = None
    name: str | None = None
    placeholder: str | None = None
    label: str | None = None
    aria_label: str | None = None
    element_id: str | None = None
    class_name: str | None = None
    text: str | None = None
    href: str | None = None
    src: str | None = None
    alt: str | None = None
    poster: str | None = None
    title: str | None = None
    parent_key: str = "root"
    markup: str = ""


class Carousel(BaseModel):
    selector: str
    slides: int = 0
    sample: str = ""


class FormSummary(BaseModel):
    action: str = ""
    method: str = "get"
    fields: list[str] = []


class ButtonSummary(BaseModel):
    text: str
    href: str | None = None


class VideoSummary(BaseModel):
    src: str | None = None
    poster: str | None = None


class Collections(BaseModel):
    carousels: list[Carousel] = []
    forms: list[FormSummary] = []
    buttons: list[ButtonSummary] = []
    videos: list[VideoSummary] = []


# ---------------------------------------------------------------------------
# Videos
# ---------------------------------------------------------------------------

class Dimensions(BaseModel):
    width: int = 640
    height: int = 360


class Playback(BaseModel):
    controls: bool = True
    autoplay: bool = False
    loop: bool = False
    muted: bool = False
    playsinline: bool = False
    poster: str | None = None


class VideoRecord(BaseModel):
    index: int
    type: VideoType
    source_urls: list[str] = []
    thumbnail_url: str | None = None
    title: str | None = None
    dimensions: Dimensions = Field(default_factory=Dimensions)
    playback: Playback = Field(default_factory=Playback)
    sample: str = ""


# ---------------------------------------------------------------------------
# Blocks, products, search
# ---------------------------------------------------------------------------

class ProductCard(BaseModel):
    assets: list[Asset] = []
    score: int = 0
    clues: list[str] = []
    title: str | None = None
    url: str | None = None
    price: str | None = None
    description: str | None = None
    markup: str = ""


class Block(BaseModel):
    type: BlockType
    parent_key: str = "root"
    assets: list[Asset] = []
    classnames: str = ""
    detection_reason: str = ""
    confidence: float = 0.5
    products: list[ProductCard] = []
    selector_used: str | None = None
    debug: list[str] = []


class SearchDescriptor(BaseModel):
    input_markup: str
    submit_button_markup: str | None = None
    icon_markup: str | None = None
    form_action: str = ""
    form_method: str = "get"
    container_markup: str = ""


# ---------------------------------------------------------------------------
# Job + output
# ---------------------------------------------------------------------------

class Metadata(BaseModel):
    url: str
    title: str = ""
    extracted_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    platform: str = "custom"
    framework: str = "vanilla"
    videos: list[VideoRecord] = []
    blocks: list[Block] = []
    assets: list[Asset] = []
    search: SearchDescriptor | None = None
    collections: Collections = Field(default_factory=Collections)
    screenshot_path: str | None = None
    search_index_path: str | None = None
    warnings: list[str] = []


class ExtractionJob(BaseModel):
    url: str
    slug: str
    options: dict = {}
    state: JobState = JobState.CREATED
    warnings: list[str] = []
    failures: list[str] = []

    @field_validator("slug")
    @classmethod
    def slug_is_filesystem_safe(cls, value: str) -> str:
        if not SLUG_PATTERN.match(value):
            raise ValueError(f"slug must match {SLUG_PATTERN.pattern}: {value!r}")
        return value


class ExtractionResult(BaseModel):
    slug: str
    state: JobState
    html_path: str
    metadata_path: str
    search_index_path: str
    handler_path: str
    screenshot_path: str | None = None
