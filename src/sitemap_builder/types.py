"""Type definitions for the sitemap builder."""

from dataclasses import MISSING, dataclass, field, fields
from enum import Enum
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Pattern, Sequence, Union


class ChangeFrequency(Enum):
    """Sitemap change frequency values."""
    ALWAYS = "always"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    NEVER = "never"


class RobotsAction(Enum):
    """Outcome of a robots.txt update."""
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class Image:
    """Image entry for the image sitemap extension."""
    loc: str
    caption: Optional[str] = None
    title: Optional[str] = None
    geo_location: Optional[str] = None
    license: Optional[str] = None


@dataclass
class VideoRestriction:
    relationship: str
    countries: List[str] = field(default_factory=list)


@dataclass
class VideoPlatform:
    relationship: str
    platforms: List[str] = field(default_factory=list)


@dataclass
class VideoUploader:
    name: str
    info: Optional[str] = None


@dataclass
class Video:
    """Video entry for the video sitemap extension."""
    thumbnail_loc: str
    title: str
    description: str
    content_loc: Optional[str] = None
    player_loc: Optional[str] = None
    duration: Optional[int] = None
    expiration_date: Optional[str] = None
    rating: Optional[float] = None
    view_count: Optional[int] = None
    publication_date: Optional[str] = None
    family_friendly: Optional[bool] = None
    restriction: Optional[VideoRestriction] = None
    platform: Optional[VideoPlatform] = None
    requires_subscription: Optional[bool] = None
    uploader: Optional[VideoUploader] = None
    live: Optional[bool] = None
    tag: Optional[List[str]] = None

    def __post_init__(self):
        self.restriction = _build(VideoRestriction, self.restriction)
        self.platform = _build(VideoPlatform, self.platform)
        self.uploader = _build(VideoUploader, self.uploader)


@dataclass
class NewsPublication:
    name: str
    language: str


@dataclass
class News:
    """Article metadata for the news sitemap extension."""
    publication: NewsPublication
    publication_date: str
    title: str
    keywords: Optional[str] = None
    stock_tickers: Optional[str] = None

    def __post_init__(self):
        self.publication = _build(NewsPublication, self.publication)


@dataclass
class Alternate:
    """hreflang alternate of a page."""
    href: str
    hreflang: str


@dataclass
class Route:
    """
    A single page entry destined for a sitemap document.

    Extension records may be given as plain mappings; they are converted to
    their dataclasses on construction (including through
    ``dataclasses.replace``), so serialization only ever sees records.
    """
    url: str
    lastmod: Optional[str] = None
    changefreq: Optional[Union[ChangeFrequency, str]] = None
    priority: Optional[float] = None
    images: Optional[List[Image]] = None
    videos: Optional[List[Video]] = None
    news: Optional[News] = None
    alternates: Optional[List[Alternate]] = None

    def __post_init__(self):
        self.images = _build_list(Image, self.images)
        self.videos = _build_list(Video, self.videos)
        self.news = _build(News, self.news)
        self.alternates = _build_list(Alternate, self.alternates)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Route":
        """Build a route, including extension records, from a plain mapping.

        Values are copied as given; checking them is the validator's job.
        """
        return _build(cls, data)


def _build(record_type, item):
    """Convert a mapping to ``record_type``; anything else is returned unchanged.

    Unknown keys are ignored and missing required fields are set to None,
    leaving both for the validator to report.
    """
    if not isinstance(item, Mapping):
        return item
    values = {}
    for record_field in fields(record_type):
        if record_field.name in item:
            values[record_field.name] = item[record_field.name]
        elif record_field.default is MISSING and record_field.default_factory is MISSING:
            values[record_field.name] = None
    return record_type(**values)


def _build_list(record_type, items):
    if not isinstance(items, (list, tuple)):
        return items
    return [_build(record_type, item) for item in items]


RouteTransformer = Callable[[Route], Union[Optional[Route], Awaitable[Optional[Route]]]]
RouteSerializer = Callable[[List[Route]], Union[str, Awaitable[str]]]
RouteSource = Union[Sequence[Any], Callable[[], Any]]
ExcludePattern = Union[str, Pattern[str]]


@dataclass
class GenerationOptions:
    """Options for one run of the generation pipeline."""
    hostname: Optional[str] = None
    exclude: List[ExcludePattern] = field(default_factory=list)
    changefreq: Optional[Union[ChangeFrequency, str]] = None
    priority: Optional[float] = None
    lastmod: Optional[str] = None
    transform: Optional[RouteTransformer] = None
    serialize: Optional[RouteSerializer] = None
    max_urls: int = 50000
    max_bytes: int = 45 * 1024 * 1024
    base_filename: str = "sitemap"
    enable_splitting: bool = True
    skip_validation: bool = False


@dataclass
class ValidationError:
    """A single schema violation found in a route."""
    code: str
    message: str
    path: str
    value: Any = None
    suggestion: Optional[str] = None


@dataclass
class ValidationResult:
    """Outcome of validating a list of routes."""
    valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    route_count: int = 0
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, route_count: int, warnings: Optional[List[str]] = None) -> "ValidationResult":
        return cls(valid=True, errors=[], route_count=route_count, warnings=list(warnings or []))

    @classmethod
    def failure(
        cls,
        route_count: int,
        errors: List[ValidationError],
        warnings: Optional[List[str]] = None,
    ) -> "ValidationResult":
        return cls(valid=False, errors=errors, route_count=route_count, warnings=list(warnings or []))


@dataclass
class SitemapChunk:
    """One document produced by the splitter."""
    index: int
    filename: str
    routes: List[Route]
    xml: str
    byte_size: int


@dataclass
class SplitResult:
    """Result of splitting routes across documents."""
    chunks: List[SitemapChunk]
    was_split: bool = False
    index_xml: Optional[str] = None


@dataclass
class SitemapReference:
    """An entry of a sitemap index."""
    loc: str
    lastmod: Optional[str] = None


@dataclass
class SizeEstimate:
    """Extrapolated output size, for reporting."""
    estimated_bytes: int
    estimated_chunks: int
    needs_split: bool


@dataclass
class GenerationResult:
    """Result of generating the documents for one route collection."""
    success: bool
    validation: ValidationResult
    warnings: List[str] = field(default_factory=list)
    xml: Optional[str] = None
    byte_size: Optional[int] = None
    route_count: Optional[int] = None
    split_result: Optional[SplitResult] = None
    base_filename: str = "sitemap"
    error: Optional[str] = None

    @property
    def was_split(self) -> bool:
        return self.split_result is not None and self.split_result.was_split


@dataclass
class RobotsTxtResult:
    """Result of updating robots.txt."""
    action: RobotsAction
    path: str


class SitemapError(Exception):
    """Base error for the sitemap builder."""


class SitemapGenerationError(SitemapError):
    """Raised when a failed generation result is used as if it had succeeded."""
