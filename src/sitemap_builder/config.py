"""Configuration and constants for the sitemap builder."""

import os
import re
from typing import List, Optional

from .types import ExcludePattern, GenerationOptions

# Protocol limits (sitemaps.org and the Google extensions)
MAX_URLS_PER_SITEMAP = 50000
MAX_BYTES_PER_SITEMAP = 45 * 1024 * 1024  # 45MB, leaves headroom under the 50MB ceiling
PROTOCOL_MAX_BYTES = 50 * 1024 * 1024
MAX_URL_LENGTH = 2048
MAX_IMAGES_PER_URL = 1000
MAX_VIDEO_TAGS = 32
MAX_STOCK_TICKERS = 5
MAX_VIDEO_DURATION = 28800  # seconds
MAX_VIDEO_RATING = 5.0
MAX_VIDEO_TITLE_LENGTH = 100
MAX_TEXT_LENGTH = 2048
ESTIMATE_SAMPLE_SIZE = 100

# XML namespaces
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
IMAGE_NS = "http://www.google.com/schemas/sitemap-image/1.1"
VIDEO_NS = "http://www.google.com/schemas/sitemap-video/1.1"
NEWS_NS = "http://www.google.com/schemas/sitemap-news/0.9"
XHTML_NS = "http://www.w3.org/1999/xhtml"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

# File names
DEFAULT_COLLECTION_NAME = "default"
DEFAULT_BASE_FILENAME = "sitemap"
ROBOTS_TXT_FILENAME = "robots.txt"

CHANGEFREQ_VALUES = ("always", "hourly", "daily", "weekly", "monthly", "yearly", "never")
VIDEO_RELATIONSHIPS = ("allow", "deny")
VIDEO_PLATFORMS = ("web", "mobile", "tv")

# Patterns wrapped in slashes in SITEMAP_EXCLUDE are read as regular expressions
_REGEX_PATTERN = re.compile(r"^/(.+)/$")


def parse_exclude_patterns(value: str) -> List[ExcludePattern]:
    """Parse a comma-separated exclusion list; ``/.../`` entries become regexes."""
    patterns: List[ExcludePattern] = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        match = _REGEX_PATTERN.match(item)
        patterns.append(re.compile(match.group(1)) if match else item)
    return patterns


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


def get_options_from_env() -> GenerationOptions:
    """Create generation options from environment variables with defaults."""
    return GenerationOptions(
        hostname=os.getenv("SITEMAP_HOSTNAME") or None,
        exclude=parse_exclude_patterns(os.getenv("SITEMAP_EXCLUDE", "")),
        changefreq=os.getenv("SITEMAP_CHANGEFREQ") or None,
        priority=_optional_float("SITEMAP_PRIORITY"),
        lastmod=os.getenv("SITEMAP_LASTMOD") or None,
        max_urls=int(os.getenv("SITEMAP_MAX_URLS", MAX_URLS_PER_SITEMAP)),
        max_bytes=int(os.getenv("SITEMAP_MAX_BYTES", MAX_BYTES_PER_SITEMAP)),
        base_filename=os.getenv("SITEMAP_BASE_FILENAME", DEFAULT_BASE_FILENAME),
        skip_validation=os.getenv("SITEMAP_SKIP_VALIDATION", "false").lower() == "true",
    )
