"""
Sitemap Builder

Turns route descriptors into sitemaps.org compliant XML documents and keeps
robots.txt pointing at them.

Key Features:
- Glob and regex URL exclusion
- Concurrent (sync or async) per-route transform callbacks
- Schema validation that reports every error in one pass
- Image, video, news and hreflang extensions with minimal namespaces
- Size-aware splitting into numbered sitemaps plus a sitemap index
- Idempotent robots.txt Sitemap directive updates
"""

__version__ = "1.0.0"

from .types import (
    Alternate,
    ChangeFrequency,
    GenerationOptions,
    GenerationResult,
    Image,
    News,
    NewsPublication,
    Route,
    SitemapChunk,
    SplitResult,
    ValidationError,
    ValidationResult,
    Video,
)
from .config import get_options_from_env
from .exclusion import matches_exclude_pattern
from .generator import generate_sitemap, generate_sitemaps
from .robots import update_robots_txt
from .splitter import estimate_total_size, get_sitemap_filename, get_sitemap_index_filename, split_routes
from .validation import validate_routes
from .xml_builder import build_sitemap_index_xml, build_sitemap_xml
from .sitemap_writer import SitemapWriter
from .utils import setup_logging

__all__ = [
    "Alternate",
    "ChangeFrequency",
    "GenerationOptions",
    "GenerationResult",
    "Image",
    "News",
    "NewsPublication",
    "Route",
    "SitemapChunk",
    "SplitResult",
    "ValidationError",
    "ValidationResult",
    "Video",
    "get_options_from_env",
    "matches_exclude_pattern",
    "generate_sitemap",
    "generate_sitemaps",
    "update_robots_txt",
    "estimate_total_size",
    "split_routes",
    "get_sitemap_filename",
    "get_sitemap_index_filename",
    "validate_routes",
    "build_sitemap_index_xml",
    "build_sitemap_xml",
    "SitemapWriter",
    "setup_logging",
]
