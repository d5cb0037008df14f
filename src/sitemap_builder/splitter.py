"""Splitting large route sets into size-bounded sitemaps plus an index."""

import logging
import math
from typing import List, Optional, Sequence

from .config import (
    DEFAULT_BASE_FILENAME,
    DEFAULT_COLLECTION_NAME,
    ESTIMATE_SAMPLE_SIZE,
    MAX_BYTES_PER_SITEMAP,
    MAX_URLS_PER_SITEMAP,
)
from .types import Route, SitemapChunk, SitemapReference, SizeEstimate, SplitResult
from .utils import format_number, get_current_w3c_date
from .xml_builder import build_sitemap_index_xml, build_sitemap_xml, calculate_byte_size

logger = logging.getLogger(__name__)

_BASE_XML_SIZE = calculate_byte_size(build_sitemap_xml([]))


def get_base_xml_size() -> int:
    """Size of an empty sitemap document, the fixed overhead of every chunk."""
    return _BASE_XML_SIZE


def base_filename_for(name: str) -> str:
    """Filename stem for a named route collection: ``sitemap`` or ``sitemap-<name>``."""
    if name == DEFAULT_COLLECTION_NAME:
        return DEFAULT_BASE_FILENAME
    return f"{DEFAULT_BASE_FILENAME}-{name}"


def get_document_filename(base_filename: str, index: Optional[int] = None) -> str:
    """``<base>.xml`` for a single document, ``<base>-<index>.xml`` for a chunk."""
    suffix = "" if index is None else f"-{index}"
    return f"{base_filename}{suffix}.xml"


def get_sitemap_filename(name: str, index: Optional[int] = None) -> str:
    """Filename for a named collection: ``sitemap.xml``, ``sitemap-news.xml``, ``sitemap-news-0.xml``."""
    return get_document_filename(base_filename_for(name), index)


def get_sitemap_index_filename(base_filename: str = DEFAULT_BASE_FILENAME) -> str:
    return f"{base_filename}-index.xml"


def estimate_total_size(
    routes: Sequence[Route],
    max_urls: int = MAX_URLS_PER_SITEMAP,
    max_bytes: int = MAX_BYTES_PER_SITEMAP,
) -> SizeEstimate:
    """
    Estimate the output size by rendering a sample and extrapolating.

    Useful for progress reporting only; ``split_routes`` measures real
    renders to make its decisions.
    """
    sample_size = min(len(routes), ESTIMATE_SAMPLE_SIZE)
    sample_bytes = calculate_byte_size(build_sitemap_xml(routes[:sample_size]))

    base_size = get_base_xml_size()
    bytes_per_route = (sample_bytes - base_size) / max(sample_size, 1)
    estimated_bytes = base_size + bytes_per_route * len(routes)

    needs_split = len(routes) > max_urls or estimated_bytes > max_bytes
    estimated_chunks = max(
        math.ceil(len(routes) / max_urls),
        math.ceil(estimated_bytes / max_bytes),
        1,
    )

    return SizeEstimate(
        estimated_bytes=round(estimated_bytes),
        estimated_chunks=estimated_chunks,
        needs_split=needs_split,
    )


def _route_size(route: Route) -> int:
    return calculate_byte_size(build_sitemap_xml([route])) - get_base_xml_size()


def split_by_urls_and_size(routes: Sequence[Route], max_urls: int, max_bytes: int) -> List[List[Route]]:
    """
    Pack routes into chunks first-fit, in order.

    A new chunk is started only when the current one is non-empty, so a
    route larger than ``max_bytes`` on its own still gets a chunk.
    """
    chunks: List[List[Route]] = []
    current: List[Route] = []
    current_size = get_base_xml_size()

    for route in routes:
        route_size = _route_size(route)

        would_exceed_urls = len(current) >= max_urls
        would_exceed_size = current_size + route_size > max_bytes

        if (would_exceed_urls or would_exceed_size) and current:
            chunks.append(current)
            current = []
            current_size = get_base_xml_size()

        if route_size + get_base_xml_size() > max_bytes:
            logger.warning(f"Route {route.url} alone exceeds the {format_number(max_bytes)} byte budget")

        current.append(route)
        current_size += route_size

    if current:
        chunks.append(current)

    return chunks


def _build_chunk(index: int, filename: str, routes: List[Route]) -> SitemapChunk:
    xml = build_sitemap_xml(routes)
    return SitemapChunk(
        index=index,
        filename=filename,
        routes=routes,
        xml=xml,
        byte_size=calculate_byte_size(xml),
    )


def generate_sitemap_index(chunks: Sequence[SitemapChunk], hostname: Optional[str] = None) -> str:
    """Build the index document referencing every chunk."""
    lastmod = get_current_w3c_date()
    entries = [
        SitemapReference(
            loc=f"{hostname.rstrip('/')}/{chunk.filename}" if hostname else chunk.filename,
            lastmod=lastmod,
        )
        for chunk in chunks
    ]
    return build_sitemap_index_xml(entries)


def split_routes(
    routes: Sequence[Route],
    base_filename: str = DEFAULT_BASE_FILENAME,
    hostname: Optional[str] = None,
    max_urls: int = MAX_URLS_PER_SITEMAP,
    max_bytes: int = MAX_BYTES_PER_SITEMAP,
) -> SplitResult:
    """
    Split routes into multiple sitemaps if needed.

    Splitting happens when there are more than ``max_urls`` routes or the
    rendered document is larger than ``max_bytes``.

    Args:
        routes: Routes to include; an empty list yields one empty sitemap
        base_filename: Filename stem, e.g. ``sitemap`` or ``sitemap-blog``
        hostname: Base URL used to qualify the chunk locations in the index
        max_urls: Maximum URL entries per document
        max_bytes: Maximum UTF-8 size per document

    Returns:
        Split result with the chunks and, when split, the index document
    """
    routes = list(routes)
    single_filename = get_document_filename(base_filename)

    if not routes:
        return SplitResult(chunks=[_build_chunk(0, single_filename, [])], was_split=False)

    if len(routes) <= max_urls:
        chunk = _build_chunk(0, single_filename, routes)
        if chunk.byte_size <= max_bytes:
            return SplitResult(chunks=[chunk], was_split=False)
        logger.info(
            f"Sitemap with {format_number(len(routes))} URLs is {format_number(chunk.byte_size)} bytes, "
            f"over the {format_number(max_bytes)} byte budget"
        )

    groups = split_by_urls_and_size(routes, max_urls, max_bytes)
    chunks = [
        _build_chunk(index, get_document_filename(base_filename, index), group)
        for index, group in enumerate(groups)
    ]

    logger.info(f"Split {format_number(len(routes))} URLs into {len(chunks)} sitemaps")

    return SplitResult(
        chunks=chunks,
        was_split=True,
        index_xml=generate_sitemap_index(chunks, hostname),
    )
