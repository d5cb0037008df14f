"""Tests for splitting routes across sitemaps."""

import logging
import re

import pytest
from lxml import etree

from sitemap_builder.config import SITEMAP_NS
from sitemap_builder.splitter import (
    base_filename_for,
    estimate_total_size,
    get_base_xml_size,
    get_document_filename,
    get_sitemap_filename,
    get_sitemap_index_filename,
    split_routes,
)
from sitemap_builder.types import Route
from sitemap_builder.xml_builder import build_sitemap_xml, calculate_byte_size

NS = {"sm": SITEMAP_NS}


def make_routes(count):
    # Zero-padded so every route renders to the same size
    return [Route(url=f"https://example.com/page-{i:06d}") for i in range(count)]


def route_size(route):
    return calculate_byte_size(build_sitemap_xml([route])) - get_base_xml_size()


def index_locs(index_xml):
    root = etree.fromstring(index_xml.encode("utf-8"))
    return [loc.text for loc in root.iterfind("sm:sitemap/sm:loc", NS)]


def test_empty_routes_give_one_empty_sitemap():
    result = split_routes([])

    assert result.was_split is False
    assert result.index_xml is None
    assert len(result.chunks) == 1
    assert result.chunks[0].filename == "sitemap.xml"
    assert result.chunks[0].routes == []
    assert result.chunks[0].byte_size == get_base_xml_size()


def test_url_limit_boundary():
    """Test exactly max_urls routes stay in one file and one more splits."""
    routes = make_routes(5)

    single = split_routes(routes[:4], max_urls=4)
    assert single.was_split is False
    assert single.chunks[0].filename == "sitemap.xml"

    split = split_routes(routes, max_urls=4)
    assert split.was_split is True
    assert [chunk.filename for chunk in split.chunks] == ["sitemap-0.xml", "sitemap-1.xml"]
    assert [len(chunk.routes) for chunk in split.chunks] == [4, 1]


def test_chunks_preserve_order_and_cover_all_routes():
    routes = make_routes(23)
    result = split_routes(routes, max_urls=5)

    flattened = [route for chunk in result.chunks for route in chunk.routes]
    assert flattened == routes
    assert [chunk.index for chunk in result.chunks] == list(range(5))


def test_byte_limit_packs_first_fit():
    """Test chunks are filled up to the byte budget, measured exactly."""
    routes = make_routes(10)
    size = route_size(routes[0])
    max_bytes = get_base_xml_size() + 3 * size

    result = split_routes(routes, max_bytes=max_bytes)

    assert result.was_split is True
    assert [len(chunk.routes) for chunk in result.chunks] == [3, 3, 3, 1]
    for chunk in result.chunks:
        assert chunk.byte_size <= max_bytes
        assert chunk.byte_size == calculate_byte_size(chunk.xml)
    assert result.chunks[0].byte_size == max_bytes


def test_heavy_routes_split_below_url_limit():
    """Test a document over the byte budget splits even with few URLs."""
    routes = [
        Route(url=f"https://example.com/{i}", lastmod="2024-01-15", changefreq="daily", priority=0.5)
        for i in range(6)
    ]
    total = calculate_byte_size(build_sitemap_xml(routes))

    result = split_routes(routes, max_urls=100, max_bytes=total // 2)

    assert result.was_split is True
    assert len(result.chunks) >= 2
    assert all(chunk.byte_size <= total // 2 for chunk in result.chunks)


def test_oversized_route_gets_its_own_chunk(caplog):
    """Test a single route larger than the budget is still emitted alone."""
    routes = make_routes(3)

    with caplog.at_level(logging.WARNING, logger="sitemap_builder.splitter"):
        result = split_routes(routes, max_bytes=get_base_xml_size() + 10)

    assert [len(chunk.routes) for chunk in result.chunks] == [1, 1, 1]
    assert "alone exceeds" in caplog.text


def test_index_uses_hostname_qualified_locations():
    result = split_routes(make_routes(3), base_filename="sitemap-blog", hostname="https://example.com/", max_urls=2)

    assert index_locs(result.index_xml) == [
        "https://example.com/sitemap-blog-0.xml",
        "https://example.com/sitemap-blog-1.xml",
    ]


def test_index_without_hostname_uses_filenames():
    result = split_routes(make_routes(3), max_urls=2)
    assert index_locs(result.index_xml) == ["sitemap-0.xml", "sitemap-1.xml"]


def test_index_lastmod_is_a_date():
    result = split_routes(make_routes(3), max_urls=2)
    root = etree.fromstring(result.index_xml.encode("utf-8"))

    for lastmod in root.iterfind("sm:sitemap/sm:lastmod", NS):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", lastmod.text)


def test_protocol_limit_of_50000_urls():
    """Test 100,000 routes become two full sitemaps."""
    routes = [Route(url=f"https://example.com/p/{i}") for i in range(100000)]

    result = split_routes(routes, hostname="https://example.com")

    assert result.was_split is True
    assert [len(chunk.routes) for chunk in result.chunks] == [50000, 50000]
    assert index_locs(result.index_xml) == [
        "https://example.com/sitemap-0.xml",
        "https://example.com/sitemap-1.xml",
    ]


def test_estimate_is_exact_for_uniform_routes():
    routes = make_routes(10)

    estimate = estimate_total_size(routes)

    assert estimate.estimated_bytes == calculate_byte_size(build_sitemap_xml(routes))
    assert estimate.estimated_chunks == 1
    assert estimate.needs_split is False


def test_estimate_flags_split():
    estimate = estimate_total_size(make_routes(10), max_urls=4)

    assert estimate.needs_split is True
    assert estimate.estimated_chunks == 3


def test_estimate_empty():
    estimate = estimate_total_size([])

    assert estimate.estimated_bytes == get_base_xml_size()
    assert estimate.estimated_chunks == 1
    assert estimate.needs_split is False


@pytest.mark.parametrize("name, index, expected", [
    ("default", None, "sitemap.xml"),
    ("default", 0, "sitemap-0.xml"),
    ("news", None, "sitemap-news.xml"),
    ("news", 2, "sitemap-news-2.xml"),
])
def test_sitemap_filenames(name, index, expected):
    assert get_sitemap_filename(name, index) == expected


def test_sitemap_index_filename():
    assert get_sitemap_index_filename() == "sitemap-index.xml"
    assert get_sitemap_index_filename("sitemap-blog") == "sitemap-blog-index.xml"


def test_base_filename_for():
    assert base_filename_for("default") == "sitemap"
    assert base_filename_for("products") == "sitemap-products"


def test_document_filenames_follow_base_filename():
    assert get_document_filename("sitemap-blog") == "sitemap-blog.xml"
    assert get_document_filename("sitemap-blog", 3) == "sitemap-blog-3.xml"

    result = split_routes([Route(url=f"https://example.com/{i}") for i in range(3)], "sitemap-blog", max_urls=2)
    assert [chunk.filename for chunk in result.chunks] == ["sitemap-blog-0.xml", "sitemap-blog-1.xml"]
