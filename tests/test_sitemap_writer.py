"""Tests for sitemap writer functionality."""

import gzip
import os
import tempfile

import pytest
from lxml import etree

from sitemap_builder.generator import generate_sitemap, generate_sitemaps
from sitemap_builder.sitemap_writer import SitemapWriter, create_sitemap_writer
from sitemap_builder.types import (
    ChangeFrequency,
    GenerationOptions,
    Image,
    RobotsAction,
    Route,
    SitemapGenerationError,
)


@pytest.fixture
def sample_routes():
    """Create sample routes for testing."""
    return [
        Route(url="https://www.example.com", changefreq=ChangeFrequency.DAILY, priority=1.0),
        Route(url="https://www.example.com/jobs", changefreq=ChangeFrequency.DAILY, priority=0.9),
        Route(
            url="https://www.example.com/jobs/123",
            lastmod="2024-01-15",
            changefreq=ChangeFrequency.WEEKLY,
            priority=0.7,
            images=[Image(loc="https://www.example.com/logo.png", caption="Logo")],
        ),
    ]


@pytest.fixture
def sitemap_writer():
    """Create sitemap writer with temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield SitemapWriter(tmpdir, max_urls_per_sitemap=2)


@pytest.mark.asyncio
async def test_single_sitemap_generation(sitemap_writer, sample_routes):
    """Test writing a single sitemap file."""
    result = await generate_sitemap(sample_routes[:2])

    sitemap_files = sitemap_writer.write_result("default", result)

    assert len(sitemap_files) == 1
    assert os.path.exists(sitemap_files[0])
    assert sitemap_files[0].endswith("sitemap.xml")


@pytest.mark.asyncio
async def test_multiple_sitemap_generation(sitemap_writer, sample_routes):
    """Test writing numbered sitemaps and an index when the URL limit is exceeded."""
    result = await generate_sitemap(sample_routes, GenerationOptions(hostname="https://www.example.com", max_urls=2))

    sitemap_files = sitemap_writer.write_result("default", result)

    assert [os.path.basename(path) for path in sitemap_files] == [
        "sitemap-0.xml",
        "sitemap-1.xml",
        "sitemap-index.xml",
    ]
    for sitemap_file in sitemap_files:
        assert os.path.exists(sitemap_file)


@pytest.mark.asyncio
async def test_sitemap_validation(sitemap_writer, sample_routes):
    """Test written sitemaps and indexes pass validation."""
    result = await generate_sitemap(sample_routes, GenerationOptions(max_urls=2))
    sitemap_files = sitemap_writer.write_result("default", result)

    for sitemap_file in sitemap_files:
        assert sitemap_writer.validate_sitemap(sitemap_file) is True


@pytest.mark.asyncio
async def test_written_file_matches_result(sitemap_writer, sample_routes):
    result = await generate_sitemap(sample_routes)
    sitemap_files = sitemap_writer.write_result("default", result)

    with open(sitemap_files[0], "rb") as f:
        content = f.read()
    assert content == result.xml.encode("utf-8")
    assert len(content) == result.byte_size


@pytest.mark.asyncio
async def test_sitemap_stats(sitemap_writer, sample_routes):
    """Test sitemap statistics generation."""
    result = await generate_sitemap(sample_routes)
    sitemap_files = sitemap_writer.write_result("default", result)

    stats = sitemap_writer.get_sitemap_stats(sitemap_files[0])

    assert stats["total_urls"] == 3
    assert stats["has_lastmod"] == 1
    assert stats["has_priority"] == 3
    assert stats["changefreq_distribution"] == {"daily": 2, "weekly": 1}
    assert stats["priority_distribution"]["1.0"] == 1
    assert stats["namespaces"] == ["image"]
    assert stats["file_size_mb"] > 0


@pytest.mark.asyncio
async def test_compress_sitemaps(sitemap_writer, sample_routes):
    """Test sitemap compression."""
    result = await generate_sitemap(sample_routes)
    sitemap_files = sitemap_writer.write_result("default", result)

    compressed_files = sitemap_writer.compress_sitemaps(sitemap_files)

    assert len(compressed_files) == len(sitemap_files)
    for original, compressed in zip(sitemap_files, compressed_files):
        assert compressed == f"{original}.gz"
        with open(original, "rb") as f_in, gzip.open(compressed, "rb") as f_gz:
            assert f_gz.read() == f_in.read()


@pytest.mark.asyncio
async def test_failed_result_is_not_written(sitemap_writer):
    result = await generate_sitemap([Route(url="not a url")])

    with pytest.raises(SitemapGenerationError):
        sitemap_writer.write_result("default", result)
    assert os.listdir(sitemap_writer.output_dir) == []


@pytest.mark.asyncio
async def test_write_all_skips_failed_collections(sitemap_writer, sample_routes):
    def broken():
        raise RuntimeError("source failed")

    results = await generate_sitemaps({"default": sample_routes, "broken": broken})

    written = sitemap_writer.write_all(results)

    assert list(written) == ["default"]
    assert sorted(os.listdir(sitemap_writer.output_dir)) == ["sitemap.xml"]


@pytest.mark.asyncio
async def test_robots_txt_references_index(sitemap_writer, sample_routes):
    """Test robots.txt points at the index when the sitemap was split."""
    result = await generate_sitemap(sample_routes, GenerationOptions(max_urls=2))
    sitemap_files = sitemap_writer.write_result("default", result)

    robots = sitemap_writer.update_robots_txt("https://www.example.com", sitemap_files)

    assert robots.action == RobotsAction.CREATED
    with open(robots.path, encoding="utf-8") as f:
        assert "Sitemap: https://www.example.com/sitemap-index.xml" in f.read()


def test_robots_txt_requires_files(sitemap_writer):
    with pytest.raises(ValueError):
        sitemap_writer.update_robots_txt("https://www.example.com", [])


def test_validate_rejects_too_many_urls(sitemap_writer):
    path = os.path.join(sitemap_writer.output_dir, "big.xml")
    root = etree.Element(sitemap_writer._ns("urlset"), nsmap={None: sitemap_writer.sitemap_namespace})
    for i in range(3):
        url = etree.SubElement(root, sitemap_writer._ns("url"))
        etree.SubElement(url, sitemap_writer._ns("loc")).text = f"https://www.example.com/{i}"
    etree.ElementTree(root).write(path, xml_declaration=True, encoding="UTF-8")

    # limit is 2 in the fixture
    assert sitemap_writer.validate_sitemap(path) is False


def test_validate_rejects_bad_documents(sitemap_writer):
    malformed = os.path.join(sitemap_writer.output_dir, "malformed.xml")
    with open(malformed, "w", encoding="utf-8") as f:
        f.write("<urlset><url>")

    wrong_root = os.path.join(sitemap_writer.output_dir, "wrong.xml")
    with open(wrong_root, "w", encoding="utf-8") as f:
        f.write("<html></html>")

    assert sitemap_writer.validate_sitemap(malformed) is False
    assert sitemap_writer.validate_sitemap(wrong_root) is False


def test_create_sitemap_writer_makes_directory():
    with tempfile.TemporaryDirectory() as tmpdir:
        output_dir = os.path.join(tmpdir, "public")
        writer = create_sitemap_writer(output_dir)

        assert os.path.isdir(output_dir)
        assert writer.max_urls_per_sitemap == 50000
