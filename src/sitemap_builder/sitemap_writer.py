"""Writing generated sitemaps to disk and inspecting written documents."""

import gzip
import logging
import os
import shutil
from typing import Dict, List, Mapping, Sequence

from lxml import etree

from .config import MAX_URLS_PER_SITEMAP, PROTOCOL_MAX_BYTES, SITEMAP_NS
from .robots import build_sitemap_url, update_robots_txt
from .splitter import get_document_filename, get_sitemap_index_filename
from .types import GenerationResult, RobotsTxtResult, SitemapGenerationError
from .utils import create_directory_if_not_exists, format_bytes, format_number

logger = logging.getLogger(__name__)


class SitemapWriter:
    """Writes generation results as sitemap files into an output directory."""

    def __init__(self, output_dir: str, max_urls_per_sitemap: int = MAX_URLS_PER_SITEMAP):
        self.output_dir = output_dir
        self.max_urls_per_sitemap = max_urls_per_sitemap
        self.sitemap_namespace = SITEMAP_NS

        create_directory_if_not_exists(output_dir)

    def _write_file(self, filename: str, xml: str) -> str:
        filepath = os.path.join(self.output_dir, filename)
        try:
            with open(filepath, "w", encoding="utf-8", newline="") as f:
                f.write(xml)
        except OSError as e:
            logger.error(f"Error writing sitemap to {filepath}: {e}")
            raise
        return filepath

    def write_result(self, name: str, result: GenerationResult) -> List[str]:
        """
        Write the documents of one generation result.

        Args:
            name: Collection name, used in log messages
            result: A successful generation result

        Returns:
            Paths of the written files; for a split sitemap the index comes last
        """
        if not result.success:
            raise SitemapGenerationError(
                f"Cannot write sitemap '{name}': generation failed"
                + (f" ({result.error})" if result.error else "")
            )

        written = []
        if result.was_split:
            for chunk in result.split_result.chunks:
                written.append(self._write_file(chunk.filename, chunk.xml))
                logger.info(
                    f"{chunk.filename} ({format_number(len(chunk.routes))} URLs, "
                    f"{format_bytes(chunk.byte_size)})"
                )

            index_filename = get_sitemap_index_filename(result.base_filename)
            written.append(self._write_file(index_filename, result.split_result.index_xml))
            logger.info(f"{index_filename} (index for {len(result.split_result.chunks)} sitemaps)")
        else:
            filename = get_document_filename(result.base_filename)
            written.append(self._write_file(filename, result.xml))
            logger.info(
                f"{filename} ({format_number(result.route_count or 0)} URLs, "
                f"{format_bytes(result.byte_size or 0)})"
            )

        return written

    def write_all(self, results: Mapping[str, GenerationResult]) -> Dict[str, List[str]]:
        """Write every successful result; failed collections are logged and skipped."""
        written: Dict[str, List[str]] = {}
        for name, result in results.items():
            if not result.success:
                logger.error(f"Skipping sitemap '{name}': generation failed")
                continue
            written[name] = self.write_result(name, result)

        total = sum(len(paths) for paths in written.values())
        logger.info(f"Wrote {total} sitemap file(s) to {self.output_dir}")
        return written

    def update_robots_txt(self, hostname: str, sitemap_files: Sequence[str]) -> RobotsTxtResult:
        """Reference the primary sitemap (the index if there are several files) in robots.txt."""
        if not sitemap_files:
            raise ValueError("No sitemap files to reference in robots.txt")

        primary = os.path.basename(sitemap_files[-1])
        return update_robots_txt(self.output_dir, build_sitemap_url(hostname, primary))

    def compress_sitemaps(self, sitemap_files: Sequence[str]) -> List[str]:
        """Write gzip-compressed copies next to the sitemap files."""
        compressed_files = []

        for sitemap_file in sitemap_files:
            compressed_file = f"{sitemap_file}.gz"
            try:
                with open(sitemap_file, "rb") as f_in:
                    with gzip.open(compressed_file, "wb") as f_out:
                        shutil.copyfileobj(f_in, f_out)
            except OSError as e:
                logger.error(f"Error compressing {sitemap_file}: {e}")
                raise

            compressed_files.append(compressed_file)
            logger.debug(f"Compressed sitemap: {compressed_file}")

        return compressed_files

    def _ns(self, tag: str) -> str:
        return f"{{{self.sitemap_namespace}}}{tag}"

    def validate_sitemap(self, filepath: str) -> bool:
        """Check a written sitemap or sitemap index for structural problems."""
        try:
            tree = etree.parse(filepath)
        except (OSError, etree.XMLSyntaxError) as e:
            logger.error(f"Error parsing sitemap {filepath}: {e}")
            return False

        root = tree.getroot()
        if root.tag == self._ns("urlset"):
            entry_tag = "url"
        elif root.tag == self._ns("sitemapindex"):
            entry_tag = "sitemap"
        else:
            logger.error(f"Invalid root element in {filepath}: {root.tag}")
            return False

        entries = root.findall(self._ns(entry_tag))
        if len(entries) > self.max_urls_per_sitemap:
            logger.error(f"Too many entries in sitemap: {len(entries)}")
            return False

        if os.path.getsize(filepath) > PROTOCOL_MAX_BYTES:
            logger.error(f"Sitemap exceeds {format_bytes(PROTOCOL_MAX_BYTES)}: {filepath}")
            return False

        for entry in entries:
            loc = entry.find(self._ns("loc"))
            if loc is None or not loc.text:
                logger.error(f"Entry missing location in {filepath}")
                return False
            if root.tag == self._ns("urlset") and not loc.text.startswith(("http://", "https://")):
                logger.error(f"Invalid URL format: {loc.text}")
                return False

        logger.info(f"Sitemap validation passed: {filepath}")
        return True

    def get_sitemap_stats(self, filepath: str) -> dict:
        """Count entries and optional elements of a written sitemap."""
        tree = etree.parse(filepath)
        root = tree.getroot()
        urls = root.findall(self._ns("url"))

        stats = {
            "total_urls": len(urls),
            "file_size_mb": os.path.getsize(filepath) / (1024 * 1024),
            "has_lastmod": 0,
            "has_changefreq": 0,
            "has_priority": 0,
            "priority_distribution": {},
            "changefreq_distribution": {},
            "namespaces": sorted(prefix for prefix in root.nsmap if prefix),
        }

        for url_elem in urls:
            if url_elem.find(self._ns("lastmod")) is not None:
                stats["has_lastmod"] += 1

            changefreq_elem = url_elem.find(self._ns("changefreq"))
            if changefreq_elem is not None:
                stats["has_changefreq"] += 1
                freq = changefreq_elem.text
                stats["changefreq_distribution"][freq] = stats["changefreq_distribution"].get(freq, 0) + 1

            priority_elem = url_elem.find(self._ns("priority"))
            if priority_elem is not None:
                stats["has_priority"] += 1
                priority = priority_elem.text
                stats["priority_distribution"][priority] = stats["priority_distribution"].get(priority, 0) + 1

        return stats


def create_sitemap_writer(output_dir: str, max_urls_per_sitemap: int = MAX_URLS_PER_SITEMAP) -> SitemapWriter:
    """Factory function to create sitemap writer."""
    return SitemapWriter(output_dir, max_urls_per_sitemap)
