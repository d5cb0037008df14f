"""Reading, creating and updating robots.txt Sitemap directives."""

import logging
import os
import re
from typing import List

from .config import ROBOTS_TXT_FILENAME
from .types import RobotsAction, RobotsTxtResult

logger = logging.getLogger(__name__)

# Directive keys are case-insensitive
SITEMAP_DIRECTIVE_REGEX = re.compile(r"^\s*sitemap\s*:\s*(.+?)\s*$", re.IGNORECASE)


def build_sitemap_url(hostname: str, filename: str) -> str:
    """Join a hostname and a sitemap filename into an absolute URL."""
    return f"{hostname.rstrip('/')}/{filename.lstrip('/')}"


def create_minimal_robots_txt(sitemap_url: str) -> str:
    """A robots.txt allowing all crawlers and referencing one sitemap."""
    return f"User-agent: *\nAllow: /\n\nSitemap: {sitemap_url}\n"


def extract_sitemap_urls(content: str) -> List[str]:
    """Return the URLs of all Sitemap directives, in file order."""
    urls = []
    for line in content.splitlines():
        match = SITEMAP_DIRECTIVE_REGEX.match(line)
        if match:
            urls.append(match.group(1).strip())
    return urls


def has_sitemap_directive(content: str, sitemap_url: str) -> bool:
    return sitemap_url.strip() in extract_sitemap_urls(content)


def append_sitemap_directive(content: str, sitemap_url: str) -> str:
    """Append a Sitemap directive on its own line, keeping the existing content intact."""
    directive = f"Sitemap: {sitemap_url}"
    if not content:
        return f"{directive}\n"

    newline = "\r\n" if content.endswith("\r\n") else "\n"
    if not content.endswith(("\n", "\r")):
        content += newline
    return f"{content}{directive}{newline}"


def update_robots_txt(out_dir: str, sitemap_url: str, create_if_missing: bool = True) -> RobotsTxtResult:
    """
    Make sure robots.txt in ``out_dir`` references ``sitemap_url``.

    Args:
        out_dir: Directory holding robots.txt
        sitemap_url: Absolute URL of the sitemap
        create_if_missing: Create a minimal robots.txt when none exists

    Returns:
        The action taken (created, updated or unchanged) and the file path
    """
    robots_path = os.path.join(out_dir, ROBOTS_TXT_FILENAME)

    try:
        if os.path.exists(robots_path):
            # newline="" keeps line endings byte-for-byte
            with open(robots_path, "r", encoding="utf-8", newline="") as f:
                content = f.read()

            if has_sitemap_directive(content, sitemap_url):
                logger.debug(f"robots.txt already references {sitemap_url}")
                return RobotsTxtResult(action=RobotsAction.UNCHANGED, path=robots_path)

            with open(robots_path, "w", encoding="utf-8", newline="") as f:
                f.write(append_sitemap_directive(content, sitemap_url))

            logger.info(f"Updated robots.txt with Sitemap directive: {robots_path}")
            return RobotsTxtResult(action=RobotsAction.UPDATED, path=robots_path)

        if not create_if_missing:
            return RobotsTxtResult(action=RobotsAction.UNCHANGED, path=robots_path)

        with open(robots_path, "w", encoding="utf-8", newline="") as f:
            f.write(create_minimal_robots_txt(sitemap_url))

        logger.info(f"Generated robots.txt: {robots_path}")
        return RobotsTxtResult(action=RobotsAction.CREATED, path=robots_path)

    except OSError as e:
        logger.error(f"Error updating robots.txt: {e}")
        raise
