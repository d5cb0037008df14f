"""XML string builder for sitemap documents and sitemap indexes."""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Union
from urllib.parse import quote, urlsplit, urlunsplit

from .config import IMAGE_NS, NEWS_NS, SITEMAP_NS, VIDEO_NS, XHTML_NS, XML_DECLARATION
from .types import Alternate, ChangeFrequency, Image, News, Route, SitemapReference, Video
from .utils import INVALID_XML_CHAR_REGEX

logger = logging.getLogger(__name__)

XML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
}
XML_ENTITY_REGEX = re.compile(r"[&<>\"']")

# Characters left as-is when re-encoding URL components; "%" keeps existing escapes intact
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_QUERY_SAFE = _PATH_SAFE + "?"
_DEFAULT_PORTS = {"http": 80, "https": 443}


def escape_xml(text) -> str:
    """Escape the five predefined XML entities, dropping characters XML cannot hold."""
    text = INVALID_XML_CHAR_REGEX.sub("", str(text))
    return XML_ENTITY_REGEX.sub(lambda match: XML_ENTITIES[match.group(0)], text)


def _canonical_netloc(scheme: str, netloc: str) -> str:
    parts = urlsplit(f"//{netloc}")
    host = parts.hostname
    if not host:
        raise ValueError(f"URL has no host: {netloc!r}")
    if not host.isascii():
        host = host.encode("idna").decode("ascii")
    if ":" in host:
        host = f"[{host}]"

    userinfo, _, _ = netloc.rpartition("@")
    result = f"{userinfo}@{host}" if "@" in netloc else host

    port = parts.port
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        result = f"{result}:{port}"
    return result


def encode_url(url) -> str:
    """
    Canonicalize a URL and escape it for use as XML text.

    The URL is reparsed, its scheme and host lower-cased (IDNA-encoded if
    needed), default ports dropped and unsafe characters percent-encoded.
    Anything that does not parse as an absolute URL is only entity-escaped.
    """
    if not isinstance(url, str):
        return escape_xml("" if url is None else url)
    try:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Not an absolute URL: {url!r}")
        scheme = parts.scheme.lower()
        canonical = urlunsplit((
            scheme,
            _canonical_netloc(scheme, parts.netloc),
            quote(parts.path, safe=_PATH_SAFE),
            quote(parts.query, safe=_QUERY_SAFE),
            quote(parts.fragment, safe=_QUERY_SAFE),
        ))
    except (TypeError, ValueError, UnicodeError):
        logger.debug(f"Could not parse URL, escaping as text: {url!r}")
        return escape_xml(url)
    return escape_xml(canonical)


def format_decimal(value) -> str:
    """Render a number with at least one decimal digit (1 -> "1.0", 0.55 -> "0.55")."""
    text = f"{float(value):.10f}".rstrip("0")
    if text.endswith("."):
        text += "0"
    return text


def _flag(value: Optional[bool]) -> str:
    return "yes" if value else "no"


@dataclass
class ExtensionFlags:
    """Which sitemap extensions a set of routes uses."""
    images: bool = False
    videos: bool = False
    news: bool = False
    alternates: bool = False


def detect_extensions(routes: Iterable[Route]) -> ExtensionFlags:
    """Scan routes once to find the extension namespaces the document needs."""
    flags = ExtensionFlags()
    for route in routes:
        flags.images = flags.images or bool(route.images)
        flags.videos = flags.videos or bool(route.videos)
        flags.news = flags.news or route.news is not None
        flags.alternates = flags.alternates or bool(route.alternates)
    return flags


def build_namespace_attrs(flags: ExtensionFlags) -> str:
    """Build the urlset namespace attributes; only used namespaces are declared."""
    attrs = [f'xmlns="{SITEMAP_NS}"']
    if flags.images:
        attrs.append(f'xmlns:image="{IMAGE_NS}"')
    if flags.videos:
        attrs.append(f'xmlns:video="{VIDEO_NS}"')
    if flags.news:
        attrs.append(f'xmlns:news="{NEWS_NS}"')
    if flags.alternates:
        attrs.append(f'xmlns:xhtml="{XHTML_NS}"')
    return " ".join(attrs)


def build_sitemap_xml(routes: Sequence[Route]) -> str:
    """Build a complete sitemap document."""
    ns_attrs = build_namespace_attrs(detect_extensions(routes))
    body = "".join(build_url_element(route) + "\n" for route in routes)
    return f"{XML_DECLARATION}\n<urlset {ns_attrs}>\n{body}</urlset>\n"


def build_url_element(route: Route) -> str:
    """Build a single <url> element."""
    parts = [f"  <loc>{encode_url(route.url)}</loc>"]

    if route.lastmod:
        parts.append(f"  <lastmod>{escape_xml(route.lastmod)}</lastmod>")

    if route.changefreq:
        changefreq = route.changefreq
        if isinstance(changefreq, ChangeFrequency):
            changefreq = changefreq.value
        parts.append(f"  <changefreq>{escape_xml(changefreq)}</changefreq>")

    if route.priority is not None:
        parts.append(f"  <priority>{format_decimal(route.priority)}</priority>")

    for image in route.images or []:
        parts.append(build_image_element(image))
    for video in route.videos or []:
        parts.append(build_video_element(video))
    if route.news is not None:
        parts.append(build_news_element(route.news))
    for alternate in route.alternates or []:
        parts.append(build_alternate_element(alternate))

    return "<url>\n" + "\n".join(parts) + "\n</url>"


def build_image_element(image: Image) -> str:
    parts = [f"    <image:loc>{encode_url(image.loc)}</image:loc>"]
    if image.caption:
        parts.append(f"    <image:caption>{escape_xml(image.caption)}</image:caption>")
    if image.title:
        parts.append(f"    <image:title>{escape_xml(image.title)}</image:title>")
    if image.geo_location:
        parts.append(f"    <image:geo_location>{escape_xml(image.geo_location)}</image:geo_location>")
    if image.license:
        parts.append(f"    <image:license>{encode_url(image.license)}</image:license>")
    return "  <image:image>\n" + "\n".join(parts) + "\n  </image:image>"


def build_video_element(video: Video) -> str:
    parts = [
        f"    <video:thumbnail_loc>{encode_url(video.thumbnail_loc)}</video:thumbnail_loc>",
        f"    <video:title>{escape_xml(video.title)}</video:title>",
        f"    <video:description>{escape_xml(video.description)}</video:description>",
    ]

    if video.content_loc:
        parts.append(f"    <video:content_loc>{encode_url(video.content_loc)}</video:content_loc>")
    if video.player_loc:
        parts.append(f"    <video:player_loc>{encode_url(video.player_loc)}</video:player_loc>")
    if video.duration is not None:
        parts.append(f"    <video:duration>{int(video.duration)}</video:duration>")
    if video.expiration_date:
        parts.append(f"    <video:expiration_date>{escape_xml(video.expiration_date)}</video:expiration_date>")
    if video.rating is not None:
        parts.append(f"    <video:rating>{format_decimal(video.rating)}</video:rating>")
    if video.view_count is not None:
        parts.append(f"    <video:view_count>{int(video.view_count)}</video:view_count>")
    if video.publication_date:
        parts.append(f"    <video:publication_date>{escape_xml(video.publication_date)}</video:publication_date>")
    if video.family_friendly is not None:
        parts.append(f"    <video:family_friendly>{_flag(video.family_friendly)}</video:family_friendly>")
    if video.restriction is not None:
        countries = escape_xml(" ".join(video.restriction.countries))
        parts.append(
            f'    <video:restriction relationship="{escape_xml(video.restriction.relationship)}">'
            f"{countries}</video:restriction>"
        )
    if video.platform is not None:
        platforms = escape_xml(" ".join(video.platform.platforms))
        parts.append(
            f'    <video:platform relationship="{escape_xml(video.platform.relationship)}">'
            f"{platforms}</video:platform>"
        )
    if video.requires_subscription is not None:
        parts.append(
            f"    <video:requires_subscription>{_flag(video.requires_subscription)}</video:requires_subscription>"
        )
    if video.uploader is not None:
        info = f' info="{encode_url(video.uploader.info)}"' if video.uploader.info else ""
        parts.append(f"    <video:uploader{info}>{escape_xml(video.uploader.name)}</video:uploader>")
    if video.live is not None:
        parts.append(f"    <video:live>{_flag(video.live)}</video:live>")
    for tag in video.tag or []:
        parts.append(f"    <video:tag>{escape_xml(tag)}</video:tag>")

    return "  <video:video>\n" + "\n".join(parts) + "\n  </video:video>"


def build_news_element(news: News) -> str:
    parts = [
        "    <news:publication>",
        f"      <news:name>{escape_xml(news.publication.name)}</news:name>",
        f"      <news:language>{escape_xml(news.publication.language)}</news:language>",
        "    </news:publication>",
        f"    <news:publication_date>{escape_xml(news.publication_date)}</news:publication_date>",
        f"    <news:title>{escape_xml(news.title)}</news:title>",
    ]
    if news.keywords:
        parts.append(f"    <news:keywords>{escape_xml(news.keywords)}</news:keywords>")
    if news.stock_tickers:
        parts.append(f"    <news:stock_tickers>{escape_xml(news.stock_tickers)}</news:stock_tickers>")
    return "  <news:news>\n" + "\n".join(parts) + "\n  </news:news>"


def build_alternate_element(alternate: Alternate) -> str:
    return (
        f'  <xhtml:link rel="alternate" hreflang="{escape_xml(alternate.hreflang)}" '
        f'href="{encode_url(alternate.href)}"/>'
    )


def build_sitemap_index_xml(entries: Iterable[Union[SitemapReference, Mapping[str, str]]]) -> str:
    """Build a sitemap index document."""
    blocks: List[str] = []
    for entry in entries:
        if isinstance(entry, Mapping):
            entry = SitemapReference(loc=entry["loc"], lastmod=entry.get("lastmod"))
        parts = [f"  <loc>{encode_url(entry.loc)}</loc>"]
        if entry.lastmod:
            parts.append(f"  <lastmod>{escape_xml(entry.lastmod)}</lastmod>")
        blocks.append("<sitemap>\n" + "\n".join(parts) + "\n</sitemap>\n")

    return f'{XML_DECLARATION}\n<sitemapindex xmlns="{SITEMAP_NS}">\n{"".join(blocks)}</sitemapindex>\n'


def calculate_byte_size(xml: str) -> int:
    """Size of a document in UTF-8 bytes."""
    return len(xml.encode("utf-8"))
