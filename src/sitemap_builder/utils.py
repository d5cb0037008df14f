"""Utility functions for the sitemap builder."""

import calendar
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from urllib.parse import urlsplit

from .config import MAX_URL_LENGTH

logger = logging.getLogger(__name__)

# YYYY, YYYY-MM, YYYY-MM-DD, YYYY-MM-DDThh:mm[:ss[.s]][TZD]
W3C_DATETIME_REGEX = re.compile(
    r"^(?P<year>\d{4})"
    r"(?:-(?P<month>\d{2})"
    r"(?:-(?P<day>\d{2})"
    r"(?:T(?P<hour>\d{2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:\.(?P<fraction>\d+))?)?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})?)?)?)?$"
)

# Anything outside the XML 1.0 Char production, including unpaired surrogates
INVALID_XML_CHAR_REGEX = re.compile(
    r"[^\t\n\r\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]"
)


def has_invalid_xml_chars(value: str) -> bool:
    """Check if a string holds characters that cannot appear in an XML document."""
    return INVALID_XML_CHAR_REGEX.search(value) is not None


def check_w3c_datetime(value) -> Optional[str]:
    """Return a description of what is wrong with ``value``, or None if it is valid."""
    if not isinstance(value, str) or not value:
        return "Date is required and must be a string"

    match = W3C_DATETIME_REGEX.match(value)
    if not match:
        return "Date does not match W3C Datetime format"

    year = int(match.group("year"))
    month = int(match.group("month") or 1)
    day = int(match.group("day") or 1)

    if year < 1:
        return f"Invalid year: {year}"
    if not 1 <= month <= 12:
        return f"Invalid month: {month}"
    days_in_month = calendar.monthrange(year, month)[1]
    if not 1 <= day <= days_in_month:
        return f"Invalid day: {day} for month {month}"

    if match.group("hour") is not None:
        if int(match.group("hour")) > 23:
            return f"Invalid hour: {match.group('hour')}"
        if int(match.group("minute")) > 59:
            return f"Invalid minute: {match.group('minute')}"
        if match.group("second") is not None and int(match.group("second")) > 59:
            return f"Invalid second: {match.group('second')}"
        tz = match.group("tz")
        if tz and tz != "Z" and (int(tz[1:3]) > 23 or int(tz[4:6]) > 59):
            return f"Invalid timezone offset: {tz}"

    return None


def is_valid_w3c_datetime(value) -> bool:
    """Check if a value is a calendar-valid W3C Datetime string."""
    return check_w3c_datetime(value) is None


def parse_w3c_datetime(value: str) -> Optional[datetime]:
    """Parse a W3C Datetime into an aware datetime; missing parts default to the start of the period."""
    if check_w3c_datetime(value) is not None:
        return None

    match = W3C_DATETIME_REGEX.match(value)
    fraction = (match.group("fraction") or "0")[:6].ljust(6, "0")
    parsed = datetime(
        int(match.group("year")),
        int(match.group("month") or 1),
        int(match.group("day") or 1),
        int(match.group("hour") or 0),
        int(match.group("minute") or 0),
        int(match.group("second") or 0),
        int(fraction),
    )

    tz = match.group("tz")
    if not tz or tz == "Z":
        return parsed.replace(tzinfo=timezone.utc)
    offset = timedelta(hours=int(tz[1:3]), minutes=int(tz[4:6]))
    if tz[0] == "-":
        offset = -offset
    return parsed.replace(tzinfo=timezone(offset))


def is_future_date(value: str, now: Optional[datetime] = None) -> bool:
    """Check if a W3C Datetime lies in the future. Unparsable values are never in the future."""
    parsed = parse_w3c_datetime(value)
    if parsed is None:
        return False
    return parsed > (now or datetime.now(timezone.utc))


def get_current_w3c_date() -> str:
    """Get today's UTC date in YYYY-MM-DD form."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def check_url(url) -> Optional[Tuple[str, str]]:
    """
    Check a URL for sitemap compliance.

    Returns None for a valid URL, otherwise an ``(error, suggestion)`` pair.
    """
    if not isinstance(url, str) or not url:
        return (
            "URL is required and must be a string",
            "Provide a valid absolute URL like 'https://example.com/page'",
        )

    if len(url) > MAX_URL_LENGTH:
        return (
            f"URL exceeds maximum length of {MAX_URL_LENGTH} characters",
            f"Shorten the URL to {MAX_URL_LENGTH} characters or less",
        )

    if has_invalid_xml_chars(url) or any(char.isspace() or ord(char) < 0x20 for char in url):
        return (
            "URL must not contain whitespace or control characters",
            "Percent-encode spaces as %20",
        )

    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
        parsed.port  # raises ValueError for a malformed port
    except ValueError:
        return (
            "Invalid URL format",
            "Ensure the URL is a valid absolute URL like 'https://example.com/page'",
        )

    if parsed.scheme.lower() not in ("http", "https"):
        return (
            f"Invalid protocol '{parsed.scheme}:'. Only http: and https: are allowed",
            "Use https:// or http:// as the URL protocol",
        )

    if not hostname:
        return (
            "URL must include a host",
            "Ensure the URL is a valid absolute URL like 'https://example.com/page'",
        )

    if parsed.fragment:
        return (
            "URL must not contain a fragment (hash)",
            f"Remove the fragment '#{parsed.fragment}' from the URL",
        )

    return None


def is_valid_url(url) -> bool:
    """Check if URL is an absolute http(s) URL usable in a sitemap."""
    return check_url(url) is None


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Set up logging configuration."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def format_bytes(size: int) -> str:
    """Format a byte count as a human-readable string."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def format_number(number: int) -> str:
    """Format number with thousands separators."""
    return f"{number:,}"


def create_directory_if_not_exists(directory: str) -> None:
    """Create directory if it doesn't exist."""
    import os
    os.makedirs(directory, exist_ok=True)
