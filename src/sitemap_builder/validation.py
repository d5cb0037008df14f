"""
Route validation for sitemap protocol compliance.

Every route is checked field by field and every violation is collected, so a
single call reports all problems in all routes. Nothing here raises on bad
input; callers get a ``ValidationResult`` with structured errors instead.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .config import (
    CHANGEFREQ_VALUES,
    MAX_IMAGES_PER_URL,
    MAX_STOCK_TICKERS,
    MAX_TEXT_LENGTH,
    MAX_URL_LENGTH,
    MAX_VIDEO_DURATION,
    MAX_VIDEO_RATING,
    MAX_VIDEO_TAGS,
    MAX_VIDEO_TITLE_LENGTH,
    VIDEO_PLATFORMS,
    VIDEO_RELATIONSHIPS,
)
from .types import ChangeFrequency, Route, ValidationError, ValidationResult
from .utils import check_url, check_w3c_datetime, has_invalid_xml_chars

logger = logging.getLogger(__name__)

W3C_DATETIME_MESSAGE = "Must be a valid W3C Datetime format (e.g., 2024-01-15)"
W3C_DATETIME_SUGGESTION = (
    "Use format: YYYY, YYYY-MM, YYYY-MM-DD, or YYYY-MM-DDThh:mm:ss.sss+hh:mm"
)

_MISSING = object()


def _get(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, _MISSING)
    return getattr(record, name, _MISSING)


def _optional(record: Any, name: str) -> Any:
    value = _get(record, name)
    return None if value is _MISSING else value


def _type_name(value: Any) -> str:
    if value is None or value is _MISSING:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class _Collector:
    """Accumulates validation errors for one call."""

    def __init__(self):
        self.errors: List[ValidationError] = []

    def add(self, code: str, message: str, path: str, value: Any, suggestion: Optional[str] = None) -> None:
        if value is _MISSING:
            value = None
        self.errors.append(ValidationError(code, message, path, value, suggestion))

    def invalid_type(self, path: str, value: Any, expected: str) -> None:
        if value is _MISSING:
            message = f"Required field is missing (expected {expected})"
        else:
            message = f"Invalid input: expected {expected}, received {_type_name(value)}"
        self.add("invalid_type", message, path, value, f"Expected {expected}")

    def string(
        self,
        value: Any,
        path: str,
        max_length: Optional[int] = None,
        min_length: Optional[int] = None,
        message: Optional[str] = None,
    ) -> bool:
        if not isinstance(value, str):
            self.invalid_type(path, value, "string")
            return False
        if has_invalid_xml_chars(value):
            self.add(
                "invalid_format",
                "Must not contain control characters or unpaired surrogates",
                path,
                value,
                "Remove characters that are not allowed in XML 1.0 documents",
            )
            return False
        if max_length is not None and len(value) > max_length:
            self.add(
                "too_big",
                message or f"Must not exceed {max_length} characters",
                path,
                value,
                f"String must be at most {max_length} characters",
            )
            return False
        if min_length is not None and len(value) < min_length:
            self.add(
                "too_small",
                message or f"Must be at least {min_length} characters",
                path,
                value,
                f"String must be at least {min_length} characters",
            )
            return False
        return True

    def number(
        self,
        value: Any,
        path: str,
        minimum: Optional[float] = None,
        maximum: Optional[float] = None,
        integer: bool = False,
        message: Optional[str] = None,
    ) -> None:
        if not _is_number(value) or value != value:  # NaN
            self.invalid_type(path, value, "number")
            return
        if integer and isinstance(value, float) and not value.is_integer():
            self.invalid_type(path, value, "integer")
            return
        if minimum is not None and value < minimum:
            self.add(
                "too_small",
                message or f"Must be at least {minimum}",
                path,
                value,
                f"Number must be at least {minimum}",
            )
        elif maximum is not None and value > maximum:
            self.add(
                "too_big",
                message or f"Must be at most {maximum}",
                path,
                value,
                f"Number must be at most {maximum}",
            )

    def boolean(self, value: Any, path: str) -> None:
        if not isinstance(value, bool):
            self.invalid_type(path, value, "boolean")

    def choice(self, value: Any, path: str, allowed: Sequence[str]) -> None:
        if not isinstance(value, str) or value not in allowed:
            allowed_text = ", ".join(allowed)
            self.add(
                "invalid_value",
                f"Invalid option: expected one of {allowed_text}",
                path,
                value,
                f"Valid values are: {allowed_text}",
            )

    def url(self, value: Any, path: str) -> None:
        if not isinstance(value, str):
            self.invalid_type(path, value, "string")
            return
        if len(value) > MAX_URL_LENGTH:
            self.add(
                "too_big",
                f"URL must not exceed {MAX_URL_LENGTH} characters",
                path,
                value,
                f"String must be at most {MAX_URL_LENGTH} characters",
            )
            return
        problem = check_url(value)
        if problem is not None:
            error, suggestion = problem
            self.add(
                "invalid_format",
                f"Must be a valid absolute URL with http(s) protocol: {error}",
                path,
                value,
                suggestion,
            )

    def date(self, value: Any, path: str) -> None:
        if not isinstance(value, str):
            self.invalid_type(path, value, "string")
            return
        problem = check_w3c_datetime(value)
        if problem is not None:
            self.add(
                "invalid_format",
                f"{W3C_DATETIME_MESSAGE}: {problem}",
                path,
                value,
                W3C_DATETIME_SUGGESTION,
            )

    def array(self, value: Any, path: str, max_items: Optional[int] = None, message: Optional[str] = None) -> bool:
        if not isinstance(value, (list, tuple)):
            self.invalid_type(path, value, "array")
            return False
        if max_items is not None and len(value) > max_items:
            self.add(
                "too_big",
                message or f"Must have at most {max_items} items",
                path,
                len(value),
                f"Array must have at most {max_items} items",
            )
            return False
        return True

    def record(self, value: Any, path: str) -> bool:
        if value is _MISSING or value is None or isinstance(value, (str, bytes, int, float, list, tuple)):
            self.invalid_type(path, value, "object")
            return False
        return True


def _validate_image(check: _Collector, image: Any, path: str) -> None:
    if not check.record(image, path):
        return
    check.url(_get(image, "loc"), f"{path}.loc")
    for name in ("caption", "title"):
        value = _optional(image, name)
        if value is not None:
            check.string(value, f"{path}.{name}", max_length=MAX_TEXT_LENGTH)
    geo_location = _optional(image, "geo_location")
    if geo_location is not None:
        check.string(geo_location, f"{path}.geo_location")
    license_url = _optional(image, "license")
    if license_url is not None:
        check.url(license_url, f"{path}.license")


def _validate_relationship_list(
    check: _Collector,
    record: Any,
    path: str,
    list_name: str,
) -> Optional[list]:
    if not check.record(record, path):
        return None
    check.choice(_get(record, "relationship"), f"{path}.relationship", VIDEO_RELATIONSHIPS)
    items = _get(record, list_name)
    if not check.array(items, f"{path}.{list_name}"):
        return None
    return list(items)


def _validate_video(check: _Collector, video: Any, path: str) -> None:
    if not check.record(video, path):
        return

    check.url(_get(video, "thumbnail_loc"), f"{path}.thumbnail_loc")
    check.string(
        _get(video, "title"),
        f"{path}.title",
        max_length=MAX_VIDEO_TITLE_LENGTH,
        message=f"Video title must not exceed {MAX_VIDEO_TITLE_LENGTH} characters",
    )
    check.string(
        _get(video, "description"),
        f"{path}.description",
        max_length=MAX_TEXT_LENGTH,
        message=f"Video description must not exceed {MAX_TEXT_LENGTH} characters",
    )

    content_loc = _optional(video, "content_loc")
    player_loc = _optional(video, "player_loc")
    if content_loc is not None:
        check.url(content_loc, f"{path}.content_loc")
    if player_loc is not None:
        check.url(player_loc, f"{path}.player_loc")
    if not content_loc and not player_loc:
        check.add(
            "custom",
            "Either content_loc or player_loc must be provided",
            path,
            None,
            "Add a content_loc (the media file) or a player_loc (the embeddable player)",
        )

    duration = _optional(video, "duration")
    if duration is not None:
        check.number(
            duration,
            f"{path}.duration",
            minimum=1,
            maximum=MAX_VIDEO_DURATION,
            integer=True,
            message=f"Duration must be between 1 and {MAX_VIDEO_DURATION} seconds",
        )
    rating = _optional(video, "rating")
    if rating is not None:
        check.number(
            rating,
            f"{path}.rating",
            minimum=0,
            maximum=MAX_VIDEO_RATING,
            message=f"Rating must be between 0.0 and {MAX_VIDEO_RATING}",
        )
    view_count = _optional(video, "view_count")
    if view_count is not None:
        check.number(view_count, f"{path}.view_count", minimum=0, integer=True)

    for name in ("expiration_date", "publication_date"):
        value = _optional(video, name)
        if value is not None:
            check.date(value, f"{path}.{name}")
    for name in ("family_friendly", "requires_subscription", "live"):
        value = _optional(video, name)
        if value is not None:
            check.boolean(value, f"{path}.{name}")

    tags = _optional(video, "tag")
    if tags is not None and check.array(
        tags, f"{path}.tag", max_items=MAX_VIDEO_TAGS, message=f"Maximum {MAX_VIDEO_TAGS} tags allowed"
    ):
        for i, tag in enumerate(tags):
            check.string(tag, f"{path}.tag[{i}]")

    restriction = _optional(video, "restriction")
    if restriction is not None:
        countries = _validate_relationship_list(check, restriction, f"{path}.restriction", "countries")
        for i, country in enumerate(countries or []):
            if isinstance(country, str) and (len(country) != 2 or has_invalid_xml_chars(country)):
                check.add(
                    "invalid_format",
                    "Country must be a two-letter ISO 3166 code",
                    f"{path}.restriction.countries[{i}]",
                    country,
                    "Use codes like 'US' or 'GB'",
                )
            elif not isinstance(country, str):
                check.invalid_type(f"{path}.restriction.countries[{i}]", country, "string")

    platform = _optional(video, "platform")
    if platform is not None:
        platforms = _validate_relationship_list(check, platform, f"{path}.platform", "platforms")
        for i, name in enumerate(platforms or []):
            check.choice(name, f"{path}.platform.platforms[{i}]", VIDEO_PLATFORMS)

    uploader = _optional(video, "uploader")
    if uploader is not None and check.record(uploader, f"{path}.uploader"):
        check.string(_get(uploader, "name"), f"{path}.uploader.name")
        info = _optional(uploader, "info")
        if info is not None:
            check.url(info, f"{path}.uploader.info")


def _validate_news(check: _Collector, news: Any, path: str) -> None:
    if not check.record(news, path):
        return

    publication = _get(news, "publication")
    if check.record(publication, f"{path}.publication"):
        check.string(_get(publication, "name"), f"{path}.publication.name")
        check.string(
            _get(publication, "language"),
            f"{path}.publication.language",
            min_length=2,
            max_length=5,
            message="Language must be an ISO 639-1 code (e.g., 'en')",
        )

    check.date(_get(news, "publication_date"), f"{path}.publication_date")
    check.string(
        _get(news, "title"),
        f"{path}.title",
        max_length=MAX_TEXT_LENGTH,
        message=f"News title must not exceed {MAX_TEXT_LENGTH} characters",
    )

    keywords = _optional(news, "keywords")
    if keywords is not None:
        check.string(keywords, f"{path}.keywords")
    tickers = _optional(news, "stock_tickers")
    if tickers is not None and check.string(tickers, f"{path}.stock_tickers"):
        if tickers and len(tickers.split(",")) > MAX_STOCK_TICKERS:
            check.add(
                "custom",
                f"Maximum {MAX_STOCK_TICKERS} stock tickers allowed",
                f"{path}.stock_tickers",
                tickers,
                f"Keep at most {MAX_STOCK_TICKERS} comma-separated tickers",
            )


def _validate_alternate(check: _Collector, alternate: Any, path: str) -> None:
    if not check.record(alternate, path):
        return
    check.url(_get(alternate, "href"), f"{path}.href")
    check.string(
        _get(alternate, "hreflang"),
        f"{path}.hreflang",
        min_length=2,
        message="hreflang must be at least 2 characters",
    )


def _validate_route(check: _Collector, route: Any, path: str) -> None:
    if not check.record(route, path):
        return

    check.url(_get(route, "url"), f"{path}.url")

    lastmod = _optional(route, "lastmod")
    if lastmod is not None:
        check.date(lastmod, f"{path}.lastmod")

    changefreq = _optional(route, "changefreq")
    if changefreq is not None:
        if isinstance(changefreq, ChangeFrequency):
            changefreq = changefreq.value
        check.choice(changefreq, f"{path}.changefreq", CHANGEFREQ_VALUES)

    priority = _optional(route, "priority")
    if priority is not None:
        check.number(priority, f"{path}.priority", minimum=0, maximum=1)

    images = _optional(route, "images")
    if images is not None and check.array(
        images,
        f"{path}.images",
        max_items=MAX_IMAGES_PER_URL,
        message=f"Maximum {MAX_IMAGES_PER_URL} images per URL",
    ):
        for i, image in enumerate(images):
            _validate_image(check, image, f"{path}.images[{i}]")

    videos = _optional(route, "videos")
    if videos is not None and check.array(videos, f"{path}.videos"):
        for i, video in enumerate(videos):
            _validate_video(check, video, f"{path}.videos[{i}]")

    news = _optional(route, "news")
    if news is not None:
        _validate_news(check, news, f"{path}.news")

    alternates = _optional(route, "alternates")
    if alternates is not None and check.array(alternates, f"{path}.alternates"):
        for i, alternate in enumerate(alternates):
            _validate_alternate(check, alternate, f"{path}.alternates[{i}]")


def validate_route(route: Any, path: str = "route") -> List[ValidationError]:
    """Validate a single route (a ``Route`` or a plain mapping)."""
    check = _Collector()
    _validate_route(check, route, path)
    return check.errors


def validate_routes(routes: Iterable[Any]) -> ValidationResult:
    """Validate all routes, collecting every error with its ``routes[i]`` path."""
    check = _Collector()
    count = 0
    for index, route in enumerate(routes):
        _validate_route(check, route, f"routes[{index}]")
        count += 1

    if check.errors:
        logger.debug(f"Validation found {len(check.errors)} errors in {count} routes")
        return ValidationResult.failure(count, check.errors)
    return ValidationResult.success(count)


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


def format_errors_for_console(errors: Sequence[ValidationError]) -> str:
    """Render errors as a numbered list with values and suggestions."""
    lines = []
    for number, error in enumerate(errors, 1):
        output = f"\n{number}. {error.path}: {error.message}"
        if error.value is not None:
            output += f"\n   Value: {_format_value(error.value)}"
        if error.suggestion:
            output += f"\n   Suggestion: {error.suggestion}"
        lines.append(output)
    return "\n".join(lines)


def format_result_for_console(result: ValidationResult) -> str:
    """Summarize a validation result for console output."""
    if result.valid:
        output = f"Validation passed ({result.route_count} routes)"
    else:
        output = f"Validation failed ({len(result.errors)} errors)"
        output += format_errors_for_console(result.errors)

    if result.warnings:
        output += "\n\nWarnings:\n" + "\n".join(f"  - {warning}" for warning in result.warnings)
    return output
