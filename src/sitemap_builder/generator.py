"""
Sitemap generation pipeline.

Routes flow through exclusion filtering, the user transform, defaults,
hostname resolution, validation, deduplication and finally splitting and
serialization. Each stage returns new route objects; the input list and
its routes are never modified.
"""

import asyncio
import inspect
import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .exclusion import filter_excluded_routes
from .splitter import base_filename_for, split_routes
from .types import (
    GenerationOptions,
    GenerationResult,
    Route,
    RouteSource,
    RouteTransformer,
    ValidationResult,
)
from .utils import format_number, is_future_date
from .validation import format_result_for_console, validate_routes
from .xml_builder import build_sitemap_xml, calculate_byte_size

logger = logging.getLogger(__name__)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _to_route(item: Any) -> Any:
    if isinstance(item, Mapping):
        return Route.from_dict(item)
    return item


async def resolve_route_source(source: RouteSource) -> List[Route]:
    """
    Resolve a route source into a concrete list.

    A source is either a sequence of routes or a zero-argument callable
    (plain or async) returning one. Mappings are converted to ``Route``.
    """
    if callable(source):
        source = await _maybe_await(source())
    if source is None:
        return []
    return [_to_route(item) for item in source]


def apply_defaults(routes: Sequence[Route], options: GenerationOptions) -> List[Route]:
    """Fill unset changefreq/priority/lastmod from the options. Route values always win."""
    result = []
    for route in routes:
        changes = {}
        if route.changefreq is None and options.changefreq is not None:
            changes["changefreq"] = options.changefreq
        if route.priority is None and options.priority is not None:
            changes["priority"] = options.priority
        if route.lastmod is None and options.lastmod is not None:
            changes["lastmod"] = options.lastmod
        result.append(replace(route, **changes))
    return result


def prepend_hostname(route: Route, hostname: str) -> Route:
    """Make a relative route URL absolute. Absolute http(s) URLs are returned unchanged."""
    url = route.url
    if not isinstance(url, str) or url.startswith(("http://", "https://")):
        return route

    path = url if url.startswith("/") else f"/{url}"
    return replace(route, url=f"{hostname.rstrip('/')}{path}")


def deduplicate_routes(routes: Sequence[Route]) -> List[Route]:
    """Drop routes whose URL was already seen. First occurrence wins."""
    seen = set()
    result = []
    for route in routes:
        if route.url not in seen:
            seen.add(route.url)
            result.append(route)
    return result


def merge_routes(*route_lists: Sequence[Route]) -> List[Route]:
    """Concatenate route lists, keeping the first route for each URL."""
    return deduplicate_routes([route for routes in route_lists for route in routes])


async def apply_transform(routes: Sequence[Route], transform: Optional[RouteTransformer]) -> List[Route]:
    """
    Run the transform on every route concurrently.

    Results keep the input order; ``None`` drops the route and mappings are
    converted to ``Route``. The first exception raised by the transform
    propagates after the remaining calls are cancelled.
    """
    if transform is None:
        return list(routes)

    async def run(route: Route) -> Optional[Route]:
        return await _maybe_await(transform(route))

    tasks = [asyncio.ensure_future(run(route)) for route in routes]
    try:
        transformed = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        # Retrieve the outcome of every task so no exception goes unobserved
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return [_to_route(route) for route in transformed if route is not None]


def _collect_future_date_warnings(routes: Sequence[Route]) -> List[str]:
    return [
        f"Future lastmod date for {route.url}: {route.lastmod}"
        for route in routes
        if isinstance(route.lastmod, str) and is_future_date(route.lastmod)
    ]


async def generate_sitemap(
    routes: Sequence[Route],
    options: Optional[GenerationOptions] = None,
) -> GenerationResult:
    """
    Generate a sitemap from routes.

    Pipeline:
    1. Apply exclusion filters
    2. Apply the transform callback
    3. Apply defaults (changefreq, priority, lastmod)
    4. Prepend the hostname to relative URLs
    5. Validate all routes (unless skipped)
    6. Deduplicate by URL
    7. Split and serialize

    Args:
        routes: Input routes (``Route`` objects or mappings)
        options: Generation options

    Returns:
        Generation result with XML, split information and warnings
    """
    options = options or GenerationOptions()
    warnings: List[str] = []
    routes = [_to_route(route) for route in routes]

    processed = filter_excluded_routes(routes, options.exclude)
    if len(processed) < len(routes):
        warnings.append(f"{len(routes) - len(processed)} routes excluded by filter patterns")

    processed = await apply_transform(processed, options.transform)
    processed = apply_defaults(processed, options)

    if options.hostname:
        processed = [prepend_hostname(route, options.hostname) for route in processed]

    if not options.skip_validation:
        validation = validate_routes(processed)
        warnings.extend(_collect_future_date_warnings(processed))

        if not validation.valid:
            validation.warnings = list(warnings)
            logger.debug(format_result_for_console(validation))
            return GenerationResult(
                success=False,
                validation=validation,
                warnings=warnings,
                base_filename=options.base_filename,
            )

    deduplicated = deduplicate_routes(processed)
    if len(deduplicated) < len(processed):
        warnings.append(f"{len(processed) - len(deduplicated)} duplicate URLs removed")

    if options.enable_splitting:
        split_result = split_routes(
            deduplicated,
            base_filename=options.base_filename,
            hostname=options.hostname,
            max_urls=options.max_urls,
            max_bytes=options.max_bytes,
        )
        if split_result.was_split:
            warnings.append(
                f"Sitemap split into {len(split_result.chunks)} files due to size/URL limits"
            )

        return GenerationResult(
            success=True,
            validation=ValidationResult.success(len(deduplicated), warnings),
            warnings=warnings,
            xml=split_result.chunks[0].xml,
            byte_size=sum(chunk.byte_size for chunk in split_result.chunks),
            route_count=len(deduplicated),
            split_result=split_result,
            base_filename=options.base_filename,
        )

    if options.serialize is not None:
        xml = await _maybe_await(options.serialize(deduplicated))
    else:
        xml = build_sitemap_xml(deduplicated)

    return GenerationResult(
        success=True,
        validation=ValidationResult.success(len(deduplicated), warnings),
        warnings=warnings,
        xml=xml,
        byte_size=calculate_byte_size(xml),
        route_count=len(deduplicated),
        base_filename=options.base_filename,
    )


async def _generate_collection(name: str, source: RouteSource, options: GenerationOptions) -> GenerationResult:
    routes = await resolve_route_source(source)
    logger.info(f"Generating sitemap '{name}' from {format_number(len(routes))} routes")
    return await generate_sitemap(routes, replace(options, base_filename=base_filename_for(name)))


async def generate_sitemaps(
    sources: Mapping[str, RouteSource],
    options: Optional[GenerationOptions] = None,
) -> Dict[str, GenerationResult]:
    """
    Generate one sitemap (or split set) per named route collection.

    Collections run concurrently. A collection whose source or transform
    raises gets a failed result carrying the error; the others are not
    affected.
    """
    options = options or GenerationOptions()
    names = list(sources)

    outcomes = await asyncio.gather(
        *(_generate_collection(name, sources[name], options) for name in names),
        return_exceptions=True,
    )

    results: Dict[str, GenerationResult] = {}
    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.error(f"Failed to generate sitemap '{name}': {outcome}")
            results[name] = GenerationResult(
                success=False,
                validation=ValidationResult.failure(0, []),
                base_filename=base_filename_for(name),
                error=str(outcome),
            )
            continue

        if not outcome.success:
            logger.error(f"Validation failed for '{name}':\n{format_result_for_console(outcome.validation)}")
        for warning in outcome.warnings:
            logger.warning(f"[{name}] {warning}")
        results[name] = outcome

    return results
