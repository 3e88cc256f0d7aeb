"""Shared HTTP helpers used by the registry clients.

Encapsulates retry/timeout handling and DEBUG traces so the NuGet and
Thunderstore clients avoid duplicating try/except blocks. Blocking calls go
through requests, concurrent ones through an aiohttp session owned by the
caller.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import aiohttp
import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Accept": "application/json", "User-Agent": Constants.USER_AGENT}


def _retry_delay(attempt: int) -> float:
    return Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** attempt)


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout and retries, with DEBUG traces.

    Server errors and transport failures are retried up to
    ``Constants.HTTP_RETRY_MAX`` times. After the last failed attempt the
    status code is 0 and the body holds the failure description.
    """
    safe_target = safe_url(url)
    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers={**DEFAULT_HEADERS, **(headers or {})},
                    **kwargs
                )

                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            status_code=response.status_code,
                            duration_ms=t.duration_ms(),
                            target=safe_target
                        )
                    )
                if response.status_code >= 500 and attempt + 1 < Constants.HTTP_RETRY_MAX:
                    last_exception = f"HTTP {response.status_code}"
                    time.sleep(_retry_delay(attempt))
                    continue
                return response.status_code, dict(response.headers), response.text

            except requests.Timeout:
                last_exception = "timeout"
            except requests.RequestException as exc:  # includes ConnectionError
                last_exception = str(exc)
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request exception",
                    extra=extra_context(
                        event="http_exception",
                        component="http_client",
                        action="GET",
                        outcome=last_exception,
                        attempt=attempt + 1,
                        target=safe_target
                    )
                )
            if attempt + 1 < Constants.HTTP_RETRY_MAX:
                time.sleep(_retry_delay(attempt))

    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """Perform GET request and parse JSON response with DEBUG traces.

    Args:
        url: Target URL
        headers: Optional request headers
        **kwargs: Additional requests.get parameters

    Returns:
        Tuple of (status_code, headers_dict, parsed_json_or_none)
    """
    status_code, response_headers, text = robust_get(url, headers=headers, **kwargs)

    if status_code == 200 and text:
        try:
            return status_code, response_headers, json.loads(text)
        except json.JSONDecodeError:
            if is_debug_enabled(logger):
                logger.debug(
                    "JSON decode error",
                    extra=extra_context(
                        event="parse",
                        component="http_client",
                        action="get_json",
                        outcome="json_decode_error",
                        status_code=status_code,
                        target=safe_url(url)
                    )
                )
            return status_code, response_headers, None

    return status_code, response_headers, None


class HttpFetchError(Exception):
    """Raised by async_get_json when every attempt failed at the transport level."""


async def async_get_json(
    session: aiohttp.ClientSession,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
) -> Tuple[int, Optional[Any]]:
    """GET ``url`` through ``session`` and decode the JSON body.

    Transport errors and 5xx responses are retried. Any other status is
    returned as-is with a None body so callers can tell "not found" apart
    from "unreachable".

    Raises:
        HttpFetchError: all attempts failed, or a 200 body is not JSON
    """
    safe_target = safe_url(url)
    request_headers = {**DEFAULT_HEADERS, **(headers or {})}
    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )
                response = await session.request("GET", url, headers=request_headers)
                try:
                    body = await response.read()
                finally:
                    response.release()
                status = response.status
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action="GET",
                            status_code=status,
                            duration_ms=t.duration_ms(),
                            target=safe_target
                        )
                    )
                if status >= 500:
                    last_exception = f"HTTP {status}"
                elif status != 200:
                    return status, None
                else:
                    try:
                        return status, json.loads(body)
                    except ValueError as exc:
                        raise HttpFetchError(f"Invalid JSON from {safe_target}: {exc}") from exc
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                last_exception = str(exc) or exc.__class__.__name__
        if attempt + 1 < Constants.HTTP_RETRY_MAX:
            await asyncio.sleep(_retry_delay(attempt))

    raise HttpFetchError(
        f"Request to {safe_target} failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"
    )
