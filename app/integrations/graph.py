"""Social Hub – Shared outbound HTTP helpers.

One request per call, no retries. Every failure (transport error, timeout,
non-2xx status, undecodable body) is raised as ``UpstreamCallFailure`` with
the platform's nested ``error.message`` when the body carries one.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from app.core.exceptions import UpstreamCallFailure

logger = structlog.get_logger()

FACEBOOK_GRAPH_BASE = "https://graph.facebook.com"
INSTAGRAM_GRAPH_BASE = "https://graph.instagram.com"


def extract_error_message(response: httpx.Response, fallback: str) -> str:
    """Pull the human-readable error out of a failed platform response."""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback

    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    # Instagram Login errors are flat: {"error_type": ..., "error_message": ...}
    if body.get("error_message"):
        return str(body["error_message"])
    if isinstance(error, str) and error:
        return body.get("error_description") or error
    return fallback


def _decode(response: httpx.Response, *, target: str, fallback: str) -> dict[str, Any]:
    if response.status_code >= 400:
        message = extract_error_message(response, fallback)
        logger.warning(
            "upstream.error_response",
            target=target,
            status=response.status_code,
            error=message,
        )
        raise UpstreamCallFailure(message, target=target, upstream_status=response.status_code)
    try:
        data = response.json()
    except ValueError as e:
        raise UpstreamCallFailure(f"{fallback}: invalid JSON response", target=target) from e
    return data if isinstance(data, dict) else {"data": data}


def _transport_failure(exc: httpx.HTTPError, *, target: str, fallback: str, timeout: float) -> UpstreamCallFailure:
    if isinstance(exc, httpx.TimeoutException):
        detail = f"timed out after {timeout:g}s"
    else:
        detail = str(exc) or exc.__class__.__name__
    logger.warning("upstream.transport_error", target=target, error=detail)
    return UpstreamCallFailure(f"{fallback}: {detail}", target=target)


async def get_json(
    url: str,
    *,
    target: str,
    timeout: float,
    fallback: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    """GET ``url`` and return the decoded JSON object."""
    async with httpx.AsyncClient(timeout=timeout) as client:
        try:
            response = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise _transport_failure(e, target=target, fallback=fallback, timeout=timeout) from e
    return _decode(response, target=target, fallback=fallback)


async def post_json(
    url: str,
    *,
    target: str,
    timeout: float,
    fallback: str,
    json: dict[str, Any] | None = None,
    data: dict[str, Any] | None = None,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    """POST a JSON (or form, via ``data``) body and return the decoded JSON object."""
    async with httpx.AsyncClient(timeout=timeout) as client:
        try:
            response = await client.post(url, json=json, data=data, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise _transport_failure(e, target=target, fallback=fallback, timeout=timeout) from e
    return _decode(response, target=target, fallback=fallback)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
