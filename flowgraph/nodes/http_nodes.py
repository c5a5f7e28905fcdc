"""HTTP request functions."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from pydantic import BaseModel

from ..core.config import settings
from ..engine.function_registry import flow_function
from ..services.service_provider import ServiceProvider

logger = logging.getLogger(__name__)


class HttpResponse(BaseModel):
    """Body and status of a completed request."""

    body: str = ""
    status_code: int = 0
    success: bool = False


@asynccontextmanager
async def _client(services: ServiceProvider | None) -> AsyncIterator[httpx.AsyncClient]:
    # A client registered with the service provider is shared and left open
    shared = services.get_service(httpx.AsyncClient) if services is not None else None
    if shared is not None:
        yield shared
        return
    async with httpx.AsyncClient() as client:
        yield client


def _timeout(timeout_ms: int | None) -> float | None:
    if timeout_ms is None:
        timeout_ms = settings.http_timeout_ms
    return timeout_ms / 1000 if timeout_ms > 0 else None


async def _send(
    services: ServiceProvider | None,
    method: str,
    url: str,
    headers: dict[str, str] | None,
    timeout_ms: int | None,
    body: str | None = None,
    content_type: str | None = None,
) -> httpx.Response:
    request_headers = {k: v or "" for k, v in (headers or {}).items() if k and k.strip()}
    if body is not None:
        request_headers.setdefault("Content-Type", content_type or "application/json")

    async with _client(services) as client:
        return await client.request(
            method,
            url,
            headers=request_headers,
            content=body.encode("utf-8") if body is not None else None,
            timeout=_timeout(timeout_ms),
        )


async def _request(
    name: str,
    services: ServiceProvider | None,
    method: str,
    url: str,
    headers: dict[str, str] | None,
    timeout_ms: int | None,
    body: str | None = None,
    content_type: str | None = None,
) -> str:
    if not url or not url.strip():
        return ""
    try:
        response = await _send(services, method, url, headers, timeout_ms, body, content_type)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("%s failed: %s", name, e)
        raise
    return response.text


async def _request_with_status(
    name: str,
    services: ServiceProvider | None,
    method: str,
    url: str,
    headers: dict[str, str] | None,
    timeout_ms: int | None,
    body: str | None = None,
    content_type: str | None = None,
    keep_body: bool = True,
) -> HttpResponse:
    if not url or not url.strip():
        return HttpResponse()
    try:
        response = await _send(services, method, url, headers, timeout_ms, body, content_type)
    except httpx.HTTPError as e:
        logger.warning("%s failed: %s", name, e)
        return HttpResponse(body=str(e), status_code=0, success=False)
    return HttpResponse(
        body=response.text if keep_body else "",
        status_code=response.status_code,
        success=response.is_success,
    )


# --- Raising on error status ---


@flow_function(name="HttpGet", section="HTTP")
async def http_get(
    services: ServiceProvider,
    url: str,
    headers: dict[str, str] | None = None,
    timeout_ms: int | None = None,
) -> str:
    """
    GET a URL and return the response body.

    An empty URL returns an empty string.

    Raises:
        httpx.HTTPStatusError: If the response status is not successful
    """
    return await _request("HttpGet", services, "GET", url, headers, timeout_ms)


@flow_function(name="HttpPost", section="HTTP")
async def http_post(
    services: ServiceProvider,
    url: str,
    body: str,
    headers: dict[str, str] | None = None,
    content_type: str = "application/json",
    timeout_ms: int | None = None,
) -> str:
    """POST a string body and return the response body."""
    return await _request("HttpPost", services, "POST", url, headers, timeout_ms, body or "", content_type)


@flow_function(name="HttpPut", section="HTTP")
async def http_put(
    services: ServiceProvider,
    url: str,
    body: str,
    headers: dict[str, str] | None = None,
    content_type: str = "application/json",
    timeout_ms: int | None = None,
) -> str:
    return await _request("HttpPut", services, "PUT", url, headers, timeout_ms, body or "", content_type)


@flow_function(name="HttpPatch", section="HTTP")
async def http_patch(
    services: ServiceProvider,
    url: str,
    body: str,
    headers: dict[str, str] | None = None,
    content_type: str = "application/json",
    timeout_ms: int | None = None,
) -> str:
    return await _request("HttpPatch", services, "PATCH", url, headers, timeout_ms, body or "", content_type)


@flow_function(name="HttpDelete", section="HTTP")
async def http_delete(
    services: ServiceProvider,
    url: str,
    headers: dict[str, str] | None = None,
    timeout_ms: int | None = None,
) -> str:
    """DELETE a resource and return the response body."""
    return await _request("HttpDelete", services, "DELETE", url, headers, timeout_ms)


# --- Reporting status instead of raising ---


@flow_function(name="HttpGetWithStatus", section="HTTP/Advanced")
async def http_get_with_status(
    services: ServiceProvider,
    url: str,
    headers: dict[str, str] | None = None,
    timeout_ms: int | None = None,
) -> HttpResponse:
    """
    GET a URL without raising on failure.

    Transport errors are reported with status 0 and the error message as
    the body. The other ``*WithStatus`` functions behave the same way.
    """
    return await _request_with_status("HttpGetWithStatus", services, "GET", url, headers, timeout_ms)


@flow_function(name="HttpPostWithStatus", section="HTTP/Advanced")
async def http_post_with_status(
    services: ServiceProvider,
    url: str,
    body: str,
    headers: dict[str, str] | None = None,
    content_type: str = "application/json",
    timeout_ms: int | None = None,
) -> HttpResponse:
    return await _request_with_status(
        "HttpPostWithStatus", services, "POST", url, headers, timeout_ms, body or "", content_type
    )


@flow_function(name="HttpPutWithStatus", section="HTTP/Advanced")
async def http_put_with_status(
    services: ServiceProvider,
    url: str,
    body: str,
    headers: dict[str, str] | None = None,
    content_type: str = "application/json",
    timeout_ms: int | None = None,
) -> HttpResponse:
    return await _request_with_status(
        "HttpPutWithStatus", services, "PUT", url, headers, timeout_ms, body or "", content_type
    )


@flow_function(name="HttpPatchWithStatus", section="HTTP/Advanced")
async def http_patch_with_status(
    services: ServiceProvider,
    url: str,
    body: str,
    headers: dict[str, str] | None = None,
    content_type: str = "application/json",
    timeout_ms: int | None = None,
) -> HttpResponse:
    return await _request_with_status(
        "HttpPatchWithStatus", services, "PATCH", url, headers, timeout_ms, body or "", content_type
    )


@flow_function(name="HttpDeleteWithStatus", section="HTTP/Advanced")
async def http_delete_with_status(
    services: ServiceProvider,
    url: str,
    headers: dict[str, str] | None = None,
    timeout_ms: int | None = None,
) -> HttpResponse:
    return await _request_with_status("HttpDeleteWithStatus", services, "DELETE", url, headers, timeout_ms)


@flow_function(name="HttpHead", section="HTTP/Advanced")
async def http_head(
    services: ServiceProvider,
    url: str,
    headers: dict[str, str] | None = None,
    timeout_ms: int | None = None,
) -> HttpResponse:
    """HEAD a URL; the response carries the status only."""
    return await _request_with_status("HttpHead", services, "HEAD", url, headers, timeout_ms, keep_body=False)


@flow_function(name="HttpOptions", section="HTTP/Advanced")
async def http_options(
    services: ServiceProvider,
    url: str,
    headers: dict[str, str] | None = None,
    timeout_ms: int | None = None,
) -> HttpResponse:
    return await _request_with_status("HttpOptions", services, "OPTIONS", url, headers, timeout_ms)
