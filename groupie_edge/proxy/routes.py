"""
Proxy Routes - Upstream API Relay
=================================

This module relays browser requests to the Groupie Trackers API so the
front-end never has to make cross-origin calls itself.

Relay Contract:
---------------
1. The local path is looked up in a fixed route table (built at startup)
2. Unknown paths under /api/ answer 404, never a relay attempt
3. One deadline (the client timeout) bounds the whole upstream fetch;
   failures before the headers answer 502, later ones cut the body short
4. Upstream status and Content-Type are forwarded unchanged
   (Content-Type defaults to application/json)
5. Access-Control-Allow-Origin: * is always set
6. The body is streamed chunk by chunk and the upstream response is closed
   on every exit path

Endpoints:
----------
- GET /api/artists-proxy
- GET /api/locations-proxy
- GET /api/dates-proxy
- GET /api/relations-proxy (alias /api/relation-proxy)
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Dict

import anyio
import httpx
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from ..errors import RouteNotFound, UpstreamUnavailable
from ..models import ErrorResponse
from .client import UpstreamClient

logger = logging.getLogger(__name__)

# Create router
proxy_router = APIRouter(
    prefix="/api",
    tags=["proxy"],
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
    },
)

DEFAULT_CONTENT_TYPE = "application/json"


# ============================================================================
# Route Table
# ============================================================================

@dataclass(frozen=True)
class ProxyRoute:
    """A local path and the upstream URL it relays to."""
    local_path: str
    upstream_url: str


# local path -> upstream resource name
UPSTREAM_RESOURCES = (
    ("/api/artists-proxy", "artists"),
    ("/api/locations-proxy", "locations"),
    ("/api/dates-proxy", "dates"),
    ("/api/relations-proxy", "relation"),
    ("/api/relation-proxy", "relation"),
)


def build_proxy_routes(base_url: str) -> Dict[str, ProxyRoute]:
    """
    Build the route table for an upstream base URL.

    Args:
        base_url: Upstream API root, e.g. https://groupietrackers.herokuapp.com/api

    Returns:
        Mapping of local path to ProxyRoute
    """
    base_url = base_url.rstrip("/")
    return {
        local_path: ProxyRoute(local_path, f"{base_url}/{resource}")
        for local_path, resource in UPSTREAM_RESOURCES
    }


# ============================================================================
# Relay
# ============================================================================

async def _stream_body(
    upstream: httpx.Response,
    upstream_url: str,
    deadline: float,
) -> AsyncIterator[bytes]:
    """
    Yield the upstream body until ``deadline`` and always release the upstream
    response.

    Headers are already on the wire when this runs, so a failed or overdue
    copy can only be logged and the body cut short.
    """
    chunks = upstream.aiter_bytes()
    try:
        while True:
            # Per-read limit from the remaining deadline; the scope closes before yield.
            with anyio.fail_after(max(deadline - anyio.current_time(), 0)):
                try:
                    chunk = await chunks.__anext__()
                except StopAsyncIteration:
                    break
            yield chunk
    except TimeoutError:
        logger.error(f"Deadline exceeded copying response body from {upstream_url}")
    except httpx.HTTPError as e:
        logger.error(f"Error copying response body from {upstream_url}: {e!r}")
    else:
        logger.info(f"Successfully proxied request to: {upstream_url}")
    finally:
        # Runs on client disconnect too, where the surrounding scope is cancelled.
        with anyio.CancelScope(shield=True):
            await upstream.aclose()


async def relay(upstream_url: str, client: UpstreamClient) -> StreamingResponse:
    """
    Relay a GET to ``upstream_url`` and stream the answer back.

    Args:
        upstream_url: Absolute upstream URL
        client: Upstream client; its timeout bounds the whole fetch

    Returns:
        StreamingResponse carrying the upstream status, Content-Type and body

    Raises:
        UpstreamUnavailable: No upstream headers before the deadline
    """
    logger.info(f"Proxying request to: {upstream_url}")
    deadline = client.deadline()
    upstream = await client.open(upstream_url, deadline)

    try:
        content_type = upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        if upstream.status_code >= 400:
            logger.warning(
                f"Upstream answered {upstream.status_code}, passing it through",
                extra={"upstream_url": upstream_url},
            )

        return StreamingResponse(
            _stream_body(upstream, upstream_url, deadline),
            status_code=upstream.status_code,
            headers={
                "Content-Type": content_type,
                "Access-Control-Allow-Origin": "*",
            },
            # Closes the upstream if the body iterator never starts.
            background=BackgroundTask(upstream.aclose),
        )
    except BaseException:
        await upstream.aclose()
        raise


# ============================================================================
# Dependencies
# ============================================================================

def get_upstream_client(request: Request) -> UpstreamClient:
    """
    Dependency to get the upstream HTTP client from app state.

    Raises:
        UpstreamUnavailable: If the client has not been initialized
    """
    client = getattr(request.app.state, "upstream_client", None)
    if client is None:
        logger.error("Upstream client not initialized")
        raise UpstreamUnavailable()
    return client


# ============================================================================
# Proxy Endpoint
# ============================================================================

@proxy_router.get("/{resource:path}")
async def proxy_resource(
    resource: str,
    request: Request,
    client: UpstreamClient = Depends(get_upstream_client),
):
    """
    Relay a configured /api/*-proxy path to its upstream resource.

    Registered after the account routes, so it only sees /api/ paths that
    nothing else claimed.
    """
    route = request.app.state.proxy_routes.get(f"/api/{resource}")
    if route is None:
        raise RouteNotFound()

    return await relay(route.upstream_url, client)
