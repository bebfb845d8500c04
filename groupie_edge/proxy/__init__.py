"""
Proxy Package
=============

This package relays browser requests to the upstream Groupie Trackers API,
adding a permissive cross-origin header.

Main Components:
----------------
- client.py: UpstreamClient, streamed GET with a bounded timeout
- routes.py: route table, generic relay and the /api/*-proxy endpoint

Usage:
------
    from groupie_edge.proxy import proxy_router, build_proxy_routes
    app.state.proxy_routes = build_proxy_routes(settings.UPSTREAM_BASE_URL)
    app.include_router(proxy_router)
"""

from .client import UpstreamClient
from .routes import ProxyRoute, build_proxy_routes, proxy_router, relay

__all__ = ["ProxyRoute", "UpstreamClient", "build_proxy_routes", "proxy_router", "relay"]
