"""
Upstream HTTP client.

Thin wrapper around ``httpx.AsyncClient`` that opens a streamed GET under an
overall deadline and turns every transport failure into
``UpstreamUnavailable``.

httpx timeouts bound each connect/read/write step separately; the deadline
bounds the whole fetch, from connecting to the last body byte. ``open`` only
covers the part up to the response headers, so callers reading the body pass
the same deadline on (see ``proxy.routes._stream_body``).
"""

import logging
from typing import Optional

import anyio
import httpx

from ..errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class UpstreamClient:
    """
    Fetches upstream resources as streams.

    Args:
        timeout: Seconds allowed for one whole fetch, headers and body.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
            follow_redirects=True,
        )

    def deadline(self) -> float:
        """Absolute anyio clock time at which a fetch starting now must end."""
        return anyio.current_time() + self.timeout

    async def open(self, url: str, deadline: Optional[float] = None) -> httpx.Response:
        """
        Send a GET and return the response with its body still unread.

        The caller owns the response and must ``aclose()`` it.

        Args:
            url: Absolute upstream URL
            deadline: anyio clock time by which the headers must be in;
                defaults to ``timeout`` seconds from now

        Raises:
            UpstreamUnavailable: Deadline passed, timeout, connection or
                protocol failure.
        """
        if deadline is None:
            deadline = self.deadline()

        try:
            with anyio.fail_after(max(deadline - anyio.current_time(), 0)):
                request = self._client.build_request("GET", url)
                return await self._client.send(request, stream=True)
        except TimeoutError:
            logger.error(f"Deadline of {self.timeout}s exceeded fetching {url}")
            raise UpstreamUnavailable()
        except httpx.TimeoutException as e:
            logger.error(f"Timeout fetching {url}: {e!r}")
            raise UpstreamUnavailable()
        except (httpx.TransportError, httpx.InvalidURL) as e:
            logger.error(f"Error fetching {url}: {e!r}")
            raise UpstreamUnavailable()

    async def aclose(self) -> None:
        await self._client.aclose()
