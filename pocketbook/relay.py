"""Pass-through HTTP relay used by the scrapers.

A single blocking request: method, headers and body are forwarded as given,
redirects are followed, and cookies set along the way live in an in-memory
jar shared by every call on the same :class:`Relay`. There are no retries and
no timeout. HTTP error statuses are returned like any other response; only
network-level failures raise :class:`~pocketbook.errors.TransportError`.

The relay knows nothing about payment shapes. Callers parse ``body`` and feed
the result to :mod:`pocketbook.payments`.
"""

from __future__ import annotations

import asyncio
import http.cookiejar
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field

from .errors import TransportError
from .logging_setup import get_logger

logger = get_logger("pocketbook.relay")


@dataclass(frozen=True, slots=True)
class RelayResponse:
    status: int
    body: str
    final_url: str
    request_headers: dict[str, str] = field(default_factory=dict)
    response_headers: dict[str, str] = field(default_factory=dict)


def _merge_headers(items) -> dict[str, str]:
    out: dict[str, str] = {}
    for key, value in items:
        out[key] = f"{out[key]}, {value}" if key in out else value
    return out


class Relay:
    """Holds the cookie jar and opener shared by consecutive requests."""

    def __init__(self) -> None:
        self.cookies = http.cookiejar.CookieJar()
        self._opener = urllib.request.build_opener(
            urllib.request.HTTPCookieProcessor(self.cookies)
        )

    def _build_request(
        self, url: str, method: str, headers: Mapping[str, str], body: str | None
    ) -> urllib.request.Request:
        data = body.encode("utf-8") if body is not None else None
        req = urllib.request.Request(url, data=data, method=method.upper())
        cookie: str | None = None
        for key, value in headers.items():
            if key.lower() == "cookie":
                cookie = value
                continue
            req.add_header(key, value)
        # Header order follows insertion; the cookie goes out last.
        if cookie is not None:
            req.add_header("Cookie", cookie)
        return req

    def perform(
        self,
        url: str,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> RelayResponse:
        req = self._build_request(url, method, headers or {}, body)
        logger.debug("relay %s %s", req.get_method(), url)
        try:
            with self._opener.open(req) as resp:
                raw = resp.read()
                status = resp.status
                final_url = resp.geturl()
                response_headers = _merge_headers(resp.headers.items())
        except urllib.error.HTTPError as e:
            raw = e.read()
            status = e.code
            final_url = e.geturl() or url
            response_headers = _merge_headers(e.headers.items()) if e.headers else {}
        except (urllib.error.URLError, OSError) as e:
            raise TransportError(f"{method.upper()} {url} failed: {e}") from e

        return RelayResponse(
            status=status,
            body=raw.decode("utf-8", errors="replace"),
            final_url=final_url,
            request_headers=dict(req.header_items()),
            response_headers=response_headers,
        )

    async def perform_async(
        self,
        url: str,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> RelayResponse:
        """Run :meth:`perform` on a worker thread, off the caller's event loop."""

        return await asyncio.to_thread(self.perform, url, method, headers, body)


__all__ = ["Relay", "RelayResponse"]
