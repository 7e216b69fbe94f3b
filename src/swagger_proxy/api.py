"""HTTP surface of the standalone proxy."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, Response

from . import __version__
from .errors import UpstreamTransportError
from .proxy import ContractMiddleware, Proxy, Receive, Scope, Send

logger = logging.getLogger(__name__)

HOP_BY_HOP_HEADERS = frozenset(
    {
        'connection',
        'keep-alive',
        'proxy-authenticate',
        'proxy-authorization',
        'te',
        'trailer',
        'trailers',
        'transfer-encoding',
        'upgrade',
    }
)
# Recomputed by the client that sends the request upstream.
_REQUEST_SKIP_HEADERS = HOP_BY_HOP_HEADERS | {'host', 'content-length'}


def _upstream_url(target: str, request: Request) -> str:
    raw_path = request.scope.get('raw_path')
    path = raw_path.decode('latin-1') if raw_path else request.url.path
    query = request.url.query
    return f'{target.rstrip("/")}{path}' + (f'?{query}' if query else '')


async def forward(client: httpx.AsyncClient, target: str, request: Request) -> Response:
    """Replay ``request`` against ``target`` and relay the answer unchanged."""

    headers = [
        (name, value)
        for name, value in request.headers.raw
        if name.decode('latin-1').lower() not in _REQUEST_SKIP_HEADERS
    ]
    outgoing = client.build_request(
        request.method,
        _upstream_url(target, request),
        headers=headers,
        content=await request.body(),
    )
    try:
        upstream = await client.send(outgoing, stream=True)
    except httpx.TransportError as exc:
        raise UpstreamTransportError(f'{request.method} {outgoing.url}: {exc}') from exc

    try:
        body = b''.join([chunk async for chunk in upstream.aiter_raw()])
    except httpx.TransportError as exc:
        raise UpstreamTransportError(f'{request.method} {outgoing.url}: {exc}') from exc
    finally:
        await upstream.aclose()

    response = Response(content=body, status_code=upstream.status_code)
    raw_headers = [
        (name, value)
        for name, value in upstream.headers.raw
        if name.decode('latin-1').lower() not in HOP_BY_HOP_HEADERS
    ]
    if 'content-length' not in upstream.headers:
        raw_headers.append((b'content-length', str(len(body)).encode('latin-1')))
    response.raw_headers = raw_headers
    return response


class Relay:
    """ASGI endpoint forwarding each request to the proxy target."""

    def __init__(self, client: httpx.AsyncClient, proxy: Proxy) -> None:
        self.client = client
        self.proxy = proxy

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = await forward(self.client, self.proxy.target, Request(scope, receive))
        await response(scope, receive, send)


def create_app(proxy: Proxy, client: httpx.AsyncClient | None = None) -> FastAPI:
    """Build the reverse proxy application for ``proxy``.

    Every path and method is forwarded to ``proxy.target`` through ``client``
    (a fresh ``httpx.AsyncClient`` when omitted) and the responses are checked
    by :class:`~swagger_proxy.proxy.ContractMiddleware`.
    """
    upstream = client or httpx.AsyncClient(follow_redirects=False, timeout=None)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if client is None:
            await upstream.aclose()

    app = FastAPI(
        title='Swagger Proxy',
        version=__version__,
        summary='Contract-checking reverse proxy.',
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    # A class endpoint gives a route that accepts every method, TRACE and
    # extension methods included.
    app.add_route('/{path:path}', Relay(upstream, proxy), include_in_schema=False)

    app.add_middleware(ContractMiddleware, proxy=proxy)
    return app
