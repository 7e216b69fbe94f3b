"""Proxy facade: route, record coverage, validate and report each exchange."""

from __future__ import annotations

import logging
import threading
from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any

import httpx
from starlette.requests import Request

from .binding import SpecBinding, bind
from .capture import CapturedResponse, Response, ResponseCapture
from .errors import CompositeError, UpstreamTransportError
from .reporter import ROUTE_NOT_DEFINED, Reporter
from .router import Route
from .spec import Operation, SpecDocument

logger = logging.getLogger(__name__)

Scope = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send = Callable[[MutableMapping[str, Any]], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

DEFAULT_TARGET = 'http://localhost:8080'


class Proxy:
    """Check observed traffic against the contract of a Swagger document.

    The active :class:`~swagger_proxy.binding.SpecBinding` is swapped as a
    whole by :meth:`set_spec`; each exchange reads it once, so it sees either
    the old or the new binding and never a mix of both.
    """

    def __init__(
        self,
        spec: SpecDocument,
        reporter: Reporter | None = None,
        *,
        target: str = DEFAULT_TARGET,
        verbose: bool = False,
    ) -> None:
        self.reporter = reporter
        self.target = target
        self.verbose = verbose
        self._lock = threading.Lock()
        self._binding = bind(spec, verbose=verbose)

    @property
    def binding(self) -> SpecBinding:
        return self._binding

    @property
    def spec(self) -> SpecDocument:
        return self._binding.spec

    def set_spec(self, spec: SpecDocument) -> None:
        """Replace the active binding; on failure the previous one is kept."""

        with self._lock:
            binding = bind(spec, verbose=self.verbose)
            self._binding = binding
        logger.info('Bound spec with %d operations', len(binding.operations))

    def pending_operations(self) -> list[Operation]:
        return self._binding.pending_operations()

    def routes(self) -> list[Route]:
        return self._binding.index.routes()

    def match(self, method: str, path: str) -> Operation | None:
        binding = self._binding
        handle = binding.index.match(method, path)
        return None if handle is None else binding.operation(handle)

    def validate(self, response: Response, operation: Operation) -> CompositeError | None:
        return self._binding.validator.validate(response, operation)

    def observe(self, request: Request, response: Response) -> None:
        """Handle a finished exchange: match, mark covered, validate, report."""

        binding = self._binding
        handle = binding.index.match(request.method, request.url.path)
        if handle is None:
            if self.reporter is not None:
                self.reporter.warning(request, ROUTE_NOT_DEFINED)
            return

        binding.ledger.hit(handle)
        error = binding.validator.validate(response, binding.operation(handle))
        if self.reporter is None:
            return
        if error is None:
            self.reporter.success(request)
        else:
            self.reporter.error(request, error)

    def check(self, request: httpx.Request, response: httpx.Response) -> CompositeError | None:
        """Validate an ``httpx`` exchange; usable as a client transport validator."""

        binding = self._binding
        handle = binding.index.match(request.method, request.url.path)
        if handle is None:
            logger.warning('%s: %s %s', ROUTE_NOT_DEFINED, request.method, request.url)
            return None
        binding.ledger.hit(handle)
        captured = CapturedResponse.from_httpx(response)
        return binding.validator.validate(captured, binding.operation(handle))

    def middleware(self, app: ASGIApp) -> ContractMiddleware:
        """Wrap a downstream ASGI app so its responses are checked."""

        return ContractMiddleware(app, proxy=self)


class ContractMiddleware:
    """ASGI middleware feeding every HTTP response to :meth:`Proxy.observe`."""

    def __init__(self, app: ASGIApp, proxy: Proxy) -> None:
        self.app = app
        self.proxy = proxy

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            await self.app(scope, receive, send)
            return

        capture = ResponseCapture(send)
        try:
            await self.app(scope, receive, capture.send)
        except UpstreamTransportError as exc:
            logger.warning('Upstream unavailable: %s', exc)
            if not capture.started:
                await _bad_gateway(send)
            return
        self.proxy.observe(Request(scope), capture.snapshot())


async def _bad_gateway(send: Send) -> None:
    body = b'Bad Gateway'
    await send(
        {
            'type': 'http.response.start',
            'status': 502,
            'headers': [
                (b'content-type', b'text/plain; charset=utf-8'),
                (b'content-length', str(len(body)).encode('latin-1')),
            ],
        }
    )
    await send({'type': 'http.response.body', 'body': body})
