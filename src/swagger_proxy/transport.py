"""``httpx`` transports that validate every exchange of a test client.

Black-box API tests can route their client through
:class:`ValidatingTransport` so that each response is handed to a validator
(typically :meth:`swagger_proxy.proxy.Proxy.check`) and every diagnostic is
reported separately through an ``error`` callable such as ``pytest.fail`` or
``list.append``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from .errors import CompositeError

Validator = Callable[[httpx.Request, httpx.Response], Exception | None]
ErrorSink = Callable[..., Any]


def report_errors(error: ErrorSink, failure: Exception | None) -> None:
    """Send ``failure`` to ``error``, one call per composite leaf."""

    if failure is None:
        return
    if isinstance(failure, CompositeError):
        for leaf in failure.errors:
            error(leaf)
    else:
        error(failure)


class ValidatingTransport(httpx.BaseTransport):
    """Wrap a synchronous transport and validate each response it returns."""

    def __init__(
        self,
        error: ErrorSink,
        validator: Validator,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.error = error
        self.validator = validator
        self.transport = transport or httpx.HTTPTransport()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        response = self.transport.handle_request(request)
        response.read()
        report_errors(self.error, self.validator(request, response))
        return response

    def close(self) -> None:
        self.transport.close()


class AsyncValidatingTransport(httpx.AsyncBaseTransport):
    """Asynchronous counterpart of :class:`ValidatingTransport`."""

    def __init__(
        self,
        error: ErrorSink,
        validator: Validator,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.error = error
        self.validator = validator
        self.transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        response = await self.transport.handle_async_request(request)
        await response.aread()
        report_errors(self.error, self.validator(request, response))
        return response

    async def aclose(self) -> None:
        await self.transport.aclose()


def new_client(
    error: ErrorSink,
    validator: Validator,
    transport: httpx.BaseTransport | None = None,
    **kwargs: Any,
) -> httpx.Client:
    """Return an ``httpx.Client`` whose responses are validated."""

    return httpx.Client(transport=ValidatingTransport(error, validator, transport), **kwargs)
