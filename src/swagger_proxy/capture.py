"""Response capture for ASGI applications.

:class:`ResponseCapture` sits between an application and the server's ``send``
callable. Every message is forwarded untouched; on the way through the status
line, headers and body chunks are mirrored so that the response can be
validated once the application has returned.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)

Message = MutableMapping[str, Any]
Send = Callable[[Message], Awaitable[None]]

DEFAULT_STATUS = 200


@runtime_checkable
class Response(Protocol):
    """Anything the validation engine can inspect."""

    @property
    def status(self) -> int: ...

    @property
    def headers(self) -> httpx.Headers: ...

    @property
    def body(self) -> bytes: ...


@dataclass(frozen=True, slots=True)
class CapturedResponse:
    """A fully buffered ``(status, headers, body)`` triple."""

    status: int = DEFAULT_STATUS
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: bytes = b''

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> CapturedResponse:
        """Snapshot an ``httpx`` response, reading its body if needed."""

        return cls(status=response.status_code, headers=response.headers, body=response.read())


class ResponseCapture:
    """Mirror an ASGI response while it is being sent downstream."""

    def __init__(self, send: Send) -> None:
        self._send = send
        self._status: int | None = None
        self._headers = httpx.Headers()
        self._body = bytearray()

    async def send(self, message: Message) -> None:
        kind = message.get('type')
        if kind == 'http.response.start' and self._status is None:
            self._status = int(message['status'])
            self._headers = httpx.Headers(list(message.get('headers') or []))
        elif kind == 'http.response.body':
            self._mirror(message.get('body', b''))
        await self._send(message)

    def _mirror(self, chunk: bytes) -> None:
        try:
            self._body.extend(chunk)
        except (MemoryError, TypeError) as exc:
            # The chunk still reaches the client; only the copy is lost.
            logger.warning('Unable to mirror response chunk: %s', exc)

    @property
    def started(self) -> bool:
        return self._status is not None

    @property
    def status(self) -> int:
        return DEFAULT_STATUS if self._status is None else self._status

    @property
    def headers(self) -> httpx.Headers:
        return self._headers

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    def snapshot(self) -> CapturedResponse:
        return CapturedResponse(status=self.status, headers=self.headers, body=self.body)
