"""Reporter port and the default coloured console reporter."""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from rich.console import Console
from rich.text import Text
from starlette.requests import Request

from .errors import CompositeError

ROUTE_NOT_DEFINED = 'Route not defined on the Spec'


@runtime_checkable
class Reporter(Protocol):
    """Receives the outcome of every proxied exchange.

    Calls happen synchronously on the request's task, so implementations
    must not block for long.
    """

    def success(self, request: Request) -> None: ...

    def error(self, request: Request, error: Exception) -> None: ...

    def warning(self, request: Request, message: str) -> None: ...

    def report(self) -> None: ...


class ConsoleReporter:
    """Print one coloured line per exchange, followed by any diagnostics."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)
        self.successes = 0
        self.errors = 0
        self.warnings = 0
        self._lock = threading.Lock()

    def _headline(self, mark: str, style: str, request: Request) -> None:
        self.console.print(Text.assemble((mark, style), f' {request.method} {request.url}'))

    def success(self, request: Request) -> None:
        with self._lock:
            self.successes += 1
            self._headline('✔', 'green', request)

    def error(self, request: Request, error: Exception) -> None:
        with self._lock:
            self.errors += 1
            self._headline('✗', 'red', request)
            if isinstance(error, CompositeError):
                for number, leaf in enumerate(error.errors, start=1):
                    self.console.print(Text(f'  {number}) {leaf}'))
            else:
                self.console.print(Text(f'=> {error}'))

    def warning(self, request: Request, message: str) -> None:
        with self._lock:
            self.warnings += 1
            self._headline('!', 'yellow', request)
            self.console.print(Text(f'  WARNING: {message}'))

    def report(self) -> None:
        with self._lock:
            self.console.print(
                Text(
                    f'{self.successes} passed, {self.errors} failed, {self.warnings} warnings',
                    style='bold',
                )
            )
