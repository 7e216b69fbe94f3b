"""Contract-checking reverse proxy for Swagger 2.0 services.

Keep public APIs explicit in ``__all__``.
"""

from __future__ import annotations

__version__ = '0.1.0'

from .api import create_app  # noqa: E402
from .capture import CapturedResponse, ResponseCapture  # noqa: E402
from .errors import (  # noqa: E402
    BindError,
    CompositeError,
    ContractViolation,
    DuplicateRouteError,
    SpecError,
    UpstreamTransportError,
)
from .proxy import ContractMiddleware, Proxy  # noqa: E402
from .reporter import ConsoleReporter, Reporter  # noqa: E402
from .spec import SpecDocument, load_spec, parse_spec  # noqa: E402
from .transport import AsyncValidatingTransport, ValidatingTransport, new_client  # noqa: E402

__all__: list[str] = [
    '__version__',
    'AsyncValidatingTransport',
    'BindError',
    'CapturedResponse',
    'CompositeError',
    'ConsoleReporter',
    'ContractMiddleware',
    'ContractViolation',
    'DuplicateRouteError',
    'Proxy',
    'Reporter',
    'ResponseCapture',
    'SpecDocument',
    'SpecError',
    'UpstreamTransportError',
    'ValidatingTransport',
    'create_app',
    'load_spec',
    'new_client',
    'parse_spec',
]
