"""Exception hierarchy shared by the binder, the validators and the proxy."""

from __future__ import annotations

from collections.abc import Iterable


class SwaggerProxyError(Exception):
    """Base class for every error raised by :mod:`swagger_proxy`."""


class SpecError(SwaggerProxyError, ValueError):
    """The Swagger document could not be read or has an unusable shape."""


class BindError(SwaggerProxyError):
    """A spec document could not be turned into a routable binding."""


class DuplicateRouteError(BindError):
    """Two path patterns resolve to the same (method, pattern) pair."""

    def __init__(self, method: str, pattern: str, other: str) -> None:
        super().__init__(f'duplicate route {method} {pattern} (conflicts with {other})')
        self.method = method
        self.pattern = pattern
        self.other = other


class UpstreamTransportError(SwaggerProxyError):
    """The upstream service could not be reached; the client got a 502."""


class ContractViolation(SwaggerProxyError):
    """A single leaf diagnostic produced while validating a response."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class UndeclaredStatus(ContractViolation):
    def __init__(self, status: int) -> None:
        super().__init__(f'status {status} not defined by the spec')
        self.status = status


class MimeMismatch(ContractViolation):
    def __init__(self, content_type: str, allowed: Iterable[str]) -> None:
        self.content_type = content_type
        self.allowed = tuple(allowed)
        super().__init__(
            f'unsupported media type "{content_type}", only [{", ".join(self.allowed)}] are allowed'
        )


class MissingHeader(ContractViolation):
    def __init__(self, name: str) -> None:
        super().__init__(f'{name} in headers is missing')
        self.name = name


class MalformedHeader(ContractViolation):
    def __init__(self, name: str, fmt: str, value: str) -> None:
        super().__init__(f'{name} in headers must be of type {fmt}: "{value}"')
        self.name = name
        self.format = fmt
        self.value = value


class MalformedBodyJSON(ContractViolation):
    """The response body could not be decoded as JSON."""


class SchemaViolation(ContractViolation):
    """The decoded body does not satisfy the declared JSON schema."""

    def __init__(self, location: str, message: str) -> None:
        super().__init__(f'{location}: {message}')
        self.location = location


class CompositeError(SwaggerProxyError):
    """A flat, ordered group of :class:`ContractViolation` leaves.

    Composites never nest: adding another composite splices its leaves in.
    """

    def __init__(self, errors: Iterable[SwaggerProxyError] = ()) -> None:
        self.errors: tuple[ContractViolation, ...] = ()
        for error in errors:
            self.add(error)
        super().__init__(self.errors)

    def add(self, error: SwaggerProxyError | None) -> None:
        if error is None:
            return
        if isinstance(error, CompositeError):
            self.errors += error.errors
        elif isinstance(error, ContractViolation):
            self.errors += (error,)
        else:
            self.errors += (ContractViolation(str(error)),)
        self.args = (self.errors,)

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)

    def __str__(self) -> str:
        return '; '.join(str(error) for error in self.errors)
