"""Typed, read-only view of a Swagger 2.0 document.

Only the parts of the document the proxy needs are modelled: the base path,
document-level ``produces``, and for every operation its id, its
``produces`` list and its responses table (schema plus declared headers).
The parsed source mapping is kept on :attr:`SpecDocument.raw` so that the
binder can take the JSON snapshot used for ``$ref`` resolution.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, TypeGuard

import yaml

from .errors import SpecError

HTTP_METHODS: tuple[str, ...] = ('DELETE', 'GET', 'HEAD', 'OPTIONS', 'PATCH', 'POST', 'PUT')


@dataclass(frozen=True, slots=True)
class HeaderSpec:
    """A response header declared by the contract."""

    name: str
    format: str | None = None


@dataclass(frozen=True, slots=True)
class ResponseSpec:
    """What the contract promises for one status code of an operation."""

    status: int
    schema: Mapping[str, Any] | None = None
    schema_pointer: str | None = None
    headers: Mapping[str, HeaderSpec] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class Operation:
    """One (method, path) entry of the document."""

    id: str
    method: str
    path: str
    produces: tuple[str, ...] = ()
    responses: Mapping[int, ResponseSpec] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True, slots=True)
class SpecDocument:
    """Immutable structural description of an HTTP API."""

    base_path: str = ''
    produces: tuple[str, ...] = ()
    paths: Mapping[str, Mapping[str, Operation]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    raw: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def operation(self, path: str, method: str) -> Operation:
        """Return the operation declared for ``method`` on ``path``."""

        return self.paths[path][method.upper()]


def _is_mapping(value: Any) -> TypeGuard[Mapping[str, Any]]:
    return isinstance(value, Mapping)


def escape_pointer(token: str) -> str:
    """Escape a single JSON pointer reference token (RFC 6901)."""

    return token.replace('~', '~0').replace('/', '~1')


def _string_list(value: Any, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        msg = f'`produces` under {where} must be a list of media types.'
        raise SpecError(msg)
    return tuple(str(item) for item in value)


def _parse_headers(headers: Any, where: str) -> Mapping[str, HeaderSpec]:
    if headers is None:
        return MappingProxyType({})
    if not _is_mapping(headers):
        msg = f'Headers under {where} must be an object.'
        raise SpecError(msg)
    parsed: dict[str, HeaderSpec] = {}
    for name, header in headers.items():
        header_mapping = header if _is_mapping(header) else {}
        parsed[str(name)] = HeaderSpec(
            name=str(name),
            format=header_mapping.get('format'),
        )
    return MappingProxyType(parsed)


def _resolve_response(
    raw: Mapping[str, Any], response: Any, pointer: str, where: str
) -> tuple[Mapping[str, Any], str]:
    if not _is_mapping(response):
        msg = f'Response {where} must be an object.'
        raise SpecError(msg)
    ref = response.get('$ref')
    if ref is None:
        return response, pointer
    prefix = '#/responses/'
    if not isinstance(ref, str) or not ref.startswith(prefix):
        msg = f'Response {where} uses an unsupported reference {ref!r}.'
        raise SpecError(msg)
    name = ref[len(prefix) :]
    shared = raw.get('responses')
    target = shared.get(name) if _is_mapping(shared) else None
    if not _is_mapping(target):
        msg = f'Response {where} references unknown response {name!r}.'
        raise SpecError(msg)
    return target, f'/responses/{escape_pointer(name)}'


def _parse_responses(
    raw: Mapping[str, Any], responses: Any, pointer: str, where: str
) -> Mapping[int, ResponseSpec]:
    if responses is None:
        return MappingProxyType({})
    if not _is_mapping(responses):
        msg = f'Responses of {where} must be an object.'
        raise SpecError(msg)
    parsed: dict[int, ResponseSpec] = {}
    for key, response in responses.items():
        code = str(key)
        # ``default`` and vendor extensions do not name a status code.
        if code == 'default' or code.startswith('x-'):
            continue
        if not code.isdigit():
            msg = f'Response key {code!r} of {where} is not an HTTP status code.'
            raise SpecError(msg)
        label = f'{code} of {where}'
        body, body_pointer = _resolve_response(
            raw, response, f'{pointer}/{escape_pointer(code)}', label
        )
        schema = body.get('schema')
        parsed[int(code)] = ResponseSpec(
            status=int(code),
            schema=schema if _is_mapping(schema) else None,
            schema_pointer=f'{body_pointer}/schema' if _is_mapping(schema) else None,
            headers=_parse_headers(body.get('headers'), label),
        )
    return MappingProxyType(parsed)


def parse_spec(raw: Mapping[str, Any]) -> SpecDocument:
    """Build a :class:`SpecDocument` from an already parsed Swagger mapping."""

    if not _is_mapping(raw):
        msg = 'Swagger document must be a mapping at the document root.'
        raise SpecError(msg)

    paths = raw.get('paths')
    if paths is None:
        paths = {}
    if not _is_mapping(paths):
        msg = 'Swagger document `paths` must be an object.'
        raise SpecError(msg)

    parsed_paths: dict[str, Mapping[str, Operation]] = {}
    for path, item in paths.items():
        if str(path).startswith('x-'):
            continue
        if not _is_mapping(item):
            msg = f'Path `{path}` must map HTTP verbs to operation objects.'
            raise SpecError(msg)
        operations: dict[str, Operation] = {}
        for method in HTTP_METHODS:
            operation = item.get(method.lower())
            if operation is None:
                continue
            where = f'{method} {path}'
            if not _is_mapping(operation):
                msg = f'Operation {where} must be an object.'
                raise SpecError(msg)
            pointer = f'/paths/{escape_pointer(str(path))}/{method.lower()}/responses'
            operations[method] = Operation(
                id=str(operation.get('operationId') or ''),
                method=method,
                path=str(path),
                produces=_string_list(operation.get('produces'), where),
                responses=_parse_responses(raw, operation.get('responses'), pointer, where),
            )
        parsed_paths[str(path)] = MappingProxyType(operations)

    return SpecDocument(
        base_path=str(raw.get('basePath') or ''),
        produces=_string_list(raw.get('produces'), 'the document root'),
        paths=MappingProxyType(parsed_paths),
        raw=MappingProxyType(dict(raw)),
    )


def load_spec(path: Path | str) -> SpecDocument:
    """Read a Swagger document in JSON or YAML form from ``path``."""

    spec_path = Path(path)
    try:
        with spec_path.open(encoding='utf-8') as handle:
            raw = yaml.safe_load(handle)
    except OSError as exc:
        msg = f'Unable to read spec {spec_path}: {exc}'
        raise SpecError(msg) from exc
    except yaml.YAMLError as exc:
        msg = f'Unable to parse spec {spec_path}: {exc}'
        raise SpecError(msg) from exc
    return parse_spec(raw)


def walk_operations(spec: SpecDocument) -> Iterator[tuple[str, str, Operation]]:
    """Yield ``(path, method, operation)`` for every declared operation.

    Paths come in document order, methods in :data:`HTTP_METHODS` order.
    """
    for path, operations in spec.paths.items():
        for method in HTTP_METHODS:
            operation = operations.get(method)
            if operation is not None:
                yield path, method, operation
