"""Response validation engine.

:class:`ResponseValidator` checks a captured response against one operation of
a bound document. Four validators run on every call and their diagnostics are
merged into a single flat :class:`~swagger_proxy.errors.CompositeError`:

1. the status must be declared by the operation;
2. ``Content-Type`` must be one of the operation's (or the document's)
   ``produces`` media types;
3. every declared response header must be present and well formed;
4. the body must decode as JSON and satisfy the response schema.

When the status is undeclared there is no response descriptor, so header and
body checks are skipped while the media type is still checked.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from jsonschema import Draft4Validator, FormatChecker
from jsonschema.exceptions import UnknownType
from referencing import Registry
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT4

from .capture import Response
from .errors import (
    CompositeError,
    ContractViolation,
    MalformedBodyJSON,
    MalformedHeader,
    MimeMismatch,
    MissingHeader,
    SchemaViolation,
    SwaggerProxyError,
    UndeclaredStatus,
)
from .spec import Operation, SpecDocument, walk_operations

SPEC_URI = 'https://swagger-proxy.local/swagger.json'

_INTEGER = re.compile(r'^[+-]?\d+$')
_INTEGER_BITS = {'int32': 32, 'int64': 64}

# Swagger 2.0 data type formats. ``date`` and ``date-time`` come from jsonschema
# (the latter needs its ``format-nongpl`` extra); unknown formats pass.
SWAGGER_FORMATS = FormatChecker(('date', 'date-time'))


def _fits(instance: object, bits: int) -> bool:
    if isinstance(instance, bool) or not isinstance(instance, int):
        return True
    bound = 2 ** (bits - 1)
    return -bound <= instance < bound


@SWAGGER_FORMATS.checks('int32')
def _is_int32(instance: object) -> bool:
    return _fits(instance, 32)


@SWAGGER_FORMATS.checks('int64')
def _is_int64(instance: object) -> bool:
    return _fits(instance, 64)


def header_conforms(value: str, fmt: str) -> bool:
    """Return whether a header value satisfies the declared ``format``."""

    if fmt in _INTEGER_BITS:
        if not _INTEGER.match(value):
            return False
        return SWAGGER_FORMATS.conforms(int(value), fmt)
    return SWAGGER_FORMATS.conforms(value, fmt)


def _location(path: Any) -> str:
    location = 'body'
    for part in path:
        location += f'[{part}]' if isinstance(part, int) else f'.{part}'
    return location


class ResponseValidator:
    """Validate responses against the operations of one bound document.

    ``document`` is the plain JSON snapshot of ``spec``; schema ``$ref``s are
    resolved inside it.
    """

    def __init__(self, spec: SpecDocument, document: Mapping[str, Any]) -> None:
        self.spec = spec
        self.document = document
        self._registry = Registry().with_resource(
            SPEC_URI, DRAFT4.create_resource(document)
        )
        self._schemas: dict[str, Draft4Validator] = {}
        for _, _, operation in walk_operations(spec):
            for response in operation.responses.values():
                if response.schema_pointer is not None:
                    self._schemas[response.schema_pointer] = self._compile(response.schema_pointer)

    def _compile(self, pointer: str) -> Draft4Validator:
        return Draft4Validator(
            {'$ref': f'{SPEC_URI}#{pointer}'},
            registry=self._registry,
            format_checker=SWAGGER_FORMATS,
        )

    def validate(self, response: Response, operation: Operation) -> CompositeError | None:
        """Run every validator and return the merged diagnostics, or ``None``."""

        composite = CompositeError()
        composite.add(self.validate_status(response, operation))
        composite.add(self.validate_mime(response, operation))
        composite.add(self.validate_headers(response, operation))
        composite.add(self.validate_body(response, operation))
        if not composite.errors:
            return None
        return composite

    def validate_status(self, response: Response, operation: Operation) -> ContractViolation | None:
        if response.status in operation.responses:
            return None
        return UndeclaredStatus(response.status)

    def validate_mime(self, response: Response, operation: Operation) -> ContractViolation | None:
        produces = operation.produces or self.spec.produces
        if not produces:
            return None
        content_type = response.headers.get('content-type', '')
        if content_type in produces:
            return None
        return MimeMismatch(content_type, produces)

    def validate_headers(self, response: Response, operation: Operation) -> SwaggerProxyError | None:
        descriptor = operation.responses.get(response.status)
        if descriptor is None:
            return None

        composite = CompositeError()
        for name, header in descriptor.headers.items():
            value = response.headers.get(name, '')
            if not value:
                composite.add(MissingHeader(name))
                continue
            if header.format and not header_conforms(value, header.format):
                composite.add(MalformedHeader(name, header.format, value))
        return composite if composite.errors else None

    def validate_body(self, response: Response, operation: Operation) -> SwaggerProxyError | None:
        descriptor = operation.responses.get(response.status)
        if descriptor is None or descriptor.schema_pointer is None:
            return None

        try:
            instance = json.loads(response.body)
        except ValueError as exc:
            return MalformedBodyJSON(f'body is not valid JSON: {exc}')

        validator = self._schemas.get(descriptor.schema_pointer)
        if validator is None:
            validator = self._compile(descriptor.schema_pointer)

        composite = CompositeError()
        try:
            for error in validator.iter_errors(instance):
                composite.add(SchemaViolation(_location(error.absolute_path), error.message))
        except (Unresolvable, UnknownType) as exc:
            composite.add(SchemaViolation('body', f'schema cannot be applied: {exc}'))
        return composite if composite.errors else None
