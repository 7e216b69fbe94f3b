"""Unit tests for :mod:`swagger_proxy.spec`."""

from __future__ import annotations

from pathlib import Path

import pytest

from swagger_proxy.errors import SpecError
from swagger_proxy.spec import HeaderSpec, SpecDocument, load_spec, parse_spec, walk_operations

MINIMAL_YAML = """
swagger: '2.0'
info:
  title: Minimal
  version: 1.0.0
basePath: /api
produces:
  - application/json
responses:
  NotFound:
    description: missing
    schema:
      $ref: '#/definitions/Problem'
paths:
  /items/{id}:
    get:
      operationId: getItem
      responses:
        200:
          description: ok
          schema:
            type: object
        404:
          $ref: '#/responses/NotFound'
        default:
          description: anything else
definitions:
  Problem:
    type: object
"""


def test_load_petstore_reads_base_path_and_operations(petstore: SpecDocument) -> None:
    assert petstore.base_path == '/v2'
    assert len(list(walk_operations(petstore))) == 20


def test_walk_operations_uses_document_and_method_order(petstore: SpecDocument) -> None:
    first = [(path, method) for path, method, _ in walk_operations(petstore)][:3]
    assert first == [('/pet', 'POST'), ('/pet', 'PUT'), ('/pet/findByStatus', 'GET')]


def test_operation_exposes_responses_keyed_by_status(petstore: SpecDocument) -> None:
    operation = petstore.operation('/pet/findByStatus', 'get')
    assert operation.id == 'findPetsByStatus'
    assert operation.produces == ('application/xml', 'application/json')
    assert set(operation.responses) == {200, 400}
    assert operation.responses[200].schema_pointer == (
        '/paths/~1pet~1findByStatus/get/responses/200/schema'
    )
    assert operation.responses[400].schema is None


def test_response_headers_carry_formats(petstore: SpecDocument) -> None:
    headers = petstore.operation('/user/login', 'GET').responses[200].headers
    assert headers['X-Rate-Limit'].format == 'int32'
    assert headers['X-Expires-After'] == HeaderSpec(name='X-Expires-After', format='date-time')


def test_default_responses_are_not_status_codes(petstore: SpecDocument) -> None:
    assert dict(petstore.operation('/user', 'POST').responses) == {}


def test_yaml_document_with_shared_responses(tmp_path: Path) -> None:
    path = tmp_path / 'swagger.yml'
    path.write_text(MINIMAL_YAML, encoding='utf-8')

    spec = load_spec(path)

    operation = spec.operation('/items/{id}', 'GET')
    assert spec.produces == ('application/json',)
    assert operation.produces == ()
    assert set(operation.responses) == {200, 404}
    assert operation.responses[404].schema_pointer == '/responses/NotFound/schema'


def test_spec_document_is_read_only(petstore: SpecDocument) -> None:
    with pytest.raises(TypeError):
        petstore.paths['/new'] = {}  # type: ignore[index]


def test_load_spec_reports_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SpecError, match='Unable to read spec'):
        load_spec(tmp_path / 'absent.yml')


def test_load_spec_reports_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / 'broken.yml'
    path.write_text('paths: [unclosed', encoding='utf-8')
    with pytest.raises(SpecError, match='Unable to parse spec'):
        load_spec(path)


@pytest.mark.parametrize(
    ('document', 'message'),
    [
        (['not', 'a', 'mapping'], 'mapping at the document root'),
        ({'paths': []}, '`paths` must be an object'),
        ({'paths': {'/a': {'get': {'responses': {'ok': {}}}}}}, 'not an HTTP status code'),
        ({'paths': {'/a': {'get': {'produces': 'application/json'}}}}, 'list of media types'),
        (
            {'paths': {'/a': {'get': {'responses': {'200': {'$ref': '#/responses/Nope'}}}}}},
            'unknown response',
        ),
    ],
)
def test_parse_spec_rejects_malformed_documents(document: object, message: str) -> None:
    with pytest.raises(SpecError, match=message):
        parse_spec(document)  # type: ignore[arg-type]
