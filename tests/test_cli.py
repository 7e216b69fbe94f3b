"""Integration tests for the command line entry point."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from conftest import PETSTORE
from swagger_proxy import __version__
from swagger_proxy import cli as cli_module
from swagger_proxy.cli import app, parse_bind
from swagger_proxy.proxy import Proxy

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def served(monkeypatch: pytest.MonkeyPatch) -> list[tuple[Proxy, Path, str, int]]:
    calls: list[tuple[Proxy, Path, str, int]] = []

    async def fake_serve(proxy: Proxy, spec: Path, host: str, port: int) -> bool:
        calls.append((proxy, spec, host, port))
        return True

    monkeypatch.setattr(cli_module, '_serve', fake_serve)
    return calls


def test_version_flag() -> None:
    result = runner.invoke(app, ['--version'])
    assert result.exit_code == 0
    assert f'swagger-proxy {__version__}' in result.stdout


def test_missing_spec_exits_non_zero(tmp_path: Path) -> None:
    result = runner.invoke(app, ['--spec', str(tmp_path / 'absent.yml')], env={'NO_COLOR': '1'})
    assert result.exit_code == 1
    assert 'Unable to load spec' in result.stdout


def test_invalid_bind_is_a_usage_error() -> None:
    result = runner.invoke(app, ['--bind', 'nowhere', '--spec', str(PETSTORE)])
    assert result.exit_code == 2


def test_shutdown_prints_pending_operations(
    served: list[tuple[Proxy, Path, str, int]],
) -> None:
    result = runner.invoke(app, ['--spec', str(PETSTORE)], env={'NO_COLOR': '1'})

    assert result.exit_code == 0, result.stdout
    lines = result.stdout.splitlines()
    start = lines.index('Pending Operations:')
    assert lines[start + 2] == '001) id=addPet'
    assert lines[start + 21] == '020) id=updateUser'
    assert '0 passed, 0 failed, 0 warnings' in result.stdout

    ((proxy, spec, host, port),) = served
    assert proxy.target == 'http://localhost:4321'
    assert spec == PETSTORE
    assert (host, port) == ('0.0.0.0', 1234)  # nosec B104


def test_options_read_from_environment(served: list[tuple[Proxy, Path, str, int]]) -> None:
    result = runner.invoke(
        app,
        [],
        env={
            'NO_COLOR': '1',
            'SWAGGER_PROXY_SPEC': str(PETSTORE),
            'SWAGGER_PROXY_BIND': '127.0.0.1:9000',
            'SWAGGER_PROXY_TARGET': 'http://api.internal:8000',
        },
    )

    assert result.exit_code == 0, result.stdout
    ((proxy, _, host, port),) = served
    assert proxy.target == 'http://api.internal:8000'
    assert (host, port) == ('127.0.0.1', 9000)


def test_server_that_never_started_exits_non_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fail_to_bind(proxy: Proxy, spec: Path, host: str, port: int) -> bool:
        return False

    monkeypatch.setattr(cli_module, '_serve', fail_to_bind)

    result = runner.invoke(app, ['--spec', str(PETSTORE)])

    assert result.exit_code == 1
    assert 'Pending Operations:' not in result.stdout


@pytest.mark.parametrize(
    ('bind', 'expected'),
    [
        (':1234', ('0.0.0.0', 1234)),  # nosec B104
        ('localhost:8000', ('localhost', 8000)),
        ('[::1]:9000', ('::1', 9000)),
    ],
)
def test_parse_bind(bind: str, expected: tuple[str, int]) -> None:
    assert parse_bind(bind) == expected


@pytest.mark.parametrize('bind', ['1234', 'host:', 'host:port'])
def test_parse_bind_rejects_malformed_addresses(bind: str) -> None:
    with pytest.raises(typer.BadParameter):
        parse_bind(bind)
