"""Tests for spec hot reloading."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import pytest

from swagger_proxy.proxy import Proxy
from swagger_proxy.spec import SpecDocument
from swagger_proxy.watcher import SpecWatcher, reload_spec

SMALL_SPEC = {
    'swagger': '2.0',
    'basePath': '/api',
    'paths': {'/health': {'get': {'operationId': 'health', 'responses': {'200': {'description': 'ok'}}}}},
}


def _touch(path: Path, offset: int) -> None:
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + offset * 1_000_000_000))


@pytest.fixture
def spec_file(tmp_path: Path) -> Path:
    path = tmp_path / 'swagger.json'
    path.write_text(json.dumps(SMALL_SPEC), encoding='utf-8')
    return path


def test_poll_detects_writes_to_the_spec(spec_file: Path) -> None:
    watcher = SpecWatcher(spec_file, lambda: None)
    watcher.poll()

    assert watcher.poll() is False
    _touch(spec_file, 1)
    assert watcher.poll() is True
    assert watcher.poll() is False


def test_poll_detects_mode_changes(spec_file: Path) -> None:
    watcher = SpecWatcher(spec_file, lambda: None)
    watcher.poll()

    spec_file.chmod(0o600)
    watcher.poll()
    spec_file.chmod(0o644)

    assert watcher.poll() is True


def test_poll_ignores_other_files(spec_file: Path) -> None:
    watcher = SpecWatcher(spec_file, lambda: None)
    watcher.poll()

    (spec_file.parent / 'notes.txt').write_text('unrelated', encoding='utf-8')

    assert watcher.poll() is False


def test_poll_ignores_removed_spec(spec_file: Path) -> None:
    watcher = SpecWatcher(spec_file, lambda: None)
    watcher.poll()

    spec_file.unlink()

    assert watcher.poll() is False


def test_relative_paths_are_resolved(spec_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(spec_file.parent)
    watcher = SpecWatcher('swagger.json', lambda: None)
    assert watcher.spec_path == spec_file.resolve()


def test_reload_spec_rebinds(petstore: SpecDocument, spec_file: Path) -> None:
    proxy = Proxy(petstore)

    assert reload_spec(proxy, spec_file) is True
    assert [operation.id for operation in proxy.pending_operations()] == ['health']


def test_failed_reload_keeps_binding(petstore: SpecDocument, spec_file: Path) -> None:
    proxy = Proxy(petstore)
    before = proxy.binding
    spec_file.write_text('paths: [unclosed', encoding='utf-8')

    assert reload_spec(proxy, spec_file) is False
    assert proxy.binding is before


def test_changes_are_debounced_into_one_reload(spec_file: Path) -> None:
    calls: list[int] = []

    async def exercise() -> None:
        watcher = SpecWatcher(spec_file, lambda: calls.append(1), poll_interval=0.01)
        await watcher.start()
        assert watcher.running
        for offset in range(1, 4):
            _touch(spec_file, offset)
            await asyncio.sleep(0)
        for _ in range(200):
            if calls:
                break
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.05)
        await watcher.stop()
        assert not watcher.running

    asyncio.run(exercise())

    assert calls == [1]


def test_watcher_reloads_proxy(petstore: SpecDocument, spec_file: Path) -> None:
    proxy = Proxy(petstore)

    async def exercise() -> None:
        watcher = SpecWatcher(spec_file, lambda: reload_spec(proxy, spec_file), poll_interval=0.01)
        await watcher.start()
        _touch(spec_file, 5)
        for _ in range(200):
            if len(proxy.pending_operations()) == 1:
                break
            await asyncio.sleep(0.01)
        await watcher.stop()

    asyncio.run(exercise())

    assert proxy.match('GET', '/api/health') is not None
