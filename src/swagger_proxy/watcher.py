"""Spec file watcher driving hot reloads of the proxy binding.

Polls the directory that holds the spec file. A write (new modification time)
or chmod (new mode bits) of the spec file marks a reload as pending; the
reload runs once a full poll interval passes without further changes, which
coalesces the bursts of events editors produce on save.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from .errors import BindError, SpecError
from .proxy import Proxy
from .spec import load_spec

logger = logging.getLogger(__name__)

DEBOUNCE_INTERVAL = 0.1

FileState = tuple[int, int]


def reload_spec(proxy: Proxy, path: Path) -> bool:
    """Load ``path`` and bind it into ``proxy``; keep the old binding on failure."""

    logger.info('Reloading %s', path)
    try:
        proxy.set_spec(load_spec(path))
    except (SpecError, BindError) as exc:
        logger.error('Reload of %s failed, keeping the previous spec: %s', path, exc)
        return False
    return True


class SpecWatcher:
    """Watch one spec file and call ``on_change`` after it settles."""

    def __init__(
        self,
        spec_path: Path | str,
        on_change: Callable[[], object],
        poll_interval: float = DEBOUNCE_INTERVAL,
    ) -> None:
        self.spec_path = Path(spec_path).resolve()
        self.directory = self.spec_path.parent
        self.on_change = on_change
        self.poll_interval = poll_interval
        self._states: dict[Path, FileState] = {}
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            logger.warning('Spec watcher already running for %s', self.spec_path)
            return
        self._states = self._scan()
        self._task = asyncio.create_task(self._watch_loop())
        logger.debug('Watching %s for changes to %s', self.directory, self.spec_path.name)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def _scan(self) -> dict[Path, FileState]:
        states: dict[Path, FileState] = {}
        try:
            entries = list(self.directory.iterdir())
        except OSError as exc:
            logger.warning('Cannot list %s: %s', self.directory, exc)
            return states
        for entry in entries:
            try:
                stat = entry.stat()
            except OSError:
                continue
            states[entry.resolve()] = (stat.st_mtime_ns, stat.st_mode)
        return states

    def poll(self) -> bool:
        """Rescan the directory; return ``True`` if the spec was written or chmodded."""

        current = self._scan()
        previous = self._states.get(self.spec_path)
        self._states = current
        state = current.get(self.spec_path)
        return state is not None and state != previous

    async def _watch_loop(self) -> None:
        pending = False
        while True:
            await asyncio.sleep(self.poll_interval)
            if self.poll():
                pending = True
                continue
            if pending:
                pending = False
                await asyncio.to_thread(self.on_change)
