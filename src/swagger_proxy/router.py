"""Route table mapping (method, path pattern) pairs to operation handles."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from .errors import DuplicateRouteError

_PLACEHOLDER = re.compile(r'^\{[^/{}]+\}$')


def _segments(path: str) -> tuple[str, ...]:
    return tuple(path.split('/'))


def _is_placeholder(segment: str) -> bool:
    return bool(_PLACEHOLDER.match(segment))


@dataclass(frozen=True, slots=True)
class Route:
    """A registered ``pattern`` reachable through ``method``."""

    method: str
    pattern: str
    handle: int

    @property
    def segments(self) -> tuple[str, ...]:
        return _segments(self.pattern)

    @property
    def canonical(self) -> str:
        """The pattern with placeholder names erased, e.g. ``/pet/{}``."""

        return '/'.join('{}' if _is_placeholder(s) else s for s in self.segments)

    @property
    def specificity(self) -> tuple[int, ...]:
        # Literal segments outrank placeholders, leftmost first.
        return tuple(0 if _is_placeholder(s) else 1 for s in self.segments)

    def matches(self, segments: tuple[str, ...]) -> bool:
        own = self.segments
        if len(own) != len(segments):
            return False
        for expected, actual in zip(own, segments, strict=True):
            if _is_placeholder(expected):
                if not actual:
                    return False
            elif expected != actual:
                return False
        return True


class OperationIndex:
    """Resolve request paths to the operation handle that serves them.

    ``{name}`` segments match exactly one non-empty path segment, everything
    else must match verbatim. Trailing slashes are significant and query
    strings are ignored. When several patterns match, the one with literal
    segments further to the left wins, so ``/pet/findByStatus`` beats
    ``/pet/{petId}``.
    """

    def __init__(self, routes: Iterable[Route] = ()) -> None:
        self._routes: dict[str, list[Route]] = {}
        self._seen: dict[tuple[str, str], Route] = {}
        for route in routes:
            self.add(route)

    def add(self, route: Route) -> None:
        key = (route.method, route.canonical)
        existing = self._seen.get(key)
        if existing is not None:
            raise DuplicateRouteError(route.method, route.pattern, existing.pattern)
        self._seen[key] = route
        bucket = self._routes.setdefault(route.method, [])
        bucket.append(route)
        bucket.sort(key=lambda item: item.specificity, reverse=True)

    def routes(self) -> list[Route]:
        return sorted(self._seen.values(), key=lambda route: route.handle)

    def __len__(self) -> int:
        return len(self._seen)

    def match(self, method: str, path: str) -> int | None:
        """Return the handle of the operation serving ``method path``, if any."""

        path = path.split('?', 1)[0]
        segments = _segments(path)
        for route in self._routes.get(method.upper(), ()):
            if route.matches(segments):
                return route.handle
        return None
