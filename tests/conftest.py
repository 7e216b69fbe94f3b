"""Shared fixtures for the swagger-proxy test suite."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest
from starlette.requests import Request

from swagger_proxy.spec import SpecDocument, load_spec

FIXTURES = Path(__file__).parent / 'fixtures'
PETSTORE = FIXTURES / 'petstore.json'


@dataclass
class RecordingReporter:
    """Reporter double that keeps every event it receives."""

    successes: list[Request] = field(default_factory=list)
    errors: list[tuple[Request, Exception]] = field(default_factory=list)
    warnings: list[tuple[Request, str]] = field(default_factory=list)
    reports: int = 0

    def success(self, request: Request) -> None:
        self.successes.append(request)

    def error(self, request: Request, error: Exception) -> None:
        self.errors.append((request, error))

    def warning(self, request: Request, message: str) -> None:
        self.warnings.append((request, message))

    def report(self) -> None:
        self.reports += 1


@pytest.fixture
def petstore() -> SpecDocument:
    return load_spec(PETSTORE)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()
