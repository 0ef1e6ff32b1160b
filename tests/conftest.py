"""Pytest fixtures for Lighterceptor tests."""

from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from lighterceptor.config import LighterceptorConfig
from lighterceptor.environment import StaticSession, parse_document
from lighterceptor.exceptions import RenderingEnvironmentError
from lighterceptor.types import FetchedContent, InterceptContext, RequestInterceptor


class StubFetcher:
    """Retrieval primitive serving canned bodies and counting calls per URL."""

    def __init__(self, responses: dict[str, FetchedContent] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[str] = []

    async def __call__(self, url: str) -> FetchedContent | None:
        self.calls.append(url)
        return self.responses.get(url)

    def call_count(self, url: str) -> int:
        return self.calls.count(url)


@dataclass
class FakeEnvironment:
    """Environment that reports a scripted list of requests through the interceptor.

    Attributes:
        requests: (url, context) pairs reported on every open()
        fail: Raise RenderingEnvironmentError from open() when True
    """

    requests: list[tuple[str, InterceptContext]] = field(default_factory=list)
    fail: bool = False
    executes_scripts: bool = True
    opened: list[tuple[str, str | None]] = field(default_factory=list)
    settled: list[float] = field(default_factory=list)
    closed: bool = False

    async def open(
        self, markup: str, base_url: str | None, interceptor: RequestInterceptor
    ) -> StaticSession:
        if self.fail:
            raise RenderingEnvironmentError("cannot build element tree")
        self.opened.append((markup, base_url))
        for url, context in self.requests:
            await interceptor(url, context)

        environment = self

        class RecordingSession(StaticSession):
            async def settle(self, seconds: float) -> None:
                environment.settled.append(seconds)

        return RecordingSession(parse_document(markup))

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fast_config() -> LighterceptorConfig:
    """Config with no settle wait, suitable for most tests."""
    return LighterceptorConfig(settle_time_ms=0)


@pytest.fixture
def recursive_config() -> LighterceptorConfig:
    """Config with recursion on and no settle wait."""
    return LighterceptorConfig(settle_time_ms=0, recursion=True)


@pytest.fixture
def stub_fetcher_factory() -> Callable[..., StubFetcher]:
    """Factory for StubFetcher instances.

    Usage:
        fetcher = stub_fetcher_factory({"https://example.com/s.css": FetchedContent("...")})
    """

    def factory(responses: dict[str, FetchedContent] | None = None) -> StubFetcher:
        return StubFetcher(responses)

    return factory
