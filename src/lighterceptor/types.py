"""Type definitions and protocols for lighterceptor.

Data types shared across the discovery engine (request records, work items,
fetched content, results) and protocols for lxml types which have incomplete
type stubs.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

ResourceKind = Literal["html", "css", "js"]
RequestSource = Literal["resource", "img", "css", "fetch", "xhr"]

RESOURCE_KINDS: tuple[ResourceKind, ...] = ("html", "css", "js")


# Protocols for lxml type safety (lxml has incomplete type stubs)
class LxmlElement(Protocol):
    """Protocol for lxml Element objects."""

    tag: Any

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get attribute value."""
        ...

    def text_content(self) -> str:
        """Return the text of the element and its descendants."""
        ...


class LxmlDocument(Protocol):
    """Protocol for lxml document objects (HtmlElement)."""

    def xpath(self, expr: str) -> list[Any]:
        """Execute XPath query."""
        ...

    def findtext(self, path: str) -> str | None:
        """Return the text of the first matching subelement."""
        ...


@dataclass(frozen=True, slots=True)
class RequestRecord:
    """A single discovered request.

    Attributes:
        url: Absolute URL (or the raw reference when it could not be resolved)
        source: Discovery mechanism, not the content kind of the resource
        timestamp: Discovery time in milliseconds since the epoch
    """

    url: str
    source: RequestSource
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "source": self.source, "timestamp": self.timestamp}


@dataclass(frozen=True, slots=True)
class PendingWorkItem:
    """A URL waiting in the discovery queue."""

    url: str
    kind_hint: ResourceKind | None = None


@dataclass(frozen=True, slots=True)
class FetchedContent:
    """Body of a retrieved resource."""

    text: str
    content_type: str | None = None


@dataclass(frozen=True, slots=True)
class InterceptContext:
    """What a rendering environment knows about a request it intercepted.

    Attributes:
        referrer: URL of the document issuing the request
        source: Mechanism that produced the request
        tag: Lowercase tag name of the initiating element, when known
        attributes: Attributes of the initiating element, when known
        kind_hint: Content kind the environment expects, when known
    """

    referrer: str | None = None
    source: RequestSource = "resource"
    tag: str | None = None
    attributes: Mapping[str, str] = field(default_factory=dict)
    kind_hint: ResourceKind | None = None


@dataclass
class DiscoveryResult:
    """Outcome of one discovery run."""

    input_type: ResourceKind
    captured_at: str
    requests: list[RequestRecord]
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        data: dict[str, Any] = {"inputType": self.input_type}
        if self.title:
            data["title"] = self.title
        data["capturedAt"] = self.captured_at
        data["requests"] = [record.to_dict() for record in self.requests]
        return data


Fetcher = Callable[[str], Awaitable[FetchedContent | None]]
RequestInterceptor = Callable[[str, InterceptContext], Awaitable[bytes | None]]
