"""Resource kind classification.

Infers whether a resource is markup, stylesheet or script via an ordered chain
of strategies: content type, then URL extension, then body sniffing. Each
strategy either names a kind or abstains; the first opinion wins.
"""

import re
from typing import Protocol
from urllib.parse import urlsplit

from lighterceptor.types import ResourceKind

# How much of a body is inspected when sniffing
SNIFF_LENGTH = 4096

JS_LIKELIHOOD_RE = re.compile(
    r"\b(?:import|export|const|let|var|function)\b"
    r"|\b(?:fetch|XMLHttpRequest|importScripts)\s*\("
)

EXTENSION_KINDS: dict[str, ResourceKind] = {
    ".html": "html",
    ".htm": "html",
    ".css": "css",
    ".js": "js",
    ".mjs": "js",
    ".cjs": "js",
}


class ClassifierStrategy(Protocol):
    """One link in the classification chain."""

    def __call__(
        self, url: str, content_type: str | None, body: str | None
    ) -> ResourceKind | None:
        """Return a kind, or None for no opinion."""
        ...


class ContentTypeStrategy:
    """Classify by Content-Type substring."""

    def __call__(
        self, url: str, content_type: str | None, body: str | None
    ) -> ResourceKind | None:
        if not content_type:
            return None
        content_type = content_type.lower()
        if "text/html" in content_type or "application/xhtml+xml" in content_type:
            return "html"
        if "text/css" in content_type:
            return "css"
        if "javascript" in content_type:
            return "js"
        return None


class ExtensionStrategy:
    """Classify by the file extension of the URL path."""

    def __call__(
        self, url: str, content_type: str | None, body: str | None
    ) -> ResourceKind | None:
        return infer_kind_from_url(url)


class SniffStrategy:
    """Classify by the shape of the body text.

    Bodies containing NUL characters are treated as binary and never sniffed.
    """

    def __call__(
        self, url: str, content_type: str | None, body: str | None
    ) -> ResourceKind | None:
        if not body:
            return None
        sample = body[:SNIFF_LENGTH]
        if "\x00" in sample:
            return None
        head = sample.lstrip()
        if head.lower().startswith("<!doctype") or head.startswith("<"):
            return "html"
        if head.startswith("@") or "url(" in sample:
            return "css"
        if JS_LIKELIHOOD_RE.search(sample):
            return "js"
        return None


DEFAULT_STRATEGIES: tuple[ClassifierStrategy, ...] = (
    ContentTypeStrategy(),
    ExtensionStrategy(),
    SniffStrategy(),
)


def infer_kind_from_url(url: str) -> ResourceKind | None:
    """Infer a kind from the URL path extension, ignoring query and fragment.

    Examples:
        >>> infer_kind_from_url("https://example.com/app.mjs?v=3#top")
        'js'
        >>> infer_kind_from_url("https://example.com/logo.png") is None
        True
    """
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return None
    for extension, kind in EXTENSION_KINDS.items():
        if path.endswith(extension):
            return kind
    return None


def classify(
    url: str,
    content_type: str | None = None,
    body: str | None = None,
    strategies: tuple[ClassifierStrategy, ...] = DEFAULT_STRATEGIES,
) -> ResourceKind | None:
    """Classify a resource; None means unknown.

    Args:
        url: Absolute URL of the resource
        content_type: Content-Type header value, if known
        body: Response body text, if known
        strategies: Ordered strategy chain (first opinion wins)

    Returns:
        "html", "css", "js", or None when no strategy has an opinion
    """
    for strategy in strategies:
        kind = strategy(url, content_type, body)
        if kind is not None:
            return kind
    return None


def detect_input_kind(text: str) -> ResourceKind:
    """Classify top-level input, for which only the text itself is known.

    Leading "<" is markup; leading "@" or any url( is a stylesheet; anything
    else is treated as script.

    Examples:
        >>> detect_input_kind('<img src="a.png">')
        'html'
        >>> detect_input_kind('.hero { background: url("bg.png") }')
        'css'
        >>> detect_input_kind('fetch("/api");')
        'js'
    """
    trimmed = text.strip()
    if trimmed.startswith("<"):
        return "html"
    if trimmed.startswith("@") or "url(" in trimmed:
        return "css"
    return "js"
