"""Markup, stylesheet and script analyzers.

Each analyzer takes text plus the URL it came from, records every reference it
finds in the request log, and enqueues them for recursive expansion. The
markup analyzer drives a rendering environment and harvests the resulting tree.
"""

import logging
from typing import TYPE_CHECKING, cast

from lighterceptor.classifier import infer_kind_from_url
from lighterceptor.discovery import DiscoveryQueue, RequestLog
from lighterceptor.environment import RenderingEnvironment
from lighterceptor.extractors import (
    extract_css_dependencies,
    extract_js_dependencies,
    parse_srcset,
)
from lighterceptor.types import InterceptContext, RequestSource, ResourceKind
from lighterceptor.urls import URLResolver

if TYPE_CHECKING:
    from lighterceptor.types import LxmlDocument, LxmlElement

logger = logging.getLogger(__name__)

# link rel tokens that make a browser issue a request for href
FETCHABLE_LINK_RELS = {
    "stylesheet",
    "preload",
    "prefetch",
    "modulepreload",
    "icon",
    "apple-touch-icon",
    "manifest",
}

# <link rel="preload" as="..."> -> kind hint
PRELOAD_AS_KINDS: dict[str, ResourceKind] = {
    "style": "css",
    "script": "js",
    "document": "html",
}

# (xpath, attribute, source) for attribute-driven loads with no kind hint
MEDIA_ATTRIBUTES: tuple[tuple[str, str, RequestSource], ...] = (
    ("//video[@src]", "src", "resource"),
    ("//video[@poster]", "poster", "resource"),
    ("//audio[@src]", "src", "resource"),
    ("//track[@src]", "src", "resource"),
    ("//embed[@src]", "src", "resource"),
    ("//object[@data]", "data", "resource"),
)


class _Analyzer:
    """Shared plumbing: resolve, record, enqueue."""

    def __init__(self, log: RequestLog, queue: DiscoveryQueue) -> None:
        self.log = log
        self.queue = queue

    def _discover(
        self,
        reference: str,
        base_url: str | None,
        source: RequestSource,
        kind_hint: ResourceKind | None = None,
    ) -> str | None:
        """Resolve a reference, record it and offer it to the queue.

        Returns:
            The resolved URL, or None if the reference was empty
        """
        url = URLResolver.resolve(base_url, reference)
        if url is None:
            return None
        self.log.record(url, source)
        self.queue.enqueue(url, kind_hint)
        return url


class CssAnalyzer(_Analyzer):
    """Records @import targets and url() references of a stylesheet."""

    def analyze(self, css_text: str, base_url: str | None = None) -> None:
        dependencies = extract_css_dependencies(css_text)
        for reference in dependencies.imports:
            self._discover(reference, base_url, "css", "css")
        for reference in dependencies.urls:
            self._discover(reference, base_url, "css")


class ScriptAnalyzer(_Analyzer):
    """Records statically visible imports, fetches and XHRs of a script."""

    def analyze(self, js_text: str, base_url: str | None = None) -> None:
        dependencies = extract_js_dependencies(js_text)
        for reference in dependencies.imports + dependencies.import_scripts:
            self._discover(reference, base_url, "resource", "js")
        for reference in dependencies.fetches:
            self._discover(reference, base_url, "fetch")
        for reference in dependencies.xhrs:
            self._discover(reference, base_url, "xhr")


class MarkupAnalyzer(_Analyzer):
    """Drives a rendering environment and harvests resource-bearing constructs.

    Two channels feed the log:
    1. Requests the environment reports through the interception callback
       (execution-time loads, script fetch/XHR, style mutations)
    2. An exhaustive harvest of the element tree after the settle interval

    The settle interval bounds how long asynchronous script side effects are
    given to surface. Anything later is not observed.
    """

    def __init__(
        self,
        environment: RenderingEnvironment,
        log: RequestLog,
        queue: DiscoveryQueue,
        settle_time_ms: int = 50,
    ) -> None:
        """Initialize markup analyzer.

        Args:
            environment: Rendering environment used to parse and execute markup
            log: Request log to append to
            queue: Discovery queue to offer URLs to
            settle_time_ms: Wait after rendering before harvesting the tree
        """
        super().__init__(log, queue)
        self.environment = environment
        self.settle_time_ms = settle_time_ms
        self.css = CssAnalyzer(log, queue)
        self.scripts = ScriptAnalyzer(log, queue)

    async def analyze(self, markup: str, base_url: str | None = None) -> str | None:
        """Analyze markup and return its document title, if any.

        Args:
            markup: HTML text
            base_url: URL of the document (None for ungrounded input)

        Returns:
            Stripped <title> text, or None

        Raises:
            RenderingEnvironmentError: If the environment cannot parse or execute the markup
        """

        async def intercept(url: str, context: InterceptContext) -> bytes | None:
            resolved = URLResolver.resolve(context.referrer or base_url, url)
            if resolved is None:
                return None
            self.log.record(resolved, context.source)
            self.queue.enqueue(resolved, self._hint_from_context(context))
            return b""

        session = await self.environment.open(markup, base_url, intercept)
        try:
            await session.settle(self.settle_time_ms / 1000)
            document = await session.snapshot()
        finally:
            await session.close()

        effective_base = self._detect_base_url(document, base_url)
        logger.debug(f"Harvesting element tree of {base_url or '<input>'}")
        self._harvest(document, effective_base)

        title = document.findtext(".//title")
        return (title.strip() or None) if title else None

    @staticmethod
    def _hint_from_context(context: InterceptContext) -> ResourceKind | None:
        if context.kind_hint is not None:
            return context.kind_hint
        tag = (context.tag or "").lower()
        if tag == "link":
            rels = (context.attributes.get("rel") or "").lower().split()
            if "stylesheet" in rels:
                return "css"
        elif tag in ("iframe", "frame"):
            return "html"
        elif tag == "script":
            return "js"
        return None

    @staticmethod
    def _detect_base_url(document: "LxmlDocument", base_url: str | None) -> str | None:
        """Apply the first <base href> of the document, if any."""
        for element in document.xpath("//base[@href]"):
            href = cast("LxmlElement", element).get("href")
            if href and href.strip():
                return URLResolver.resolve(base_url, href) or base_url
        return base_url

    def _elements(self, document: "LxmlDocument", xpath: str) -> list["LxmlElement"]:
        return [
            cast("LxmlElement", item) for item in document.xpath(xpath) if hasattr(item, "get")
        ]

    def _harvest(self, document: "LxmlDocument", base_url: str | None) -> None:
        """Walk the tree and discover every resource-bearing construct."""
        for img in self._elements(document, "//img"):
            self._discover_attribute(img, "src", base_url, "img")
            self._discover_srcset(img.get("srcset"), base_url, "img")

        for source in self._elements(document, "//source"):
            self._discover_attribute(source, "src", base_url, "resource")
            self._discover_srcset(source.get("srcset"), base_url, "resource")

        for script in self._elements(document, "//script"):
            src = script.get("src")
            if src is not None:
                self._discover(src, base_url, "resource", "js")
            else:
                self.scripts.analyze(script.text_content(), base_url)

        for frame in self._elements(document, "//iframe[@src] | //frame[@src]"):
            self._discover_attribute(frame, "src", base_url, "resource", "html")

        for xpath, attribute, source_tag in MEDIA_ATTRIBUTES:
            for element in self._elements(document, xpath):
                self._discover_attribute(element, attribute, base_url, source_tag)

        for element in self._elements(document, "//*[@style]"):
            self.css.analyze(element.get("style") or "", base_url)

        for style in self._elements(document, "//style"):
            self.css.analyze(style.text_content(), base_url)

        for link in self._elements(document, "//link[@href]"):
            self._discover_link(link, base_url)

    def _discover_attribute(
        self,
        element: "LxmlElement",
        attribute: str,
        base_url: str | None,
        source: RequestSource,
        kind_hint: ResourceKind | None = None,
    ) -> None:
        value = element.get(attribute)
        if value:
            self._discover(value, base_url, source, kind_hint)

    def _discover_srcset(
        self, srcset: str | None, base_url: str | None, source: RequestSource
    ) -> None:
        if not srcset:
            return
        for reference in parse_srcset(srcset):
            self._discover(reference, base_url, source)

    def _discover_link(self, link: "LxmlElement", base_url: str | None) -> None:
        rels = set((link.get("rel") or "").lower().split())
        if "shortcut" in rels:
            rels.add("icon")
        if not rels & FETCHABLE_LINK_RELS:
            return

        href = link.get("href") or ""
        kind_hint: ResourceKind | None = None
        if "stylesheet" in rels:
            kind_hint = "css"
        elif rels & {"preload", "prefetch", "modulepreload"}:
            as_value = (link.get("as") or "").strip().lower()
            kind_hint = PRELOAD_AS_KINDS.get(as_value)
            if kind_hint is None and "modulepreload" in rels:
                kind_hint = "js"
            if kind_hint is None:
                resolved = URLResolver.resolve(base_url, href)
                kind_hint = infer_kind_from_url(resolved) if resolved else None

        self._discover(href, base_url, "resource", kind_hint)

        if "preload" in rels:
            self._discover_srcset(link.get("imagesrcset"), base_url, "img")
