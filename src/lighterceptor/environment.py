"""Rendering environments.

A rendering environment turns markup into an element tree, optionally executes
its scripts, and reports every request it would issue through an interception
callback supplied by the caller. The callback's return value substitutes for the
network response.

Environments:
- StaticEnvironment: lxml parse only (no scripts, no requests)
- PlaywrightEnvironment: headless Chromium with every request routed through
  the interceptor
"""

import asyncio
import contextlib
import logging
from typing import Any, Protocol

import lxml.html
from lxml.etree import ParserError, XMLSyntaxError

from lighterceptor.config import EnvironmentConfig
from lighterceptor.exceptions import RenderingEnvironmentError
from lighterceptor.types import (
    InterceptContext,
    LxmlDocument,
    RequestInterceptor,
    RequestSource,
    ResourceKind,
)

logger = logging.getLogger(__name__)

# Playwright resource types -> discovery mechanism. Playwright reports no
# initiator, so an image requested by a style mutation (setProperty, cssText)
# arrives as "image" and is tagged img rather than css.
PLAYWRIGHT_SOURCES: dict[str, RequestSource] = {
    "image": "img",
    "fetch": "fetch",
    "xhr": "xhr",
}

# Playwright resource types -> expected content kind
PLAYWRIGHT_KINDS: dict[str, ResourceKind] = {
    "document": "html",
    "stylesheet": "css",
    "script": "js",
}


# Parse from UTF-8 bytes so documents carrying an XML encoding declaration
# (SVG, XHTML) are accepted
HTML_PARSER = lxml.html.HTMLParser(encoding="utf-8")

EMPTY_DOCUMENT = b"<html></html>"


def parse_document(markup: str) -> LxmlDocument:
    """Parse markup into a full lxml document rooted at <html>.

    Blank markup and markup without any element (only a comment or doctype)
    yield an empty document.

    Raises:
        RenderingEnvironmentError: If lxml cannot build a tree
    """
    data = markup.encode("utf-8", errors="replace") if markup.strip() else EMPTY_DOCUMENT
    try:
        return lxml.html.document_fromstring(  # type: ignore[no-any-return]
            data, parser=HTML_PARSER
        )
    except (ParserError, XMLSyntaxError):
        # "Document is empty": nothing but comments, doctype or processing instructions
        logger.debug("Markup has no elements, using an empty document")
        return lxml.html.document_fromstring(  # type: ignore[no-any-return]
            EMPTY_DOCUMENT, parser=HTML_PARSER
        )
    except ValueError as e:
        raise RenderingEnvironmentError(f"Failed to parse markup: {e}") from e


class RenderSession(Protocol):
    """A document opened in a rendering environment."""

    async def settle(self, seconds: float) -> None:
        """Let asynchronous side effects surface for up to ``seconds``."""
        ...

    async def snapshot(self) -> LxmlDocument:
        """Return the current element tree."""
        ...

    async def close(self) -> None:
        """Release the document."""
        ...


class RenderingEnvironment(Protocol):
    """Capability interface of a rendering environment.

    Implementations must call the interceptor for every network-observable
    request they would issue, including requests caused by script mutations,
    and must accept its return value (None meaning empty) as the response body.
    """

    executes_scripts: bool

    async def open(
        self,
        markup: str,
        base_url: str | None,
        interceptor: RequestInterceptor,
    ) -> RenderSession:
        """Parse markup, run its scripts and start reporting requests."""
        ...

    async def aclose(self) -> None:
        """Release environment-wide resources."""
        ...


class StaticSession:
    """Session over an already-parsed, immutable lxml tree."""

    def __init__(self, document: LxmlDocument) -> None:
        self.document = document

    async def settle(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    async def snapshot(self) -> LxmlDocument:
        return self.document

    async def close(self) -> None:
        pass


class StaticEnvironment:
    """lxml-backed environment that neither executes scripts nor loads resources.

    Every resource-bearing construct is left for the markup harvest, so the
    interceptor is never called.
    """

    executes_scripts = False

    async def open(
        self,
        markup: str,
        base_url: str | None,
        interceptor: RequestInterceptor,
    ) -> StaticSession:
        return StaticSession(parse_document(markup))

    async def aclose(self) -> None:
        pass


class PlaywrightSession:
    """A Playwright page whose requests are all routed to the interceptor."""

    def __init__(self, context: Any, page: Any) -> None:
        self.context = context
        self.page = page

    async def settle(self, seconds: float) -> None:
        await self.page.wait_for_timeout(seconds * 1000)

    async def snapshot(self) -> LxmlDocument:
        try:
            html = await self.page.content()
        except Exception as e:
            raise RenderingEnvironmentError(f"Failed to read rendered document: {e}") from e
        return parse_document(html)

    async def close(self) -> None:
        with contextlib.suppress(Exception):
            await self.context.close()


class PlaywrightEnvironment:
    """Headless Chromium environment.

    Scripts run for real. Every request the page issues (subresources, script
    fetch/XHR, frames) is routed to the interceptor and fulfilled immediately
    with its content, so nothing goes over the network and script error paths
    never block.

    Requires the optional 'js' extra and an installed Chromium.
    """

    executes_scripts = True

    def __init__(self, config: EnvironmentConfig | None = None) -> None:
        self.config = config or EnvironmentConfig(backend="playwright")
        self.playwright: Any | None = None
        self.browser: Any | None = None
        self._browser_lock = asyncio.Lock()

    async def _ensure_browser(self) -> None:
        """Start Playwright and launch Chromium on first use.

        Raises:
            RenderingEnvironmentError: If playwright is missing or the browser fails to start
        """
        async with self._browser_lock:
            if self.browser is not None:
                return

            try:
                from playwright.async_api import async_playwright
            except ImportError as e:
                raise RenderingEnvironmentError(
                    "Playwright is required for the playwright environment. "
                    "Install with: pip install 'lighterceptor[js]' && playwright install chromium"
                ) from e

            logger.info("Initializing Playwright browser...")
            try:
                self.playwright = await async_playwright().start()
                self.browser = await self.playwright.chromium.launch(headless=True)
            except Exception as e:
                await self.aclose()
                raise RenderingEnvironmentError(f"Failed to launch browser: {e}") from e
            logger.info("Playwright browser initialized successfully")

    async def _new_context(self) -> Any:
        assert self.browser is not None  # Help mypy

        context_options: dict[str, Any] = {
            "viewport": {
                "width": self.config.viewport_width,
                "height": self.config.viewport_height,
            },
            "java_script_enabled": True,
        }
        if self.config.user_agent_override:
            context_options["user_agent"] = self.config.user_agent_override

        return await self.browser.new_context(**context_options)

    async def open(
        self,
        markup: str,
        base_url: str | None,
        interceptor: RequestInterceptor,
    ) -> PlaywrightSession:
        await self._ensure_browser()

        context = await self._new_context()
        try:
            page = await context.new_page()
            document_url = base_url.partition("#")[0] if base_url is not None else None
            document_served = False

            async def handle_route(route: Any, request: Any) -> None:
                nonlocal document_served
                if (
                    document_url is not None
                    and not document_served
                    and request.is_navigation_request()
                    and request.url == document_url
                ):
                    document_served = True
                    await route.fulfill(status=200, content_type="text/html", body=markup)
                    return

                resource_type = request.resource_type
                frame = request.frame
                tag = "iframe" if resource_type == "document" else None
                intercept_context = InterceptContext(
                    referrer=frame.url if frame is not None else base_url,
                    source=PLAYWRIGHT_SOURCES.get(resource_type, "resource"),
                    tag=tag,
                    kind_hint=PLAYWRIGHT_KINDS.get(resource_type),
                )
                body = await interceptor(request.url, intercept_context)
                await route.fulfill(status=200, body=body or b"")

            await page.route("**/*", handle_route)

            if base_url is not None:
                await page.goto(
                    base_url,
                    wait_until="domcontentloaded",
                    timeout=self.config.wait_timeout_ms,
                )
            else:
                await page.set_content(
                    markup,
                    wait_until="domcontentloaded",
                    timeout=self.config.wait_timeout_ms,
                )
        except Exception as e:
            with contextlib.suppress(Exception):
                await context.close()
            raise RenderingEnvironmentError(f"Browser failed to render document: {e}") from e

        return PlaywrightSession(context, page)

    async def aclose(self) -> None:
        """Close browser and stop Playwright."""
        if self.browser is not None:
            with contextlib.suppress(Exception):
                await self.browser.close()
        if self.playwright is not None:
            with contextlib.suppress(Exception):
                await self.playwright.stop()
        self.browser = None
        self.playwright = None


def create_environment(config: EnvironmentConfig) -> RenderingEnvironment:
    """Build the environment named by the configuration."""
    if config.backend == "playwright":
        return PlaywrightEnvironment(config)
    return StaticEnvironment()
