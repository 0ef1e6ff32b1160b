"""Discovery orchestrator.

Classifies the top-level input, runs the first analysis pass, then drains the
discovery queue breadth-first through the resource cache until it is empty.

Each run owns a fresh request log, processed set, queue and cache.
"""

import logging
from datetime import UTC, datetime

from pydantic import ValidationError

from lighterceptor.analyzers import CssAnalyzer, MarkupAnalyzer, ScriptAnalyzer
from lighterceptor.cache import ResourceCache
from lighterceptor.classifier import classify, detect_input_kind
from lighterceptor.config import LighterceptorConfig
from lighterceptor.discovery import DiscoveryQueue, RequestLog
from lighterceptor.environment import RenderingEnvironment, create_environment
from lighterceptor.exceptions import ConfigError
from lighterceptor.http_client import HttpxFetcher
from lighterceptor.types import DiscoveryResult, Fetcher, PendingWorkItem, ResourceKind
from lighterceptor.urls import URLResolver

logger = logging.getLogger(__name__)


class Lighterceptor:
    """Discovers every request a piece of HTML, CSS or JavaScript would issue.

    Example:
        >>> engine = Lighterceptor('<img src="https://example.com/a.png">')
        >>> result = await engine.run()
        >>> [record.url for record in result.requests]
        ['https://example.com/a.png']
    """

    def __init__(
        self,
        text: str,
        config: LighterceptorConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
        environment: RenderingEnvironment | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            text: Raw HTML, CSS or JavaScript text
            config: Run configuration (defaults apply when None)
            fetcher: Retrieval primitive for recursion (default: HttpxFetcher from config.http)
            environment: Rendering environment (default: built from config.environment)
        """
        self.text = text
        self.config = config or LighterceptorConfig()
        self.fetcher = fetcher
        self.environment = environment

    async def run(self) -> DiscoveryResult:
        """Run discovery to completion.

        Returns:
            DiscoveryResult with the ordered request log

        Raises:
            RenderingEnvironmentError: If the rendering environment fails
        """
        config = self.config
        input_type: ResourceKind = config.input_type or detect_input_kind(self.text)
        captured_at = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        base_url = URLResolver.resolve(None, config.base_url) if config.base_url else None

        log = RequestLog()
        queue = DiscoveryQueue(enabled=config.recursion)

        owns_environment = self.environment is None
        environment = self.environment or create_environment(config.environment)

        owned_fetcher: HttpxFetcher | None = None
        fetcher = self.fetcher
        if fetcher is None and config.recursion:
            owned_fetcher = HttpxFetcher.from_config(config.http)
            fetcher = owned_fetcher
        cache = ResourceCache(fetcher)

        markup = MarkupAnalyzer(environment, log, queue, config.settle_time_ms)
        css = CssAnalyzer(log, queue)
        scripts = ScriptAnalyzer(log, queue)

        logger.info(
            f"Discovering requests in {input_type} input "
            f"(recursion={'on' if config.recursion else 'off'})"
        )

        try:
            title: str | None = None
            if input_type == "html":
                title = await markup.analyze(self.text, base_url)
            elif input_type == "css":
                css.analyze(self.text, base_url)
            elif environment.executes_scripts:
                # The inline-script harvest covers the static scan
                await markup.analyze(f"<script>{self.text}</script>", base_url)
            else:
                scripts.analyze(self.text, base_url)

            expanded = 0
            while (item := queue.pop()) is not None:
                if await self._expand(item, cache, markup, css, scripts):
                    expanded += 1
        finally:
            if owned_fetcher is not None:
                await owned_fetcher.aclose()
            if owns_environment:
                await environment.aclose()

        if config.recursion:
            logger.info(
                f"Expanded {expanded} of {len(queue.processed)} discovered resources "
                f"({cache.fetch_count} retrievals)"
            )
        logger.info(f"Discovered {len(log)} requests")

        return DiscoveryResult(
            input_type=input_type,
            title=title,
            captured_at=captured_at,
            requests=log.records,
        )

    async def _expand(
        self,
        item: PendingWorkItem,
        cache: ResourceCache,
        markup: MarkupAnalyzer,
        css: CssAnalyzer,
        scripts: ScriptAnalyzer,
    ) -> bool:
        """Load one queued resource and analyze it.

        Returns:
            True if the resource was analyzed, False if it was dropped
        """
        content = await cache.load(item.url)
        if content is None:
            logger.debug(f"No content for {item.url}, skipping")
            return False

        kind = item.kind_hint or classify(item.url, content.content_type, content.text)
        if kind is None:
            logger.debug(f"Unknown resource kind for {item.url}, not expanding")
            return False

        logger.debug(f"Expanding {item.url} as {kind}")
        if kind == "html":
            await markup.analyze(content.text, item.url)
        elif kind == "css":
            css.analyze(content.text, item.url)
        else:
            scripts.analyze(content.text, item.url)
        return True


async def discover(
    text: str,
    *,
    settle_time_ms: int | None = None,
    recursion: bool = False,
    input_type: ResourceKind | None = None,
    base_url: str | None = None,
    fetcher: Fetcher | None = None,
    environment: RenderingEnvironment | None = None,
) -> DiscoveryResult:
    """Discover the requests of ``text`` with keyword options.

    Args:
        text: Raw HTML, CSS or JavaScript text
        settle_time_ms: Per-pass settle interval (default 50)
        recursion: Retrieve and analyze discovered sub-resources
        input_type: Force the input kind instead of auto-detecting it
        base_url: Base URL for relative references in the input
        fetcher: Retrieval primitive used when recursion is on
        environment: Rendering environment

    Returns:
        DiscoveryResult with the ordered request log

    Raises:
        ConfigError: If an option is invalid (e.g. a relative base_url)
    """
    options: dict[str, object] = {
        "recursion": recursion,
        "input_type": input_type,
        "base_url": base_url,
    }
    if settle_time_ms is not None:
        options["settle_time_ms"] = settle_time_ms
    try:
        config = LighterceptorConfig.model_validate(options)
    except ValidationError as e:
        raise ConfigError(f"Invalid discovery options:\n{e}") from e
    return await Lighterceptor(text, config, fetcher=fetcher, environment=environment).run()
