"""URL resolution and scheme filtering.

Resolves possibly-relative references against a base URL into canonical absolute
URLs, and flags schemes that carry no fetchable network identity.
"""

from urllib.parse import urljoin, urlsplit, urlunsplit


class URLResolver:
    """Centralized URL resolution and scheme classification.

    Resolution never raises: a reference that cannot be resolved is returned
    verbatim so that it still shows up in the request log.
    """

    # Schemes that are recorded but never followed
    SKIPPABLE_SCHEMES = {"data", "javascript", "about"}

    # Default ports that are dropped from canonical URLs
    DEFAULT_PORTS = {
        "http": 80,
        "https": 443,
    }

    @staticmethod
    def resolve(base_url: str | None, reference: str) -> str | None:
        """Resolve a reference against an optional base URL.

        Args:
            base_url: Base URL of the referring document (None if unknown)
            reference: Raw reference as found in markup, CSS or script

        Returns:
            Canonical absolute URL, the unchanged reference if it cannot be
            resolved, or None if the reference is empty

        Examples:
            >>> URLResolver.resolve("https://example.com/css/site.css", "../img/a.png")
            'https://example.com/img/a.png'

            >>> URLResolver.resolve("https://example.com/", "//cdn.example.com/x.js")
            'https://cdn.example.com/x.js'

            >>> URLResolver.resolve(None, "img/a.png")
            'img/a.png'

            >>> URLResolver.resolve(None, "   ") is None
            True
        """
        reference = reference.strip()
        if not reference:
            return None

        try:
            if base_url:
                absolute = urljoin(base_url, reference)
            else:
                if not urlsplit(reference).scheme:
                    return reference
                absolute = reference
            return URLResolver.canonicalize(absolute)
        except ValueError:
            return reference

    @staticmethod
    def canonicalize(url: str) -> str:
        """Canonicalize an absolute http(s) URL.

        Lowercases scheme and host, drops default ports and turns an empty path
        into "/". Query and fragment are preserved. Other schemes are returned
        unchanged.

        Raises:
            ValueError: If the URL has an invalid port or IPv6 host
        """
        parsed = urlsplit(url)
        scheme = parsed.scheme.lower()
        if scheme not in URLResolver.DEFAULT_PORTS or not parsed.hostname:
            return url

        netloc = parsed.hostname.lower()
        if ":" in netloc:
            netloc = f"[{netloc}]"

        port = parsed.port
        if port is not None and port != URLResolver.DEFAULT_PORTS[scheme]:
            netloc = f"{netloc}:{port}"

        if parsed.username:
            auth = parsed.username
            if parsed.password:
                auth = f"{auth}:{parsed.password}"
            netloc = f"{auth}@{netloc}"

        return urlunsplit((scheme, netloc, parsed.path or "/", parsed.query, parsed.fragment))

    @staticmethod
    def is_skippable(url: str) -> bool:
        """Return True if the URL must not be enqueued for recursion.

        Examples:
            >>> URLResolver.is_skippable("data:image/png;base64,AAAA")
            True

            >>> URLResolver.is_skippable("JavaScript:void(0)")
            True

            >>> URLResolver.is_skippable("https://example.com/a.png")
            False
        """
        scheme, sep, _ = url.strip().partition(":")
        return bool(sep) and scheme.lower() in URLResolver.SKIPPABLE_SCHEMES


resolve_url = URLResolver.resolve
is_skippable = URLResolver.is_skippable
