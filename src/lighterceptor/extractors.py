"""Dependency extraction from CSS and JavaScript text.

Pattern-based, stateless scanners. They never parse or execute their input, so
references built at runtime (string concatenation, template interpolation,
computed property access) are out of reach. Execution-time discovery is left to
the rendering environment.
"""

import re
from dataclasses import dataclass, field

# url(...) with optional single/double quotes, case-insensitive keyword
CSS_URL_RE = re.compile(r"""url\(\s*(['"]?)(.*?)\1\s*\)""", re.IGNORECASE | re.DOTALL)

# @import "x.css"; @import 'x.css'; @import url(x.css); @import url("x.css")
CSS_IMPORT_RE = re.compile(
    r"""@import\s+(?:url\(\s*)?(['"]?)([^'")\s]+)\1\s*\)?""",
    re.IGNORECASE,
)

# import x from "m"; import {a, b} from 'm'; import * as ns from "m"; import "m"
JS_STATIC_IMPORT_RE = re.compile(
    r"""(?:^|[;\s}])import\s+(?:[\w$*{}\s,]+?\s+from\s+)?(['"])([^'"\n]+)\1""",
    re.MULTILINE,
)
# export {a} from "m"; export * from "m"
JS_EXPORT_FROM_RE = re.compile(r"""\bexport\s+[\w$*{}\s,]+?\s+from\s+(['"])([^'"\n]+)\1""")
JS_DYNAMIC_IMPORT_RE = re.compile(r"""\bimport\s*\(\s*(['"`])([^'"`\n]+)\1\s*[,)]""")
JS_IMPORT_SCRIPTS_RE = re.compile(r"""\bimportScripts\s*\(([^)]*)\)""")
JS_FETCH_RE = re.compile(r"""\bfetch\s*\(\s*(['"`])([^'"`\n]+)\1""")
JS_XHR_OPEN_RE = re.compile(
    r"""\.open\s*\(\s*(['"])[A-Za-z]+\1\s*,\s*(['"`])([^'"`\n]+)\2"""
)
JS_STRING_LITERAL_RE = re.compile(r"""(['"`])([^'"`\n]+)\1""")


def _unique(values: list[str]) -> list[str]:
    """Deduplicate while keeping first-occurrence order."""
    return list(dict.fromkeys(values))


def _usable(value: str) -> str | None:
    """Strip a capture; drop blanks and unresolved template interpolations."""
    value = value.strip()
    if not value or "${" in value:
        return None
    return value


@dataclass
class CssDependencies:
    """References found in a stylesheet."""

    imports: list[str] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)

    def all(self) -> list[str]:
        return _unique(self.imports + self.urls)


@dataclass
class JsDependencies:
    """References found in a script, grouped by call shape."""

    imports: list[str] = field(default_factory=list)
    import_scripts: list[str] = field(default_factory=list)
    fetches: list[str] = field(default_factory=list)
    xhrs: list[str] = field(default_factory=list)

    def all(self) -> list[str]:
        return _unique(self.imports + self.import_scripts + self.fetches + self.xhrs)


def extract_css_dependencies(css_text: str) -> CssDependencies:
    """Extract @import targets and url() references from CSS.

    A url() that is the target of an @import is reported under ``imports`` only.

    Args:
        css_text: Stylesheet text (a full sheet or an inline style attribute)

    Returns:
        CssDependencies with deduplicated, source-ordered references

    Examples:
        >>> deps = extract_css_dependencies(
        ...     '@import url("base.css"); .a { background: URL(bg.png) }'
        ... )
        >>> deps.imports, deps.urls
        (['base.css'], ['bg.png'])
    """
    if not css_text:
        return CssDependencies()

    imports: list[str] = []
    import_spans: list[tuple[int, int]] = []
    for match in CSS_IMPORT_RE.finditer(css_text):
        import_spans.append(match.span())
        value = _usable(match.group(2))
        if value:
            imports.append(value)

    urls: list[str] = []
    for match in CSS_URL_RE.finditer(css_text):
        start = match.start()
        if any(span_start <= start < span_end for span_start, span_end in import_spans):
            continue
        value = _usable(match.group(2))
        if value:
            urls.append(value)

    return CssDependencies(imports=_unique(imports), urls=_unique(urls))


def extract_js_dependencies(js_text: str) -> JsDependencies:
    """Extract statically visible network references from JavaScript.

    Recognized call shapes:
    - static ``import ... from "X"``, bare ``import "X"`` and ``export ... from "X"``
    - dynamic ``import("X")``
    - ``importScripts("X", "Y")`` (every string argument)
    - ``fetch("X", ...)``
    - ``<xhr>.open("METHOD", "X")``

    Args:
        js_text: Script source

    Returns:
        JsDependencies with one entry per distinct reference per category

    Examples:
        >>> deps = extract_js_dependencies('fetch("/api"); fetch("/api"); import("./m.js")')
        >>> deps.fetches, deps.imports
        (['/api'], ['./m.js'])
    """
    if not js_text:
        return JsDependencies()

    positioned_imports: list[tuple[int, str]] = []
    for pattern in (JS_STATIC_IMPORT_RE, JS_EXPORT_FROM_RE, JS_DYNAMIC_IMPORT_RE):
        for match in pattern.finditer(js_text):
            value = _usable(match.group(2))
            if value:
                positioned_imports.append((match.start(2), value))
    # Keep source order across the three import shapes
    ordered_imports = [value for _, value in sorted(positioned_imports)]

    import_scripts: list[str] = []
    for match in JS_IMPORT_SCRIPTS_RE.finditer(js_text):
        for literal in JS_STRING_LITERAL_RE.finditer(match.group(1)):
            value = _usable(literal.group(2))
            if value:
                import_scripts.append(value)

    fetches = [
        value
        for value in (_usable(m.group(2)) for m in JS_FETCH_RE.finditer(js_text))
        if value
    ]
    xhrs = [
        value
        for value in (_usable(m.group(3)) for m in JS_XHR_OPEN_RE.finditer(js_text))
        if value
    ]

    return JsDependencies(
        imports=_unique(ordered_imports),
        import_scripts=_unique(import_scripts),
        fetches=_unique(fetches),
        xhrs=_unique(xhrs),
    )


def parse_srcset(srcset: str) -> list[str]:
    """Return the URL of every candidate in a srcset attribute.

    Candidates are split on commas, then on whitespace; the first token of each
    candidate is its URL.

    Examples:
        >>> parse_srcset("a.png 1x, b.png 2x,  c.png")
        ['a.png', 'b.png', 'c.png']
    """
    urls: list[str] = []
    for candidate in srcset.split(","):
        tokens = candidate.split()
        if tokens:
            urls.append(tokens[0])
    return _unique(urls)
