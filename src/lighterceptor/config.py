"""Configuration system.

YAML configuration files validated by Pydantic models with type-safe schemas, validation,
sensible defaults, and clear error messages. Entry point: load_config().
"""

from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from lighterceptor.exceptions import ConfigError

DEFAULT_SETTLE_MS = 50
DEFAULT_OUTPUT_PATH = "lighterceptor.requests.json"
DEFAULT_USER_AGENT = "Lighterceptor/0.1.0 (resource discovery)"


class CacheConfig(BaseModel):
    """HTTP caching configuration for repeated discovery runs.

    Uses Hishel library for RFC 9111 compliant HTTP caching. Only affects
    retrieval of sub-resources when recursion is enabled; the per-run resource
    cache is always on.
    """

    enabled: bool = Field(
        default=False,
        description="Enable persistent HTTP caching across runs (opt-in)",
    )
    backend: Literal["sqlite", "memory"] = Field(
        default="sqlite",
        description=(
            "Cache backend: sqlite (persistent across runs), "
            "memory (ephemeral, cache lost on exit)"
        ),
    )
    cache_dir: str = Field(
        default=".lighterceptor_cache",
        description="Cache directory",
    )
    ttl_seconds: int | None = Field(
        default=3600,
        ge=60,
        description=(
            "Cache TTL in seconds (None = respect server headers only). "
            "Overrides server Cache-Control headers when set."
        ),
    )


class HttpConfig(BaseModel):
    """Retrieval settings for sub-resources fetched during recursion."""

    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Total request timeout in seconds",
    )
    connect_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Connection timeout in seconds",
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries for transient failures (429 and 5xx)",
    )
    retry_backoff: float = Field(
        default=2.0,
        ge=1.0,
        description="Exponential backoff multiplier between retries",
    )
    retry_jitter: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Random jitter factor applied to backoff delays",
    )
    max_redirects: int = Field(
        default=10,
        ge=0,
        description="Maximum redirects followed per request",
    )
    http2: bool = Field(
        default=True,
        description="Negotiate HTTP/2 where the server supports it",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent with every retrieval",
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        description="Persistent HTTP cache configuration",
    )


class EnvironmentConfig(BaseModel):
    """Rendering environment configuration.

    Backends:
    - static: lxml parse only, no script execution, no requests (default)
    - playwright: headless Chromium; executes scripts and intercepts every request.
      Requires the optional 'js' extra: pip install 'lighterceptor[js]' &&
      playwright install chromium
    """

    backend: Literal["static", "playwright"] = Field(
        default="static",
        description="Rendering environment used to build and harvest element trees",
    )
    wait_timeout_ms: int = Field(
        default=30000,
        ge=1000,
        le=120000,
        description="Maximum time to load a document in the browser (playwright only)",
    )
    user_agent_override: str | None = Field(
        default=None,
        description="Custom browser user agent (playwright only)",
    )
    viewport_width: int = Field(
        default=1920,
        ge=320,
        description="Browser viewport width (playwright only)",
    )
    viewport_height: int = Field(
        default=1080,
        ge=240,
        description="Browser viewport height (playwright only)",
    )


class OutputConfig(BaseModel):
    """Where and how discovery results are written."""

    path: str = Field(
        default=DEFAULT_OUTPUT_PATH,
        description="Path of the JSON result file",
    )
    indent: int = Field(
        default=2,
        ge=0,
        description="JSON indentation",
    )


class LighterceptorConfig(BaseModel):
    """Main configuration model for a discovery run."""

    input_type: Literal["html", "css", "js"] | None = Field(
        default=None,
        description="Force the input kind instead of auto-detecting it",
    )
    settle_time_ms: int = Field(
        default=DEFAULT_SETTLE_MS,
        ge=0,
        description=(
            "Wait after driving the rendering environment before harvesting. "
            "Asynchronous script side effects after this window are not observed."
        ),
    )
    recursion: bool = Field(
        default=False,
        description="Retrieve and analyze discovered sub-resources recursively",
    )
    base_url: str | None = Field(
        default=None,
        description="Base URL for resolving relative references in the top-level input",
    )
    environment: EnvironmentConfig = Field(
        default_factory=EnvironmentConfig,
        description="Rendering environment configuration",
    )
    http: HttpConfig = Field(
        default_factory=HttpConfig,
        description="Sub-resource retrieval configuration",
    )
    output: OutputConfig = Field(
        default_factory=OutputConfig,
        description="Result persistence configuration",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str | None) -> str | None:
        """Require an absolute http(s) base URL when one is given."""
        if v is None:
            return v

        v = v.strip()
        parsed = urlsplit(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(
                f"base_url must be an absolute http(s) URL: {v!r}. "
                f"Example: 'https://example.com/'"
            )
        return v


def load_config(path: Path) -> LighterceptorConfig:
    """Load and validate YAML configuration file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated LighterceptorConfig instance

    Raises:
        ConfigError: If config file is not found, invalid YAML, or validation fails
    """
    try:
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        if not path.is_file():
            raise ValueError(f"Configuration path is not a file: {path}")

        with path.open("r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            return LighterceptorConfig()

        if not isinstance(config_dict, dict):
            raise ValueError(
                f"Configuration file must contain a YAML object/dict, "
                f"got {type(config_dict).__name__}"
            )

        return LighterceptorConfig(**config_dict)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed for {path}:\n{e}") from e
    except ValueError as e:
        raise ConfigError(str(e)) from e
