"""Lighterceptor - static resource-request discovery for HTML, CSS and JavaScript."""

from importlib.metadata import PackageNotFoundError, version

from lighterceptor.engine import Lighterceptor, discover
from lighterceptor.types import DiscoveryResult, RequestRecord

try:
    __version__ = version("lighterceptor")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = ["DiscoveryResult", "Lighterceptor", "RequestRecord", "__version__", "discover"]
