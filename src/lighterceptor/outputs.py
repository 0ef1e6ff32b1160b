"""Result persistence.

Writes a DiscoveryResult as JSON ({inputType, title?, capturedAt, requests})
via aiofiles, creating parent directories as needed.
"""

from __future__ import annotations

import errno
import json
import logging
from pathlib import Path

import aiofiles

from lighterceptor.exceptions import OutputError
from lighterceptor.types import DiscoveryResult

logger = logging.getLogger(__name__)


def render_result(result: DiscoveryResult, indent: int = 2) -> str:
    """Serialize a result to JSON text with a trailing newline."""
    return json.dumps(result.to_dict(), indent=indent or None, ensure_ascii=False) + "\n"


async def write_result(result: DiscoveryResult, path: Path, indent: int = 2) -> Path:
    """Write a result to ``path``.

    Args:
        result: Discovery result to persist
        path: Destination file
        indent: JSON indentation (0 for compact output)

    Returns:
        Resolved path of the written file

    Raises:
        OutputError: If the file cannot be written
    """
    path = path.resolve()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(render_result(result, indent))
    except OSError as e:
        if e.errno == errno.ENOSPC:
            reason = "disk full"
        elif e.errno == errno.EACCES:
            reason = "permission denied"
        else:
            reason = str(e)
        raise OutputError(f"Failed to write {path}: {reason}") from e

    logger.info(f"Wrote {len(result.requests)} requests to {path}")
    return path
