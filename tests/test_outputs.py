"""Tests for result persistence."""

import errno
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from lighterceptor.exceptions import OutputError
from lighterceptor.outputs import render_result, write_result
from lighterceptor.types import DiscoveryResult, RequestRecord


def _result(title: str | None = None) -> DiscoveryResult:
    return DiscoveryResult(
        input_type="html",
        captured_at="2026-01-01T00:00:00.000000Z",
        requests=[
            RequestRecord("https://example.com/a.png", "img", 1767225600000),
            RequestRecord("https://example.com/api", "fetch", 1767225600001),
        ],
        title=title,
    )


def test_render_result_shape() -> None:
    """Test the persisted JSON shape."""
    data = json.loads(render_result(_result(title="Home")))

    assert list(data) == ["inputType", "title", "capturedAt", "requests"]
    assert data["inputType"] == "html"
    assert data["title"] == "Home"
    assert data["requests"][0] == {
        "url": "https://example.com/a.png",
        "source": "img",
        "timestamp": 1767225600000,
    }


def test_render_result_omits_missing_title() -> None:
    """Test title is absent rather than null when unknown."""
    assert "title" not in json.loads(render_result(_result()))


def test_render_result_compact() -> None:
    """Test indent 0 produces single-line JSON."""
    assert render_result(_result(), indent=0).count("\n") == 1


@pytest.mark.asyncio
async def test_write_result(tmp_path: Path) -> None:
    """Test writing creates parent directories and returns the resolved path."""
    destination = tmp_path / "nested" / "dir" / "requests.json"

    written = await write_result(_result(title="Home"), destination)

    assert written == destination.resolve()
    data = json.loads(written.read_text(encoding="utf-8"))
    assert data["title"] == "Home"
    assert len(data["requests"]) == 2


@pytest.mark.asyncio
async def test_write_result_disk_full(tmp_path: Path) -> None:
    """Test OS errors become OutputError."""
    with patch(
        "lighterceptor.outputs.aiofiles.open",
        side_effect=OSError(errno.ENOSPC, "No space left on device"),
    ):
        with pytest.raises(OutputError, match="disk full"):
            await write_result(_result(), tmp_path / "requests.json")
