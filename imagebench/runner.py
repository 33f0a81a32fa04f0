"""
Measurement runner: times the transform endpoint for every asset and width.

Requests are issued strictly one after another so the benchmark does not
contend with itself for bandwidth.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

import httpx

from imagebench.errors import FetchError
from imagebench.timing import TimingRecord
from imagebench.uploader import UploadedAsset

logger = logging.getLogger(__name__)


def transform_url(asset_url: str, width: int, fmt: str = "webp", quality: int = 75) -> str:
    """Build the on-the-fly transform URL; height 0 keeps the aspect ratio."""
    return f"{asset_url}/{width}x0/filters:format({fmt}):quality({quality})"


async def fetch_timed(client: httpx.AsyncClient, url: str) -> tuple[int, int]:
    """GET ``url``, following redirects, and drain the final body.

    Returns (start_ns, end_ns).
    """
    start = time.perf_counter_ns()
    try:
        async with client.stream("GET", url, follow_redirects=True) as response:
            if not response.is_success:
                raise FetchError(url, f"HTTP {response.status_code}", status_code=response.status_code)
            async for _ in response.aiter_bytes():
                pass
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise FetchError(url, f"request failed: {e}") from e
    return start, time.perf_counter_ns()


async def measure(
    client: httpx.AsyncClient,
    assets: list[UploadedAsset],
    widths: Iterable[int],
    fmt: str = "webp",
    quality: int = 75,
    progress_callback: Callable[[int, int, str], None] | None = None,
) -> list[TimingRecord]:
    """Time a transform request for every (asset, width) pair.

    Raises:
        FetchError: On the first failed request. Pairs after it are not
            measured.
    """
    widths = tuple(widths)
    total = len(assets) * len(widths)
    records: list[TimingRecord] = []

    logger.info(f"Measuring {total} transform requests...")
    for asset in assets:
        for width in widths:
            url = transform_url(asset.url, width, fmt, quality)
            start_ns, end_ns = await fetch_timed(client, url)
            record = TimingRecord(width=width, start_ns=start_ns, end_ns=end_ns, asset=asset)
            records.append(record)
            logger.debug(f"{url}: {record.duration_ms:.1f}ms")
            if progress_callback:
                progress_callback(len(records), total, f"Measuring {asset.example.filename}")

    return records
