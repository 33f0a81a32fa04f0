"""
Benchmark session orchestrator.

Runs the three phases in order: corpus (reuse or generate), upload, measure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

import httpx

from imagebench.config import BenchmarkConfig
from imagebench.corpus import ExampleImage, load_or_build
from imagebench.generator import Encoder
from imagebench.ratelimit import IntervalTicker
from imagebench.runner import measure
from imagebench.timing import TimingRecord
from imagebench.uploader import AssetUploader, UploadedAsset

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkResult:
    """Result of a benchmark run."""

    examples: list[ExampleImage]
    assets: list[UploadedAsset]
    records: list[TimingRecord]
    start_time: datetime
    end_time: datetime

    @property
    def wall_time_s(self) -> float:
        """Total wall clock time in seconds."""
        return (self.end_time - self.start_time).total_seconds()


class BenchmarkSession:
    """Manages a complete benchmark run.

    Results are only returned once every phase has finished; a failure in
    any phase discards whatever was measured so far.
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        encoder: Encoder | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        ticker: IntervalTicker | None = None,
        progress_callback: Callable[[int, int, str], None] | None = None,
    ):
        """Initialize benchmark session.

        Args:
            config: Benchmark configuration
            encoder: Image encoder for corpus generation (default: Pillow)
            transport: Optional httpx transport, e.g. a mock in tests
            ticker: Upload launch throttle (default: config.upload_interval_s)
            progress_callback: Optional callback for progress updates.
                              Called with (current, total, message).
        """
        self.config = config
        self.encoder = encoder
        self.transport = transport
        self.ticker = ticker
        self._progress_callback = progress_callback

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout_s),
            transport=self.transport,
        )

    async def run(self) -> BenchmarkResult:
        start_time = datetime.now()
        logger.info(f"Starting benchmark at {start_time}")

        examples = await load_or_build(self.config, self.encoder)

        async with self._client() as client:
            uploader = AssetUploader(client, self.config)
            assets = await uploader.upload_all(
                examples,
                ticker=self.ticker,
                progress_callback=self._progress_callback,
            )

            records = await measure(
                client,
                assets,
                self.config.benchmark_widths,
                fmt=self.config.transform_format,
                quality=self.config.transform_quality,
                progress_callback=self._progress_callback,
            )

        end_time = datetime.now()
        logger.info(f"Benchmark completed at {end_time}")

        return BenchmarkResult(
            examples=examples,
            assets=assets,
            records=records,
            start_time=start_time,
            end_time=end_time,
        )
