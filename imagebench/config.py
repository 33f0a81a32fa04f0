from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

# Read from environment so credentials stay out of the source tree
DEFAULT_SPACE_ID = os.environ.get("STORYBLOK_SPACE_ID", "")
DEFAULT_AUTH_TOKEN = os.environ.get("STORYBLOK_TOKEN", "")

DEFAULT_API_BASE_URL = "https://mapi.storyblok.com"
SOURCE_WIDTHS = (1080, 2048, 3840)
BENCHMARK_WIDTHS = (640, 750, 828, 1080, 1200, 1560)


@dataclass
class BenchmarkConfig:
    """Configuration for a benchmark run."""

    source_dir: Path
    examples_dir: Path
    space_id: str = DEFAULT_SPACE_ID
    auth_token: str = DEFAULT_AUTH_TOKEN
    api_base_url: str = DEFAULT_API_BASE_URL

    # Widths the corpus is generated at
    source_widths: tuple[int, ...] = SOURCE_WIDTHS
    # Widths the transform endpoint is queried at
    benchmark_widths: tuple[int, ...] = BENCHMARK_WIDTHS

    # Seconds between upload launches (provider rate limit)
    upload_interval_s: float = 1.0

    transform_format: str = "webp"
    transform_quality: int = 75

    # Stripped from the raw storage URL to get the public, transformable URL
    storage_fragment: str = "s3.amazonaws.com/"

    timeout_s: float = 120.0

    def __post_init__(self) -> None:
        """Convert paths to Path objects if needed."""
        if isinstance(self.source_dir, str):
            self.source_dir = Path(self.source_dir)
        if isinstance(self.examples_dir, str):
            self.examples_dir = Path(self.examples_dir)
        self.space_id = str(self.space_id)
        self.source_widths = tuple(self.source_widths)
        self.benchmark_widths = tuple(self.benchmark_widths)

    @property
    def assets_path(self) -> str:
        """Management API path of the space's asset collection."""
        return f"/v1/spaces/{self.space_id}/assets"

    def auth_headers(self) -> dict[str, str]:
        return {"authorization": self.auth_token}
