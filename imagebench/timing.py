"""
Timing record for a single transform request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from imagebench.uploader import UploadedAsset


@dataclass
class TimingRecord:
    """A single latency measurement of the transform endpoint."""

    width: int
    start_ns: int
    end_ns: int
    asset: UploadedAsset

    @property
    def duration_ns(self) -> int:
        """Duration in nanoseconds."""
        return self.end_ns - self.start_ns

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds."""
        return self.duration_ns / 1_000_000

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        example = self.asset.example
        return {
            "width": self.width,
            "duration_ms": self.duration_ms,
            "url": self.asset.url,
            "asset_id": self.asset.asset_id,
            "source": {
                "width": example.width,
                "height": example.height,
                "format": example.format.value,
                "path": str(example.path),
            },
        }
