"""
Latency benchmark for Storyblok's on-the-fly image resizing.

Generates (or reuses) a corpus of example images, uploads them to a
Storyblok space and times the transform endpoint at a set of widths.

Usage:
    python -m imagebench ./images/
    python -m imagebench ./images/ -e ./image-examples --json
"""

from imagebench.config import BenchmarkConfig
from imagebench.corpus import ExampleImage, ImageFormat, load_examples, load_or_build
from imagebench.errors import (
    EncodingError,
    FetchError,
    FilesystemError,
    ImageBenchError,
    UploadError,
)
from imagebench.generator import Encoder, PillowEncoder, generate_examples
from imagebench.ratelimit import IntervalTicker, launch_throttled
from imagebench.runner import measure, transform_url
from imagebench.session import BenchmarkResult, BenchmarkSession
from imagebench.timing import TimingRecord
from imagebench.uploader import AssetUploader, UploadedAsset, UploadStep, public_url

__all__ = [
    # Configuration
    "BenchmarkConfig",
    # Corpus
    "ExampleImage",
    "ImageFormat",
    "load_examples",
    "load_or_build",
    "Encoder",
    "PillowEncoder",
    "generate_examples",
    # Upload
    "IntervalTicker",
    "launch_throttled",
    "AssetUploader",
    "UploadedAsset",
    "UploadStep",
    "public_url",
    # Measurement
    "TimingRecord",
    "measure",
    "transform_url",
    # Session management
    "BenchmarkSession",
    "BenchmarkResult",
    # Errors
    "ImageBenchError",
    "FilesystemError",
    "EncodingError",
    "UploadError",
    "FetchError",
]
