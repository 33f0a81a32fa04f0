"""
Error taxonomy for the benchmark pipeline.

Nothing recovers locally: every error aborts its phase and reaches the CLI.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from imagebench.uploader import UploadStep


class ImageBenchError(Exception):
    """Base class for all benchmark failures."""


class FilesystemError(ImageBenchError):
    """The corpus directory exists but cannot be read or created."""


class EncodingError(ImageBenchError):
    """The image encoder failed on a source image."""


class UploadError(ImageBenchError):
    """A step of the signed-upload protocol failed."""

    def __init__(
        self,
        step: UploadStep,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(f"{step.value}: {message}")
        self.step = step
        self.status_code = status_code
        self.body = body


class FetchError(ImageBenchError):
    """A transform request failed during measurement."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        super().__init__(f"{url}: {message}")
        self.url = url
        self.status_code = status_code
