"""
Corpus store: the local directory of generated example images.

Every file in the directory follows ``<base>-<width>x<height>.<ext>``, so the
corpus can be reconstructed from filenames alone on later runs.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from imagebench.errors import FilesystemError

if TYPE_CHECKING:
    from imagebench.config import BenchmarkConfig
    from imagebench.generator import Encoder

logger = logging.getLogger(__name__)


class ImageFormat(str, Enum):
    WEBP = "webp"
    PNG = "png"
    JPEG = "jpeg"

    @classmethod
    def from_extension(cls, ext: str) -> ImageFormat:
        ext = ext.lower().lstrip(".")
        if ext == "jpg":
            return cls.JPEG
        return cls(ext)


@dataclass(frozen=True)
class ExampleImage:
    """A generated example image on disk."""

    width: int
    height: int
    format: ImageFormat
    path: Path

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid example size {self.width}x{self.height}")

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def size(self) -> str:
        """Size string in the form the asset host expects ("WxH")."""
        return f"{self.width}x{self.height}"


def example_filename(base: str, width: int, height: int, fmt: ImageFormat) -> str:
    return f"{base}-{width}x{height}.{fmt.value}"


def parse_example_filename(directory: Path, name: str) -> ExampleImage:
    """Reconstruct an ExampleImage from its filename.

    The size is the segment between the last ``-`` and the last ``.``.

    Raises:
        ValueError: If the name does not follow the corpus convention.
    """
    dash = name.rfind("-")
    dot = name.rfind(".")
    if dash == -1 or dot < dash:
        raise ValueError(f"Not an example filename: {name}")

    width, sep, height = name[dash + 1 : dot].partition("x")
    if not sep or not width.isdigit() or not height.isdigit():
        raise ValueError(f"No size in example filename: {name}")

    return ExampleImage(
        width=int(width),
        height=int(height),
        format=ImageFormat.from_extension(name[dot + 1 :]),
        path=directory / name,
    )


def load_examples(directory: Path) -> list[ExampleImage]:
    """Parse every example in an existing corpus directory.

    Raises:
        FileNotFoundError: If the directory does not exist.
        FilesystemError: If it exists but cannot be listed.
    """
    try:
        names = sorted(os.listdir(directory))
    except FileNotFoundError:
        raise
    except OSError as e:
        raise FilesystemError(f"Cannot read examples directory {directory}: {e}") from e

    examples = []
    for name in names:
        if name.startswith("."):
            continue
        try:
            examples.append(parse_example_filename(directory, name))
        except ValueError as e:
            logger.warning(f"Skipping {name}: {e}")

    logger.info(f"Loaded {len(examples)} examples from {directory}")
    return examples


async def load_or_build(
    config: BenchmarkConfig,
    encoder: Encoder | None = None,
) -> list[ExampleImage]:
    """Reuse the corpus in ``config.examples_dir`` or generate it.

    Only absence of the directory triggers generation; any other error
    reading it propagates.
    """
    try:
        return load_examples(config.examples_dir)
    except FileNotFoundError:
        logger.info(f"No examples at {config.examples_dir}, generating")

    from imagebench.generator import PillowEncoder, generate_examples

    return await generate_examples(
        config.source_dir,
        config.examples_dir,
        config.source_widths,
        encoder or PillowEncoder(),
    )
