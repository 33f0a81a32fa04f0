"""
Example generator: derives the benchmark corpus from a directory of sources.

For every source image and every source width, three sibling variants are
encoded concurrently (webp, png, jpeg). Each variant is written under a
provisional name first because its height is only known once encoding is
done, then renamed to the final ``<base>-<width>x<height>.<ext>`` name.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Protocol

from PIL import Image

from imagebench.corpus import ExampleImage, ImageFormat, example_filename
from imagebench.errors import EncodingError, FilesystemError

logger = logging.getLogger(__name__)

# (format, quality); None keeps the encoder's default quality
FORMAT_VARIANTS: tuple[tuple[ImageFormat, int | None], ...] = (
    (ImageFormat.WEBP, None),
    (ImageFormat.PNG, 80),
    (ImageFormat.JPEG, None),
)


class Encoder(Protocol):
    def encode(
        self,
        source: Path,
        destination: Path,
        width: int,
        fmt: ImageFormat,
        quality: int | None = None,
    ) -> tuple[int, int]:
        """Resize ``source`` to ``width`` and write it to ``destination``.

        Returns the (width, height) of the written image.
        """
        ...


class PillowEncoder:
    """Encoder backed by Pillow.

    Height follows from the source aspect ratio. A PNG quality setting
    produces a palette-quantized (lossy) PNG whose palette size scales with
    the quality (100 keeps 256 colours).
    """

    def __init__(self, resample: Image.Resampling = Image.Resampling.LANCZOS):
        self.resample = resample

    def encode(
        self,
        source: Path,
        destination: Path,
        width: int,
        fmt: ImageFormat,
        quality: int | None = None,
    ) -> tuple[int, int]:
        try:
            with Image.open(source) as img:
                height = max(1, round(img.height * width / img.width))
                resized = img.resize((width, height), self.resample)

            resized = self._convert_for(resized, fmt, quality)

            options: dict[str, int | bool] = {}
            if fmt is ImageFormat.PNG:
                options["optimize"] = True
            elif quality is not None:
                options["quality"] = quality

            resized.save(destination, format=fmt.value.upper(), **options)
        except (OSError, ValueError) as e:
            raise EncodingError(f"Failed to encode {source} as {fmt.value} at {width}px: {e}") from e

        return resized.width, resized.height

    @staticmethod
    def _convert_for(img: Image.Image, fmt: ImageFormat, quality: int | None) -> Image.Image:
        has_alpha = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)

        if fmt is ImageFormat.JPEG:
            return img if img.mode in ("RGB", "L") else img.convert("RGB")

        img = img.convert("RGBA" if has_alpha else "RGB") if img.mode not in ("RGB", "RGBA") else img
        if fmt is ImageFormat.PNG and quality is not None:
            colors = max(2, min(256, round(256 * quality / 100)))
            # FASTOCTREE is the only built-in method that handles RGBA
            return img.quantize(colors=colors, method=Image.Quantize.FASTOCTREE)
        return img


def discover_sources(source_dir: Path) -> list[Path]:
    """List source images, sorted, skipping hidden files and directories."""
    try:
        sources = sorted(
            p for p in source_dir.iterdir() if p.is_file() and not p.name.startswith(".")
        )
    except OSError as e:
        raise FilesystemError(f"Cannot read source directory {source_dir}: {e}") from e

    logger.info(f"Discovered {len(sources)} source images in {source_dir}")
    return sources


async def _encode_variant(
    encoder: Encoder,
    source: Path,
    output_dir: Path,
    width: int,
    fmt: ImageFormat,
    quality: int | None,
) -> ExampleImage:
    base = source.stem
    provisional = output_dir / f"{base}-{width}.{fmt.value}"

    _, height = await asyncio.to_thread(encoder.encode, source, provisional, width, fmt, quality)

    final = output_dir / example_filename(base, width, height, fmt)
    try:
        provisional.rename(final)
    except OSError as e:
        raise FilesystemError(f"Cannot rename {provisional} to {final}: {e}") from e

    return ExampleImage(width=width, height=height, format=fmt, path=final)


async def generate_examples(
    source_dir: Path,
    output_dir: Path,
    widths: Iterable[int],
    encoder: Encoder,
) -> list[ExampleImage]:
    """Generate the full (source x width x format) corpus into ``output_dir``.

    Args:
        source_dir: Directory of source images (read-only)
        output_dir: Corpus directory; must not exist yet
        widths: Source widths to generate
        encoder: Image encoder to use

    Returns:
        One ExampleImage per generated file.

    Raises:
        FilesystemError: If ``output_dir`` already exists or cannot be created.
        EncodingError: If any source fails to encode. Aborts the whole run.
    """
    widths = tuple(widths)
    # Sources must be readable before the corpus directory exists
    sources = discover_sources(source_dir)
    try:
        output_dir.mkdir(parents=True)
    except OSError as e:
        raise FilesystemError(f"Cannot create examples directory {output_dir}: {e}") from e

    logger.info("Generating examples...")
    examples: list[ExampleImage] = []
    for source in sources:
        logger.info(f"  {source.name}")
        for width in widths:
            variants = await asyncio.gather(
                *(
                    _encode_variant(encoder, source, output_dir, width, fmt, quality)
                    for fmt, quality in FORMAT_VARIANTS
                )
            )
            examples.extend(variants)

    logger.info(f"Finished generating {len(examples)} examples")
    return examples
