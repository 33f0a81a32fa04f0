#!/usr/bin/env python3
"""
CLI entry point for the image scaling benchmark.

Usage:
    python -m imagebench ./images/
    python -m imagebench ./images/ -e ./image-examples --space-id 247220
    python -m imagebench ./images/ --json > timings.jsonl
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from imagebench.config import (
    DEFAULT_API_BASE_URL,
    DEFAULT_AUTH_TOKEN,
    DEFAULT_SPACE_ID,
    BenchmarkConfig,
)
from imagebench.session import BenchmarkResult, BenchmarkSession


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the benchmark run."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def create_progress_callback(console: Console):
    """Create a rich progress callback. One bar per phase, keyed by message prefix."""
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    )

    tasks: dict[str, int] = {}
    started = False

    def callback(current: int, total: int, message: str) -> None:
        nonlocal started

        if not started:
            progress.start()
            started = True

        phase = message.split(" ", 1)[0]
        if phase not in tasks:
            tasks[phase] = progress.add_task(message, total=total)
        progress.update(tasks[phase], completed=current, description=message)

    def cleanup() -> None:
        if started:
            progress.stop()

    return callback, cleanup


def print_records(result: BenchmarkResult, console: Console, as_json: bool = False) -> None:
    """Print raw timing records, one per transform request."""
    if as_json:
        for record in result.records:
            print(json.dumps(record.to_dict()))
        return

    table = Table(title="Transform latency")
    table.add_column("ms", justify="right")
    table.add_column("width", justify="right")
    table.add_column("source")
    table.add_column("url", overflow="fold")
    for record in result.records:
        example = record.asset.example
        table.add_row(
            f"{record.duration_ms:.0f}",
            str(record.width),
            f"{example.size} {example.format.value}",
            record.asset.url,
        )
    console.print(table)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the benchmark CLI."""
    parser = argparse.ArgumentParser(
        description="Benchmark Storyblok's on-the-fly image resizing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Generate examples from ./images (first run) and benchmark them
    python -m imagebench ./images/

    # Reuse an existing example corpus
    python -m imagebench -e ./image-examples

    # Emit raw timings as JSON lines
    python -m imagebench ./images/ --json
        """,
    )

    parser.add_argument(
        "source_dir",
        type=Path,
        nargs="?",
        default=Path("images"),
        help="Directory of source images (default: ./images)",
    )

    parser.add_argument(
        "-e", "--examples",
        type=Path,
        default=Path("image-examples"),
        help="Example corpus directory; generated if absent (default: ./image-examples)",
    )

    parser.add_argument(
        "--space-id",
        default=DEFAULT_SPACE_ID,
        help="Storyblok space id (default: $STORYBLOK_SPACE_ID)",
    )

    parser.add_argument(
        "--token",
        default=DEFAULT_AUTH_TOKEN,
        help="Storyblok management token (default: $STORYBLOK_TOKEN)",
    )

    parser.add_argument(
        "--api-url",
        default=DEFAULT_API_BASE_URL,
        help=f"Management API base URL (default: {DEFAULT_API_BASE_URL})",
    )

    parser.add_argument(
        "--upload-interval",
        type=float,
        default=1.0,
        help="Seconds between upload launches (default: 1.0)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print timing records as JSON lines instead of a table",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if not args.space_id or not args.token:
        print("Error: a space id and a management token are required", file=sys.stderr)
        return 1

    if not args.examples.exists() and not args.source_dir.is_dir():
        print(f"Error: Source directory does not exist: {args.source_dir}", file=sys.stderr)
        return 1

    config = BenchmarkConfig(
        source_dir=args.source_dir,
        examples_dir=args.examples,
        space_id=args.space_id,
        auth_token=args.token,
        api_base_url=args.api_url,
        upload_interval_s=args.upload_interval,
    )

    console = Console(stderr=True)
    console.print("=" * 60)
    console.print("Image Scaling Benchmark")
    console.print("=" * 60)
    console.print(f"  Source directory:   {config.source_dir}")
    console.print(f"  Examples directory: {config.examples_dir}")
    console.print(f"  Space:              {config.space_id}")
    console.print(f"  Source widths:      {', '.join(map(str, config.source_widths))}")
    console.print(f"  Benchmark widths:   {', '.join(map(str, config.benchmark_widths))}")
    console.print(f"  Upload interval:    {config.upload_interval_s}s")
    console.print("=" * 60)

    progress_callback, cleanup = create_progress_callback(console)

    try:
        session = BenchmarkSession(config, progress_callback=progress_callback)
        result = asyncio.run(session.run())
        cleanup()

        print_records(result, Console(), as_json=args.json)
        console.print(
            f"Finished benchmarking: {len(result.records)} requests "
            f"over {len(result.assets)} assets in {result.wall_time_s:.1f}s"
        )
        return 0

    except KeyboardInterrupt:
        cleanup()
        print("\nBenchmark interrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        cleanup()
        logging.exception("Benchmark failed with error")
        print(f"\nError: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
