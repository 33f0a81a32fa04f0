import json

import pytest

from imagebench.__main__ import main, print_records
from imagebench.errors import UploadError
from imagebench.session import BenchmarkSession


@pytest.mark.asyncio
async def test_full_run_generates_uploads_and_measures(config, asset_host):
    session = BenchmarkSession(config, transport=asset_host.transport)

    result = await session.run()

    assert len(result.examples) == 2 * 2 * 3
    assert len(result.assets) == len(result.examples)
    assert len(result.records) == len(result.assets) * len(config.benchmark_widths)
    assert asset_host.transform_count == len(result.records)
    assert result.wall_time_s >= 0


@pytest.mark.asyncio
async def test_second_run_reuses_corpus(config, asset_host):
    first = await BenchmarkSession(config, transport=asset_host.transport).run()
    mtimes = {e.path: e.path.stat().st_mtime_ns for e in first.examples}

    second = await BenchmarkSession(config, transport=asset_host.transport).run()

    assert sorted(e.path for e in second.examples) == sorted(mtimes)
    assert {e.path: e.path.stat().st_mtime_ns for e in second.examples} == mtimes


@pytest.mark.asyncio
async def test_upload_failure_aborts_before_measuring(config, asset_host):
    asset_host.finish_status = 502

    with pytest.raises(UploadError):
        await BenchmarkSession(config, transport=asset_host.transport).run()

    assert asset_host.transform_count == 0


@pytest.mark.asyncio
async def test_records_print_as_json_lines(config, asset_host, capsys):
    config.source_widths = (16,)
    config.benchmark_widths = (8,)
    result = await BenchmarkSession(config, transport=asset_host.transport).run()

    print_records(result, console=None, as_json=True)

    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert len(lines) == 2 * 3
    assert {line["width"] for line in lines} == {8}
    assert all(line["url"].startswith("https://a.storyblok.test/") for line in lines)


def test_cli_requires_credentials(tmp_path, source_dir):
    code = main([str(source_dir), "-e", str(tmp_path / "ex"), "--space-id", "", "--token", ""])
    assert code == 1


def test_cli_requires_source_dir_when_generating(tmp_path):
    code = main([str(tmp_path / "missing"), "-e", str(tmp_path / "ex"), "--space-id", "1", "--token", "t"])
    assert code == 1


def test_cli_reports_failure_with_exit_code_1(tmp_path, source_dir, capsys):
    # Nothing listens on this port, so the first upload fails
    code = main(
        [
            str(source_dir),
            "-e", str(tmp_path / "ex"),
            "--space-id", "1",
            "--token", "t",
            "--api-url", "http://127.0.0.1:9",
            "--upload-interval", "0",
        ]
    )

    assert code == 1
    assert "Error:" in capsys.readouterr().err
