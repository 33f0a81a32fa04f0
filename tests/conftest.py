import json
from pathlib import Path

import httpx
import pytest
from PIL import Image

from imagebench.config import BenchmarkConfig
from imagebench.corpus import ExampleImage, ImageFormat

API_BASE_URL = "https://mapi.test"
SPACE_ID = "1234"
POST_URL = "https://uploads.test/bucket"
STORAGE_PREFIX = "https://s3.amazonaws.com/a.storyblok.test/f/1234/"


class FakeAssetHost:
    """
    In-memory stand-in for the Storyblok management API, the storage bucket
    and the image transform endpoint. Use ``transport`` with an httpx client.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.signed_fields: dict[int, dict[str, str]] = {}
        self.filenames: dict[int, str] = {}
        self._next_id = 100

        # Status overrides per step
        self.submit_status = 204
        self.finish_status = 200
        self.fail_submit_for: set[str] = set()
        self.transform_failures: set[int] = set()  # 1-based transform request numbers
        self.transform_count = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def requests_to(self, fragment: str) -> list[httpx.Request]:
        return [r for r in self.requests if fragment in str(r.url)]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = request.url
        assets_path = f"/v1/spaces/{SPACE_ID}/assets"

        if url.host == "mapi.test":
            if request.headers.get("authorization") != "test-token":
                return httpx.Response(401, text="unauthorized")

            if request.method == "POST" and url.path == assets_path + "/":
                body = json.loads(request.content)
                asset_id = self._next_id
                self._next_id += 1
                self.filenames[asset_id] = body["filename"]
                fields = {
                    "key": f"f/{SPACE_ID}/{body['size']}/{body['filename']}",
                    "acl": "public-read",
                    "policy": f"policy-{asset_id}",
                    "x-amz-signature": f"sig-{asset_id}",
                    "success_action_status": 204,
                }
                self.signed_fields[asset_id] = fields
                return httpx.Response(
                    200, json={"id": asset_id, "post_url": POST_URL, "fields": fields}
                )

            parts = url.path[len(assets_path) + 1 :].split("/")
            asset_id = int(parts[0])
            if parts[1:] == ["finish_upload"]:
                if self.finish_status != 200:
                    return httpx.Response(self.finish_status, text="finish failed")
                return httpx.Response(200, json={"id": asset_id})
            return httpx.Response(
                200,
                json={
                    "id": asset_id,
                    "filename": STORAGE_PREFIX + self.filenames[asset_id],
                    "content_type": "image/webp",
                },
            )

        if url.host == "uploads.test":
            if "authorization" in request.headers:
                return httpx.Response(400, text="unexpected authorization header")
            if any(name.encode() in request.content for name in self.fail_submit_for):
                return httpx.Response(403, text="<Error>AccessDenied</Error>")
            return httpx.Response(self.submit_status)

        if url.host == "a.storyblok.test":
            self.transform_count += 1
            if self.transform_count in self.transform_failures:
                return httpx.Response(502, text="bad gateway")
            return httpx.Response(200, content=b"\x00" * 2048)

        return httpx.Response(404)


@pytest.fixture
def asset_host() -> FakeAssetHost:
    return FakeAssetHost()


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Two small source images with different aspect ratios and modes."""
    sources = tmp_path / "images"
    sources.mkdir()
    Image.new("RGB", (64, 48), (200, 40, 40)).save(sources / "landscape.jpg")
    Image.new("RGBA", (40, 80), (40, 200, 40, 128)).save(sources / "portrait.png")
    return sources


@pytest.fixture
def config(tmp_path: Path, source_dir: Path) -> BenchmarkConfig:
    return BenchmarkConfig(
        source_dir=source_dir,
        examples_dir=tmp_path / "image-examples",
        space_id=SPACE_ID,
        auth_token="test-token",
        api_base_url=API_BASE_URL,
        source_widths=(16, 32),
        benchmark_widths=(8, 12, 20),
        upload_interval_s=0,
    )


@pytest.fixture
def example_files(tmp_path: Path) -> list[ExampleImage]:
    """A handful of example files on disk, named per the corpus convention."""
    directory = tmp_path / "uploads"
    directory.mkdir()
    examples = []
    for name, fmt in (("cat", ImageFormat.WEBP), ("dog", ImageFormat.PNG)):
        path = directory / f"{name}-640x480.{fmt.value}"
        path.write_bytes(b"image-bytes-" + name.encode())
        examples.append(ExampleImage(width=640, height=480, format=fmt, path=path))
    return examples
