"""
Upload orchestrator for the Storyblok management API.

An upload runs through four fallible steps, each attributed explicitly so a
failure names the step it happened in:

    REQUESTED       POST /v1/spaces/{space}/assets/ -> signed upload descriptor
    FORM_SUBMITTED  multipart POST of the signed fields + file to post_url
    FINALIZED       GET  /v1/spaces/{space}/assets/{id}/finish_upload
    RESOLVED        GET  /v1/spaces/{space}/assets/{id} -> public URL
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import httpx
from pydantic import BaseModel, ValidationError

from imagebench.config import BenchmarkConfig
from imagebench.corpus import ExampleImage
from imagebench.errors import UploadError
from imagebench.ratelimit import IntervalTicker, launch_throttled

logger = logging.getLogger(__name__)


class UploadStep(str, Enum):
    REQUESTED = "requested"
    FORM_SUBMITTED = "form_submitted"
    FINALIZED = "finalized"
    RESOLVED = "resolved"


class SignedUpload(BaseModel):
    """Signed upload descriptor returned by the asset-creation endpoint."""

    id: int | str
    post_url: str
    fields: dict[str, Any]


class AssetRecord(BaseModel):
    id: int | str
    filename: str  # raw storage URL


@dataclass(frozen=True)
class StepResult:
    step: UploadStep
    status_code: int


@dataclass(frozen=True)
class UploadedAsset:
    """An example image that is reachable through the transform endpoint."""

    example: ExampleImage
    url: str
    asset_id: int | str


def public_url(raw_url: str, fragment: str = "s3.amazonaws.com/") -> str:
    """Strip the storage-domain fragment from a raw asset URL."""
    return raw_url.replace(fragment, "", 1)


class AssetUploader:
    """Uploads example images to one Storyblok space."""

    def __init__(self, client: httpx.AsyncClient, config: BenchmarkConfig):
        self.client = client
        self.config = config

    def _asset_url(self, asset_id: int | str, suffix: str = "") -> str:
        return f"{self.config.api_base_url.rstrip('/')}{self.config.assets_path}/{asset_id}{suffix}"

    async def _call(self, step: UploadStep, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise UploadError(step, f"request failed: {e}") from e

        if not response.is_success:
            if step is UploadStep.FINALIZED:
                logger.error(f"Finish upload failed: {response.status_code} {response.text}")
            raise UploadError(
                step,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    @staticmethod
    def _parse(step: UploadStep, model: type[BaseModel], response: httpx.Response) -> Any:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise UploadError(
                step,
                f"unexpected response: {e}",
                status_code=response.status_code,
                body=response.text,
            ) from e

    async def request_upload(self, example: ExampleImage) -> SignedUpload:
        response = await self._call(
            UploadStep.REQUESTED,
            "POST",
            f"{self.config.api_base_url.rstrip('/')}{self.config.assets_path}/",
            headers=self.config.auth_headers(),
            json={"filename": example.filename, "size": example.size},
        )
        return self._parse(UploadStep.REQUESTED, SignedUpload, response)

    async def submit_form(self, signed: SignedUpload, example: ExampleImage) -> StepResult:
        """Submit the signed fields followed by the file, streamed from disk.

        The authorization header is not sent to the storage host.
        """
        # Signed fields are copied verbatim and precede the file part
        data = {k: v if isinstance(v, (str, bytes)) else str(v) for k, v in signed.fields.items()}
        content_type = mimetypes.guess_type(example.filename)[0] or "application/octet-stream"

        try:
            # httpx reads this file in chunks from inside the event loop; reads do
            # not yield to other in-flight uploads
            with open(example.path, "rb") as f:
                response = await self._call(
                    UploadStep.FORM_SUBMITTED,
                    "POST",
                    signed.post_url,
                    data=data,
                    files={"file": (example.filename, f, content_type)},
                )
        except OSError as e:
            raise UploadError(UploadStep.FORM_SUBMITTED, f"cannot read {example.path}: {e}") from e

        return StepResult(UploadStep.FORM_SUBMITTED, response.status_code)

    async def finish_upload(self, signed: SignedUpload) -> StepResult:
        response = await self._call(
            UploadStep.FINALIZED,
            "GET",
            self._asset_url(signed.id, "/finish_upload"),
            headers=self.config.auth_headers(),
        )
        return StepResult(UploadStep.FINALIZED, response.status_code)

    async def resolve(self, asset_id: int | str, example: ExampleImage) -> UploadedAsset:
        response = await self._call(
            UploadStep.RESOLVED,
            "GET",
            self._asset_url(asset_id),
            headers=self.config.auth_headers(),
        )
        record: AssetRecord = self._parse(UploadStep.RESOLVED, AssetRecord, response)
        return UploadedAsset(
            example=example,
            url=public_url(record.filename, self.config.storage_fragment),
            asset_id=record.id,
        )

    async def upload(self, example: ExampleImage) -> UploadedAsset:
        """Run all upload steps for one example.

        Raises:
            UploadError: Tagged with the step that failed. Later steps are
                never attempted after a failure.
        """
        signed = await self.request_upload(example)
        logger.debug(f"{example.filename}: {UploadStep.REQUESTED.value} (asset {signed.id})")

        await self.submit_form(signed, example)
        logger.debug(f"{example.filename}: {UploadStep.FORM_SUBMITTED.value}")

        await self.finish_upload(signed)
        logger.debug(f"{example.filename}: {UploadStep.FINALIZED.value}")

        asset = await self.resolve(signed.id, example)
        logger.debug(f"{example.filename}: {UploadStep.RESOLVED.value} -> {asset.url}")
        return asset

    async def upload_all(
        self,
        examples: list[ExampleImage],
        ticker: IntervalTicker | None = None,
        progress_callback: Callable[[int, int, str], None] | None = None,
    ) -> list[UploadedAsset]:
        """Upload every example, launching one upload per tick.

        Uploads overlap; only their launches are throttled. All uploads are
        allowed to settle, then the first failure (in launch order) is raised.
        Failed uploads are not retried and siblings are not cancelled.
        """
        ticker = ticker or IntervalTicker(self.config.upload_interval_s)
        total = len(examples)
        completed = 0

        def _on_done(task: asyncio.Task) -> None:
            nonlocal completed
            completed += 1
            if progress_callback:
                progress_callback(completed, total, "Uploading")

        def _factory(example: ExampleImage):
            return lambda: self.upload(example)

        logger.info(f"Uploading {total} assets to Storyblok space {self.config.space_id}...")
        tasks = await launch_throttled((_factory(e) for e in examples), ticker)
        for task in tasks:
            task.add_done_callback(_on_done)

        results = await asyncio.gather(*tasks, return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error(f"{len(failures)} of {total} uploads failed")
            raise failures[0]

        logger.info("Finished Storyblok upload")
        return list(results)
