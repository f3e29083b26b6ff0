"""Upload orchestration.

This module provides the main interface for syncing local assets with the
remote host. The pipeline is backend-agnostic: it works with any ApiClient
and any Source, decides per asset whether an upload is needed, and records
successful uploads in the manifest.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    stop_never,
    wait_fixed,
)

from .clients.base import ApiClient
from .core.asset_name import AssetName
from .core.errors import ResponseError, SyncAbortedError
from .core.manifest import Manifest, compute_content_hash
from .core.tasks import JobFailed, run_all_or_cancel
from .core.types import ImageUploadData, UploadResult
from .imaging import normalize
from .sources.base import LocalAsset, Source, ensure_unique_names

_logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Uploaded by game-asset-sync."
DEFAULT_CONCURRENCY = 4

# HTTP status the host answers with when uploads are throttled
RATE_LIMIT_STATUS = 429


def is_rate_limited(error: BaseException) -> bool:
    """Whether an upload failure is worth retrying after a delay."""
    return isinstance(error, ResponseError) and error.status == RATE_LIMIT_STATUS


def find_stale_assets(manifest: Manifest, source: Source) -> list[LocalAsset]:
    """Assets that are new or whose content hash differs from the manifest."""
    return [
        asset
        for asset in source.list_assets()
        if manifest.needs_upload(asset.name, compute_content_hash(source.read_asset(asset)))
    ]


@dataclass(frozen=True)
class RetryPolicy:
    """How rate-limited uploads are retried.

    Attributes:
        max_retries: Extra attempts after the first one; None retries forever
        delay: Seconds to wait before each retry
    """

    max_retries: int | None = None
    delay: float = 60.0

    @property
    def stop(self):
        """Tenacity stop condition counting the first attempt."""
        if self.max_retries is None:
            return stop_never
        return stop_after_attempt(self.max_retries + 1)


@dataclass
class SyncReport:
    """Outcome of a sync run.

    Attributes:
        uploaded: Assets uploaded and committed to the manifest
        skipped: Assets whose manifest entry was already up to date
        removed: Manifest entries pruned because the asset disappeared
    """

    uploaded: list[AssetName] = field(default_factory=list)
    skipped: list[AssetName] = field(default_factory=list)
    removed: list[AssetName] = field(default_factory=list)


class SyncPipeline:
    """Uploads new or changed assets and records them in the manifest.

    Per-asset pipelines run concurrently, bounded by ``concurrency``. Image
    preprocessing runs in a worker thread. Retry waits don't hold a
    concurrency slot, so other assets keep uploading meanwhile.

    Example:
        >>> source = FilesystemSource(Path('assets'))
        >>> manifest = Manifest.read(Path('asset-manifest.json'))
        >>> async with get_preferred_client(credentials) as client:
        ...     pipeline = SyncPipeline(client, manifest, source)
        ...     report = await pipeline.run()
        >>> manifest.write(Path('asset-manifest.json'))
    """

    def __init__(
        self,
        client: ApiClient,
        manifest: Manifest,
        source: Source,
        retry_policy: RetryPolicy | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        resize: tuple[int, int] | None = None,
        description: str = DEFAULT_DESCRIPTION,
        prune_missing: bool = False,
    ):
        """Initialize the pipeline.

        Args:
            client: Backend used for uploads
            manifest: Manifest store updated in place
            source: Provides the local assets
            retry_policy: Rate-limit retry policy (default: unlimited, 60s)
            concurrency: Maximum number of assets processed at once
            resize: Optional (width, height) applied to every image
            description: Description given to uploaded assets
            prune_missing: Drop manifest entries for assets no longer present
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.client = client
        self.manifest = manifest
        self.source = source
        self.retry_policy = retry_policy or RetryPolicy()
        self.concurrency = concurrency
        self.resize = resize
        self.description = description
        self.prune_missing = prune_missing

    def stale_assets(self) -> list[LocalAsset]:
        """List assets whose content differs from the manifest, without uploading."""
        return find_stale_assets(self.manifest, self.source)

    async def run(self) -> SyncReport:
        """Sync every asset of the source.

        Returns:
            SyncReport listing uploaded and skipped assets

        Raises:
            SyncAbortedError: On the first fatal failure. Remaining uploads are
                             cancelled; uploads already committed stay in the
                             manifest and are listed in the error's report.
        """
        assets = self.source.list_assets()
        ensure_unique_names(assets)
        report = SyncReport()
        semaphore = asyncio.Semaphore(self.concurrency)

        _logger.info("Syncing %d assets", len(assets))

        jobs = {asset.name: self._sync_asset(asset, semaphore, report) for asset in assets}
        try:
            await run_all_or_cancel(jobs)
        except JobFailed as e:
            raise SyncAbortedError(e.key, e.error, report) from e.error

        if self.prune_missing:
            report.removed = self.manifest.remove_missing(asset.name for asset in assets)
            for name in report.removed:
                _logger.info("Removed %s from manifest", name)

        _logger.info(
            "Sync finished: %d uploaded, %d up to date",
            len(report.uploaded),
            len(report.skipped),
        )
        return report

    async def _sync_asset(
        self,
        asset: LocalAsset,
        semaphore: asyncio.Semaphore,
        report: SyncReport,
    ) -> None:
        async with semaphore:
            raw = await asyncio.to_thread(self.source.read_asset, asset)
            content_hash = compute_content_hash(raw)

            if not self.manifest.needs_upload(asset.name, content_hash):
                _logger.debug("%s is up to date", asset.name)
                report.skipped.append(asset.name)
                return

            image_data = await asyncio.to_thread(normalize, raw, self.resize)

        data = ImageUploadData(
            image_data=image_data,
            name=asset.name.stem,
            description=self.description,
        )
        result = await self._upload_with_retry(asset.name, data, semaphore)

        # Single commit point; a cancelled or failed upload leaves the entry as it was
        await self.manifest.update_entry(asset.name, result.backing_asset_id, content_hash)
        report.uploaded.append(asset.name)
        _logger.info("Uploaded %s as asset %d", asset.name, result.backing_asset_id)

    async def _upload_with_retry(
        self,
        name: AssetName,
        data: ImageUploadData,
        semaphore: asyncio.Semaphore,
    ) -> UploadResult:
        policy = self.retry_policy

        def log_retry(retry_state: RetryCallState) -> None:
            _logger.warning(
                "Rate limited while uploading %s, retrying in %gs (retry %d%s)",
                name,
                policy.delay,
                retry_state.attempt_number,
                "" if policy.max_retries is None else f"/{policy.max_retries}",
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception(is_rate_limited),
            stop=policy.stop,
            wait=wait_fixed(policy.delay),
            before_sleep=log_retry,
            sleep=asyncio.sleep,
            reraise=True,
        )
        return await retrying(self._upload_once, data, semaphore)

    async def _upload_once(
        self, data: ImageUploadData, semaphore: asyncio.Semaphore
    ) -> UploadResult:
        # The slot is held only for the request, never across a retry wait
        async with semaphore:
            return await self.client.upload_image(data)
