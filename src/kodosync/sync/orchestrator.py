"""End-to-end sync run.

The orchestrator drives one run through its phases:

    ENUMERATING -> INDEX_BUILDING (optional) -> DISPATCHING -> DRAINING
    -> REPORTING -> DONE

Every local file becomes one scheduler task that decides (upload or skip)
and, when needed, uploads. Task failures are recorded against the file's key
and never stop sibling tasks. Enumeration and index building failures are
fatal and propagate to the caller; the summary line is logged either way.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kodosync.core.mime import guess_mime_type
from kodosync.core.types import LocalFile, SyncPhase, SyncResult, UploadTask
from kodosync.sync.decisions import RemoteLookup, decide
from kodosync.sync.remote_index import RemoteIndex, build_remote_index
from kodosync.sync.retry import LIST_RETRY, STAT_RETRY, UPLOAD_RETRY, RetryPolicy
from kodosync.sync.scanner import scan_local_files
from kodosync.sync.scheduler import HashPool, UploadScheduler

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from kodosync.client.api import RemoteStore
    from kodosync.core.config import SyncConfig


logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_EVERY = 50


class SyncOrchestrator:
    """Synchronizes config.local_root into config.bucket.

    Usage:
        orchestrator = SyncOrchestrator(config, store)
        result = orchestrator.run()
        sys.exit(result.exit_code(config.dry_run))
    """

    def __init__(
        self,
        config: SyncConfig,
        store: RemoteStore,
        hash_pool: HashPool | None = None,
        list_retry: RetryPolicy = LIST_RETRY,
        stat_retry: RetryPolicy = STAT_RETRY,
        upload_retry: RetryPolicy = UPLOAD_RETRY,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Run settings.
            store: Remote object store.
            hash_pool: Pool used for fingerprinting; one sized by
                config.hash_workers is created per run when omitted.
            list_retry: Retry policy for listing pages.
            stat_retry: Retry policy for point lookups.
            upload_retry: Retry policy for uploads.
            progress_every: Log a progress line every N settled files.
        """
        self._config = config
        self._store = store
        self._hash_pool = hash_pool
        self._list_retry = list_retry
        self._stat_retry = stat_retry
        self._upload_retry = upload_retry
        self._progress_every = max(1, progress_every)

        self._phase = SyncPhase.DONE
        self._index: RemoteIndex | None = None
        self._total = 0
        self.result = SyncResult()

    @property
    def phase(self) -> SyncPhase:
        """Current phase of the run."""
        return self._phase

    @property
    def remote_index(self) -> RemoteIndex | None:
        """Index built for this run, if any."""
        return self._index

    def _set_phase(self, phase: SyncPhase) -> None:
        logger.debug(f"Phase: {self._phase.name} -> {phase.name}")
        self._phase = phase

    def should_build_index(self) -> bool:
        """An index is only worth building for a prefixed, non-forced run."""
        return bool(self._config.key_prefix) and not self._config.force_upload

    def run(self) -> SyncResult:
        """Execute the sync run.

        The summary line is logged even when the run aborts.

        Returns:
            Aggregated result. Use result.exit_code(config.dry_run) for the
            process status.

        Raises:
            FilesystemError: If the local root is missing.
            IndexBuildError: If the remote listing fails after retries.
        """
        self.result = result = SyncResult()
        self._index = None
        self._total = 0

        try:
            self._execute()
        finally:
            self._set_phase(SyncPhase.REPORTING)
            logger.info(result.summary_line())
            if result.failures:
                logger.error(f"{len(result.failures)} file(s) failed to upload")
            self._set_phase(SyncPhase.DONE)
        return result

    def _execute(self) -> None:
        """Enumerate, index, dispatch and drain."""
        config = self._config

        self._set_phase(SyncPhase.ENUMERATING)
        files = scan_local_files(config.local_root, config.key_prefix)
        self._total = len(files)
        if not files:
            logger.info(f"No files found in {config.local_root}. Nothing to upload.")
            return

        logger.info(
            f"bucket={config.bucket} prefix={config.key_prefix or '(none)'} "
            f"files={self._total} concurrency={config.concurrency}"
        )
        if config.dry_run:
            logger.info("DRY RUN enabled: no uploads will be performed.")

        if self.should_build_index():
            self._set_phase(SyncPhase.INDEX_BUILDING)
            self._index = build_remote_index(
                self._store, config.bucket, config.key_prefix, retry=self._list_retry
            )
            logger.info(f"remote index loaded: {len(self._index)} objects")

        lookup = None
        if not config.force_upload:
            lookup = RemoteLookup(self._store, config.bucket, self._index, retry=self._stat_retry)

        hash_pool = self._hash_pool or HashPool(config.hash_workers)
        try:
            self._set_phase(SyncPhase.DISPATCHING)
            with UploadScheduler(config.concurrency) as scheduler:
                for local in files:
                    scheduler.submit(self._process_file, local, lookup, hash_pool.fingerprint)
                self._set_phase(SyncPhase.DRAINING)
                scheduler.join()
        finally:
            if self._hash_pool is None:
                hash_pool.shutdown()

    def _process_file(
        self,
        local: LocalFile,
        lookup: RemoteLookup | None,
        fingerprint: Callable[[Path], str],
    ) -> None:
        """Decide and upload a single file, recording the outcome."""
        key = local.relative_key
        try:
            decision = decide(local, lookup, fingerprint, force=self._config.force_upload)
            if not decision.should_upload:
                logger.debug(f"skip {key} ({decision.reason})")
                done = self.result.record_skipped()
            else:
                task = UploadTask(
                    key=key,
                    local_file=local,
                    mime_type=guess_mime_type(local.absolute_path),
                )
                self._upload(task, decision.reason)
                done = self.result.record_uploaded()
        except Exception as e:
            logger.error(f"failed {key}: {e}")
            done = self.result.record_failed(key, str(e))

        if done % self._progress_every == 0:
            logger.info(f"progress {done}/{self._total} {self.result.counts_line()}")

    def _upload(self, task: UploadTask, reason: str) -> None:
        """Upload task, or only log it in dry-run mode."""
        if self._config.dry_run:
            logger.info(f"(dry) upload {task.key}")
            return

        self._upload_retry.call(
            lambda: self._store.upload(
                self._config.bucket,
                task.key,
                task.local_file.absolute_path,
                task.mime_type,
            ),
            description=f"upload {task.key}",
        )
        logger.info(f"uploaded {task.key} ({reason})")
