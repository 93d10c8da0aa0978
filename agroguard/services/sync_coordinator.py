"""Offline record sync: re-run pending records through the cloud, one at a time.

A pass is refused (silently) while another pass runs, while offline, or
when no remote credential is configured. Records that already used up their
attempts stay pending and are skipped.
"""

import logging
import threading
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional

from agroguard.config import get_settings
from agroguard.schemas.analysis import CropRecord, SyncJobStatus, SyncProgress, UserSettings
from agroguard.services.analysis_orchestrator import AnalysisOrchestrator, get_orchestrator
from agroguard.services.connectivity import NetworkStatus, get_network_status
from agroguard.services.record_store import RecordStore, get_record_store
from agroguard.services.severity import derive_crop_status

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SyncProgress], None]


@dataclass
class SyncSummary:
    total: int = 0
    synced: int = 0
    failed: int = 0
    skipped: int = 0


class SyncCoordinator:
    def __init__(
        self,
        store: RecordStore,
        orchestrator: AnalysisOrchestrator,
        network: NetworkStatus,
        max_attempts: int = 3,
        cooldown_seconds: float = 3.0,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.network = network
        self.max_attempts = max_attempts
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock

        self._active = False
        self._lock = threading.Lock()
        self._job_status = {
            "status": "idle",
            "current": 0,
            "total": 0,
            "current_crop": None,
            "synced": 0,
            "failed": 0,
            "skipped": 0,
            "started_at": None,
            "completed_at": None,
            "error_message": None,
        }

    @property
    def is_syncing(self) -> bool:
        return self._active

    def can_start(self) -> bool:
        return (
            not self._active
            and self.network.is_online()
            and self.orchestrator.cloud_client.configured
        )

    def status(self) -> SyncJobStatus:
        with self._lock:
            snapshot = dict(self._job_status)
        # A finished pass reads back as idle after the cooldown
        if (
            snapshot["status"] in ("completed", "failed")
            and snapshot["completed_at"] is not None
            and self._clock() - snapshot["completed_at"] >= self.cooldown_seconds
        ):
            snapshot["status"] = "idle"
        return SyncJobStatus(**snapshot)

    def _update(self, **values):
        with self._lock:
            self._job_status.update(values)

    def _emit(self, on_progress: Optional[ProgressCallback], progress: SyncProgress):
        self._update(
            status=progress.status,
            current=progress.current,
            total=progress.total,
            current_crop=progress.current_crop,
        )
        if on_progress is not None:
            on_progress(progress)

    async def _sync_record(self, record: CropRecord, settings: UserSettings) -> bool:
        """One cloud round-trip for one record. Returns True when reconciled."""
        attempts = record.sync_attempts + 1
        try:
            outcome = await self.orchestrator.analyze_with_source(
                record.image_url, record.crop_type, settings.stress_sensitivity
            )
        except Exception as e:
            logger.warning("Sync of record %s raised: %s", record.id, e)
            self.store.update_record(record.id, sync_attempts=attempts, last_sync_error=str(e))
            return False

        if not outcome.is_remote:
            # Local fallback means the cloud did not answer; keep the old analysis
            self.store.update_record(
                record.id, sync_attempts=attempts, last_sync_error=outcome.error
            )
            logger.info("Record %s not synced (attempt %d/%d): %s",
                        record.id, attempts, self.max_attempts, outcome.error)
            return False

        self.store.update_record(
            record.id,
            analysis=outcome.analysis,
            status=derive_crop_status(outcome.analysis, settings),
            is_pending_sync=False,
            sync_attempts=attempts,
            last_sync_error=None,
        )
        return True

    async def run_pass(self, on_progress: Optional[ProgressCallback] = None) -> SyncSummary | None:
        """Run one sync pass over the pending queue.

        Returns:
            SyncSummary with the pass counts, or None when the pass was
            refused or failed unexpectedly.
        """
        if not self.can_start():
            logger.debug("Sync pass refused (active=%s)", self._active)
            return None

        # Set before the first await; released in finally on every path
        self._active = True
        summary = SyncSummary()
        try:
            pending = self.store.get_pending_records()
            if not pending:
                return summary

            settings = self.store.get_settings()
            summary.total = len(pending)
            self._update(
                status="syncing", current=0, total=summary.total, current_crop=None,
                synced=0, failed=0, skipped=0,
                started_at=self._clock(), completed_at=None, error_message=None,
            )
            logger.info("Sync pass started: %d pending records", summary.total)

            for index, record in enumerate(pending, start=1):
                if record.sync_attempts >= self.max_attempts:
                    summary.skipped += 1
                    logger.debug("Record %s skipped: retry cap reached", record.id)
                elif not self.network.is_online():
                    logger.info("Network lost during sync pass; stopping at record %d", index)
                    break
                elif await self._sync_record(record, settings):
                    summary.synced += 1
                else:
                    summary.failed += 1

                self._update(synced=summary.synced, failed=summary.failed, skipped=summary.skipped)
                self._emit(on_progress, SyncProgress(
                    current=index, total=summary.total, status="syncing", current_crop=record.crop_type,
                ))

            self._update(completed_at=self._clock())
            self._emit(on_progress, SyncProgress(
                current=summary.total, total=summary.total, status="completed",
            ))
            logger.info(
                "Sync pass complete: synced=%d, failed=%d, skipped=%d",
                summary.synced, summary.failed, summary.skipped,
            )
            return summary

        except Exception as e:
            logger.error("Sync pass failed: %s", e, exc_info=True)
            failed_progress = SyncProgress(
                current=summary.synced + summary.failed + summary.skipped,
                total=summary.total,
                status="failed",
            )
            self._update(
                status="failed", current=failed_progress.current, current_crop=None,
                error_message=str(e), completed_at=self._clock(),
            )
            if on_progress is not None:
                try:
                    on_progress(failed_progress)
                except Exception:
                    logger.warning("Sync progress callback failed", exc_info=True)
            return None
        finally:
            self._active = False


@lru_cache
def get_sync_coordinator() -> SyncCoordinator:
    settings = get_settings()
    return SyncCoordinator(
        store=get_record_store(),
        orchestrator=get_orchestrator(),
        network=get_network_status(),
        max_attempts=settings.max_sync_attempts,
        cooldown_seconds=settings.sync_cooldown_seconds,
    )
