"""Analysis API endpoints: analyze an image, trigger and watch offline sync."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from agroguard.schemas.analysis import (
    AnalyzeRequest,
    AnalyzeResponse,
    NetworkState,
    SyncJobStatus,
    SyncTriggerResponse,
)
from agroguard.services.analysis_orchestrator import AnalysisOrchestrator, get_orchestrator
from agroguard.services.connectivity import NetworkStatus, get_network_status
from agroguard.services.record_store import RecordStore, get_record_store
from agroguard.services.severity import derive_crop_status
from agroguard.services.sync_coordinator import SyncCoordinator, get_sync_coordinator

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_crop(
    request: AnalyzeRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    store: RecordStore = Depends(get_record_store),
):
    """Analyze a leaf photo; cloud when reachable, local engine otherwise."""
    settings = store.get_settings()
    sensitivity = request.sensitivity or settings.stress_sensitivity

    try:
        outcome = await orchestrator.analyze_with_source(request.image, request.crop_type, sensitivity)
    except Exception as e:
        logger.error("Analysis engine failure for %s: %s", request.crop_type, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Analysis engine failure")

    return AnalyzeResponse(
        source=outcome.source.value,
        analysis=outcome.analysis,
        status=derive_crop_status(outcome.analysis, settings),
    )


def _start_sync(coordinator: SyncCoordinator, background_tasks: BackgroundTasks) -> SyncTriggerResponse:
    if coordinator.is_syncing:
        return SyncTriggerResponse(started=False, message="Sync already running")
    if not coordinator.can_start():
        return SyncTriggerResponse(started=False, message="Remote analysis unavailable")
    if not coordinator.store.get_pending_records():
        return SyncTriggerResponse(started=False, message="No pending records")

    background_tasks.add_task(coordinator.run_pass)
    return SyncTriggerResponse(started=True, message="Sync started")


@router.post("/sync", response_model=SyncTriggerResponse)
async def trigger_sync(
    background_tasks: BackgroundTasks,
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    """Start a sync pass over pending records (runs in background)."""
    return _start_sync(coordinator, background_tasks)


@router.get("/sync/status", response_model=SyncJobStatus)
async def get_sync_status(coordinator: SyncCoordinator = Depends(get_sync_coordinator)):
    return coordinator.status()


@router.get("/network", response_model=NetworkState)
async def get_network(network: NetworkStatus = Depends(get_network_status)):
    return NetworkState(online=network.is_online())


@router.put("/network", response_model=NetworkState)
async def set_network(
    state: NetworkState,
    background_tasks: BackgroundTasks,
    network: NetworkStatus = Depends(get_network_status),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    """Report connectivity from the client; coming back online may start a sync."""
    restored = network.set_online(state.online)
    if restored and coordinator.store.get_settings().auto_sync:
        result = _start_sync(coordinator, background_tasks)
        logger.info("Connectivity restored, auto-sync: %s", result.message)
    return NetworkState(online=network.is_online())
