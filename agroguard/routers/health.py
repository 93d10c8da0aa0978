import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from agroguard.config import get_settings
from agroguard.schemas.health import HealthResponse
from agroguard.services.connectivity import NetworkStatus, get_network_status
from agroguard.services.sync_coordinator import SyncCoordinator, get_sync_coordinator

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(network: NetworkStatus = Depends(get_network_status)):
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        service=settings.service_name,
        version=settings.model_version,
        online=network.is_online(),
        remote_configured=settings.has_remote_credentials,
        auto_sync_enabled=settings.auto_sync_enabled,
    )


@router.get("/internal/metrics")
async def internal_metrics(coordinator: SyncCoordinator = Depends(get_sync_coordinator)):
    """Internal metrics endpoint for monitoring service."""
    pending = coordinator.store.get_pending_records()
    exhausted = sum(1 for r in pending if r.sync_attempts >= coordinator.max_attempts)
    return {
        "service": get_settings().service_name,
        "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S"),
        "syncQueue": {
            "pending": len(pending),
            "retryExhausted": exhausted,
            "syncing": coordinator.is_syncing,
        },
    }
