"""Record API endpoints: confirmed analyses, feedback, sync reset, user settings."""

import logging
import time
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from agroguard.schemas.analysis import CropRecord, FeedbackUpdate, RecordCreate, UserSettings
from agroguard.services.connectivity import NetworkStatus, get_network_status
from agroguard.services.record_store import RecordExistsError, RecordStore, get_record_store
from agroguard.services.severity import derive_crop_status

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/records", response_model=CropRecord, status_code=201)
async def create_record(
    payload: RecordCreate,
    store: RecordStore = Depends(get_record_store),
    network: NetworkStatus = Depends(get_network_status),
):
    """Persist a confirmed analysis; offline saves are queued for cloud sync."""
    settings = store.get_settings()
    record = CropRecord(
        id=payload.id or uuid.uuid4().hex,
        timestamp=int(time.time() * 1000),
        crop_type=payload.crop_type,
        image_url=payload.image,
        status=derive_crop_status(payload.analysis, settings),
        analysis=payload.analysis,
        feedback=payload.feedback,
        is_pending_sync=not network.is_online(),
        sync_attempts=0,
    )
    try:
        return store.insert_record(record)
    except RecordExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/records", response_model=list[CropRecord])
async def list_records(
    pending: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: RecordStore = Depends(get_record_store),
):
    return store.get_records(limit=limit, offset=offset, pending=pending)


@router.get("/records/{record_id}", response_model=CropRecord)
async def get_record(record_id: str, store: RecordStore = Depends(get_record_store)):
    record = store.get_record(record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Record not found")
    return record


@router.patch("/records/{record_id}/feedback", response_model=CropRecord)
async def update_feedback(
    record_id: str,
    payload: FeedbackUpdate,
    store: RecordStore = Depends(get_record_store),
):
    record = store.update_feedback(record_id, payload.feedback)
    if not record:
        raise HTTPException(status_code=404, detail="Record not found")
    return record


@router.post("/records/{record_id}/reset-sync", response_model=CropRecord)
async def reset_sync(record_id: str, store: RecordStore = Depends(get_record_store)):
    """Put a record back in the sync queue with a fresh attempt budget."""
    record = store.update_record(
        record_id, is_pending_sync=True, sync_attempts=0, last_sync_error=None
    )
    if not record:
        raise HTTPException(status_code=404, detail="Record not found")
    return record


@router.delete("/records/{record_id}")
async def delete_record(record_id: str, store: RecordStore = Depends(get_record_store)):
    if not store.delete_record(record_id):
        raise HTTPException(status_code=404, detail="Record not found")
    return {"deleted": True, "id": record_id}


@router.get("/settings", response_model=UserSettings)
async def get_user_settings(store: RecordStore = Depends(get_record_store)):
    return store.get_settings()


@router.put("/settings", response_model=UserSettings)
async def save_user_settings(settings: UserSettings, store: RecordStore = Depends(get_record_store)):
    return store.save_settings(settings)
