"""Report API endpoints: dashboard, insurance alerts, loss and disease trends."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from agroguard.schemas.analysis import (
    CropDistribution,
    DashboardStats,
    DiseaseSpreadPoint,
    InsuranceAlert,
    LossTrendPoint,
)
from agroguard.services.record_store import RecordStore, get_record_store
from agroguard.services.reports import (
    compute_crop_distribution,
    compute_dashboard_stats,
    compute_disease_spread,
    compute_insurance_alerts,
    compute_loss_trend,
    records_to_frame,
    render_claim_report,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/reports/dashboard", response_model=DashboardStats)
async def get_dashboard(store: RecordStore = Depends(get_record_store)):
    df = records_to_frame(store.get_records())
    settings = store.get_settings()
    return DashboardStats(**compute_dashboard_stats(df, settings.insurance_threshold))


@router.get("/reports/insurance", response_model=list[InsuranceAlert])
async def get_insurance_alerts(store: RecordStore = Depends(get_record_store)):
    df = records_to_frame(store.get_records())
    threshold = store.get_settings().insurance_threshold
    return [InsuranceAlert(**a) for a in compute_insurance_alerts(df, threshold)]


@router.get("/reports/insurance/{record_id}/claim", response_class=PlainTextResponse)
async def get_claim_report(record_id: str, store: RecordStore = Depends(get_record_store)):
    record = store.get_record(record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Record not found")
    threshold = store.get_settings().insurance_threshold
    if record.analysis.expected_loss < threshold:
        raise HTTPException(status_code=409, detail="Record is below the insurance threshold")
    return PlainTextResponse(
        render_claim_report(record, threshold),
        headers={"Content-Disposition": f'attachment; filename="Insurance_Report_{record.id}.txt"'},
    )


@router.get("/reports/loss-trend", response_model=list[LossTrendPoint])
async def get_loss_trend(store: RecordStore = Depends(get_record_store)):
    df = records_to_frame(store.get_records())
    return [LossTrendPoint(**p) for p in compute_loss_trend(df)]


@router.get("/reports/crop-distribution", response_model=list[CropDistribution])
async def get_crop_distribution(store: RecordStore = Depends(get_record_store)):
    df = records_to_frame(store.get_records())
    return [CropDistribution(**d) for d in compute_crop_distribution(df)]


@router.get("/reports/disease-spread", response_model=list[DiseaseSpreadPoint])
async def get_disease_spread(store: RecordStore = Depends(get_record_store)):
    df = records_to_frame(store.get_records())
    return [DiseaseSpreadPoint(**p) for p in compute_disease_spread(df)]
