"""Record analytics: dashboard stats, insurance alerts, loss and disease trends."""

import logging
from datetime import datetime, timezone

import pandas as pd

from agroguard.schemas.analysis import CropRecord, CropStatus
from agroguard.services.severity import round_half_up

logger = logging.getLogger(__name__)

HEALTHY_LABEL = "Healthy"


def records_to_frame(records: list[CropRecord]) -> pd.DataFrame:
    """Flatten records into one row each, oldest first."""
    rows = [
        {
            "id": r.id,
            "timestamp": r.timestamp,
            "crop_type": r.crop_type,
            "status": r.status.value if isinstance(r.status, CropStatus) else r.status,
            "expected_loss": r.analysis.expected_loss,
            "confidence_score": r.analysis.confidence_score,
            "disease_detected": r.analysis.disease_detected,
            "is_pending_sync": r.is_pending_sync,
        }
        for r in records
    ]
    columns = [
        "id", "timestamp", "crop_type", "status", "expected_loss",
        "confidence_score", "disease_detected", "is_pending_sync",
    ]
    df = pd.DataFrame(rows, columns=columns)
    if df.empty:
        df["date"] = pd.Series(dtype=str)
        return df
    df["date"] = pd.to_datetime(df["timestamp"], unit="ms", utc=True).dt.strftime("%Y-%m-%d")
    return df.sort_values("timestamp", kind="stable").reset_index(drop=True)


def compute_dashboard_stats(df: pd.DataFrame, insurance_threshold: int) -> dict:
    total = len(df)
    if total == 0:
        return {
            "total_analyzed": 0,
            "healthy_percentage": 0,
            "average_yield_loss": 0,
            "active_alerts": 0,
            "pending_sync": 0,
        }

    healthy = int((df["status"] == CropStatus.HEALTHY.value).sum())
    return {
        "total_analyzed": total,
        "healthy_percentage": round_half_up(healthy / total * 100),
        "average_yield_loss": round_half_up(float(df["expected_loss"].mean())),
        "active_alerts": int((df["expected_loss"] >= insurance_threshold).sum()),
        "pending_sync": int(df["is_pending_sync"].sum()),
    }


def compute_insurance_alerts(df: pd.DataFrame, insurance_threshold: int) -> list[dict]:
    """Records whose predicted loss meets the claim threshold, most recent first."""
    if df.empty:
        return []
    alerts = df[df["expected_loss"] >= insurance_threshold].sort_values("timestamp", ascending=False)
    return [
        {
            "id": row.id,
            "timestamp": int(row.timestamp),
            "crop_type": row.crop_type,
            "expected_loss": int(row.expected_loss),
            "disease_detected": row.disease_detected,
            "confidence_score": float(row.confidence_score),
        }
        for row in alerts.itertuples(index=False)
    ]


def compute_loss_trend(df: pd.DataFrame) -> list[dict]:
    """Per-record loss and confidence in chronological order."""
    return [
        {
            "time": row.date,
            "loss": int(row.expected_loss),
            "confidence": round_half_up(float(row.confidence_score) * 100),
        }
        for row in df.itertuples(index=False)
    ]


def compute_crop_distribution(df: pd.DataFrame) -> list[dict]:
    if df.empty:
        return []
    counts = df.groupby("crop_type", sort=False).size()
    return [{"name": name, "value": int(count)} for name, count in counts.items()]


def compute_disease_spread(df: pd.DataFrame) -> list[dict]:
    """Counts per day of "<crop>: <disease>" pairs."""
    if df.empty:
        return []
    keys = df["crop_type"] + ": " + df["disease_detected"].fillna(HEALTHY_LABEL)
    pivot = (
        pd.DataFrame({"date": df["date"], "key": keys})
        .groupby(["date", "key"])
        .size()
        .unstack(fill_value=0)
    )
    return [
        {"time": date, "counts": {k: int(v) for k, v in row.items() if v > 0}}
        for date, row in pivot.sort_index().iterrows()
    ]


def render_claim_report(record: CropRecord, insurance_threshold: int) -> str:
    """Plain-text insurance claim trigger for one record."""
    analysis = record.analysis
    when = datetime.fromtimestamp(record.timestamp / 1000, tz=timezone.utc)
    lines = [
        "AGROGUARD AI - INSURANCE CLAIM TRIGGER",
        "-------------------------------------",
        f"Claim Ref: CLM-{record.id.upper()}",
        f"Date: {when.strftime('%Y-%m-%d %H:%M:%S UTC')}",
        f"Crop Type: {record.crop_type}",
        "",
        "ANALYSIS FINDINGS:",
        f"Predicted Yield Loss: {analysis.expected_loss}%",
        f"Detected Issue: {analysis.disease_detected or 'Symptomless Stress Pattern'}",
        f"Confidence Score: {round_half_up(analysis.confidence_score * 100)}%",
        f"Trigger Threshold: {insurance_threshold}%",
        "",
        "VISUAL EVIDENCE:",
        "The analysis identified high-risk visual patterns including leaf lesions",
        "and discoloration that correlate with a potential yield loss exceeding "
        f"{analysis.expected_loss}%.",
        "",
        f"RECOMMENDATION: This record exceeds the {insurance_threshold}% yield loss threshold.",
        "Suggested for visual insurance assessment and payout processing.",
    ]
    return "\n".join(lines) + "\n"
