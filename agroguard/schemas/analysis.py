from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

StressSensitivity = Literal["Low", "Standard", "High", "Aggressive"]
RiskLevel = Literal["Low", "Medium", "High"]
TreatmentUrgency = Literal["Immediate", "Within 48h", "Monitoring"]
SpreadVelocity = Literal["Static", "Slow", "Moderate", "Aggressive"]
SyncState = Literal["idle", "syncing", "completed", "failed"]


class CropStatus(str, Enum):
    HEALTHY = "Healthy"
    STRESSED = "Stressed"
    DISEASED = "Diseased"
    CRITICAL = "Critical"


class CamelModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class DetailedMetrics(CamelModel):
    leaf_coverage: int
    spread_velocity: SpreadVelocity
    climate_risk_factor: float


class YieldAnalysis(CamelModel):
    expected_loss: int
    confidence_score: float
    risk_level: RiskLevel
    recommendations: list[str]
    disease_detected: str | None = None
    disease_description: str | None = None
    similarity_score: float | None = None
    symptomless_stress_detected: bool
    stress_probability: int
    treatment_urgency: TreatmentUrgency
    detailed_metrics: DetailedMetrics | None = None


class CloudAnalysisResponse(YieldAnalysis):
    """Remote payload: same shape, with the remote contract's required fields."""

    disease_detected: str
    disease_description: str
    detailed_metrics: DetailedMetrics

    @field_validator("expected_loss", "stress_probability", mode="before")
    @classmethod
    def round_percentages(cls, v):
        from agroguard.services.severity import round_half_up

        if isinstance(v, float):
            return round_half_up(v)
        return v

    def to_analysis(self) -> YieldAnalysis:
        return YieldAnalysis.model_validate(self.model_dump())


class UserSettings(CamelModel):
    stress_sensitivity: StressSensitivity = "Standard"
    stress_threshold: int = Field(default=20, ge=0, le=100)
    insurance_threshold: int = Field(default=25, ge=0, le=100)
    auto_sync: bool = True


class CropRecord(CamelModel):
    id: str
    timestamp: int
    crop_type: str
    image_url: str | None = None
    status: CropStatus
    analysis: YieldAnalysis
    feedback: str | None = None
    is_pending_sync: bool = False
    sync_attempts: int = 0
    last_sync_error: str | None = None


class AnalyzeRequest(CamelModel):
    crop_type: str = Field(min_length=1)
    image: str | None = None
    sensitivity: Optional[StressSensitivity] = None


class AnalyzeResponse(CamelModel):
    source: Literal["local", "remote"]
    analysis: YieldAnalysis
    status: CropStatus


class RecordCreate(CamelModel):
    id: str | None = None
    crop_type: str = Field(min_length=1)
    image: str | None = None
    analysis: YieldAnalysis
    feedback: str | None = None


class FeedbackUpdate(CamelModel):
    feedback: str


class SyncProgress(CamelModel):
    current: int
    total: int
    status: SyncState
    current_crop: str | None = None


class SyncJobStatus(CamelModel):
    status: SyncState
    current: int = 0
    total: int = 0
    current_crop: str | None = None
    synced: int = 0
    failed: int = 0
    skipped: int = 0
    started_at: float | None = None
    completed_at: float | None = None
    error_message: str | None = None


class SyncTriggerResponse(CamelModel):
    started: bool
    message: str


class NetworkState(CamelModel):
    online: bool


class DashboardStats(CamelModel):
    total_analyzed: int
    healthy_percentage: int
    average_yield_loss: int
    active_alerts: int
    pending_sync: int


class InsuranceAlert(CamelModel):
    id: str
    timestamp: int
    crop_type: str
    expected_loss: int
    disease_detected: str | None = None
    confidence_score: float


class LossTrendPoint(CamelModel):
    time: str
    loss: int
    confidence: int


class CropDistribution(CamelModel):
    name: str
    value: int


class DiseaseSpreadPoint(CamelModel):
    time: str
    counts: dict[str, int]
