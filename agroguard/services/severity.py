"""Severity heuristic: feature vector -> stress score and derived ratings.

Independent of which disease profile matched; the profile only scales the
yield-loss estimate through its loss multiplier.
"""

import logging
import math

from agroguard.schemas.analysis import CropStatus, UserSettings, YieldAnalysis
from agroguard.services.feature_extractor import VisualFeatures

logger = logging.getLogger(__name__)

SENSITIVITY_MULTIPLIERS = {
    "Aggressive": 1.4,
    "High": 1.2,
}

LOSS_SCALE = 35
LEAF_COVERAGE_SCALE = 160
CONFIDENCE_CAP = 0.92
CLIMATE_RISK_PLACEHOLDER = 0.5

# Crop status cut-offs (percent expected loss)
DISEASED_LOSS = 15
STRESSED_LOSS = 5


def round_half_up(value: float) -> int:
    """Round .5 away from zero on the positive side, like a UI percentage."""
    return int(math.floor(value + 0.5))


def sensitivity_multiplier(sensitivity: str) -> float:
    return SENSITIVITY_MULTIPLIERS.get(sensitivity, 1.0)


def compute_stress_heuristic(features: VisualFeatures, sensitivity: str = "Standard") -> float:
    base = (
        (1 - features.greenness) * 0.4
        + features.necrotic_density * 0.4
        + (1 - features.zonal_integrity) * 0.2
    )
    return base * sensitivity_multiplier(sensitivity)


def estimate_expected_loss(stress: float, loss_multiplier: float = 1.0) -> int:
    return max(0, round_half_up(stress * LOSS_SCALE * loss_multiplier))


def classify_risk(stress: float) -> str:
    if stress > 0.5:
        return "High"
    elif stress > 0.2:
        return "Medium"
    return "Low"


def classify_urgency(stress: float) -> str:
    if stress > 0.4:
        return "Immediate"
    elif stress > 0.15:
        return "Within 48h"
    return "Monitoring"


def classify_spread_velocity(edge_density: float) -> str:
    if edge_density > 0.35:
        return "Aggressive"
    elif edge_density > 0.15:
        return "Moderate"
    return "Slow"


def is_symptomless_stress(stress: float, features: VisualFeatures) -> bool:
    """Elevated stress without visible necrosis or lesion edges."""
    return stress > 0.25 and features.necrotic_density < 0.1 and features.edge_density < 0.2


def compute_confidence(match_score: float) -> float:
    return min(CONFIDENCE_CAP, 0.5 + match_score * 0.4)


def stress_probability(stress: float) -> int:
    return min(100, max(0, round_half_up(stress * 100)))


def leaf_coverage(features: VisualFeatures) -> int:
    # Not clamped: dense necrosis reads above 100
    return round_half_up(features.necrotic_density * LEAF_COVERAGE_SCALE)


def derive_crop_status(analysis: YieldAnalysis, settings: UserSettings) -> CropStatus:
    """Record status from its analysis and the threshold settings."""
    loss = analysis.expected_loss
    if loss > settings.insurance_threshold:
        return CropStatus.CRITICAL
    if loss > DISEASED_LOSS:
        return CropStatus.DISEASED
    if (
        loss > STRESSED_LOSS
        or analysis.symptomless_stress_detected
        or analysis.stress_probability >= settings.stress_threshold
    ):
        return CropStatus.STRESSED
    return CropStatus.HEALTHY
