"""Disease profile knowledge base and matcher.

Scores a feature vector against each profile's signed feature weights.
Produces a best match and its normalized score (0.0 ~ 1.0).
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from agroguard.services.feature_extractor import VisualFeatures

logger = logging.getLogger(__name__)

# A best match must score strictly above this to count as a detected disease
ACCEPTANCE_THRESHOLD = 0.45


@dataclass(frozen=True)
class DiseaseProfile:
    name: str
    weights: Mapping[str, float]
    description: str
    recommendations: tuple[str, ...]
    base_loss_modifier: float

    def __post_init__(self):
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))


# Declaration order is the tie-break order.
DISEASE_PROFILES: tuple[DiseaseProfile, ...] = (
    DiseaseProfile(
        name="Leaf Rust (Puccinia spp.)",
        weights={"redness": 0.8, "edge_density": 0.6, "variance": 0.4},
        description=(
            "Detected characteristic reddish-orange fungal pustules causing "
            "high localized spectral variance."
        ),
        recommendations=(
            "Apply triazole fungicide",
            "Reduce overhead irrigation",
            "Monitor spread to adjacent rows",
        ),
        base_loss_modifier=1.2,
    ),
    DiseaseProfile(
        name="Late Blight (Phytophthora infestans)",
        weights={"necrotic_density": 0.9, "greenness": -0.8, "variance": 0.7},
        description=(
            "Widespread necrotic lesions with high variance. Typical of "
            "aggressive oomycete infection."
        ),
        recommendations=(
            "Immediate copper-based spray",
            "Remove heavily infected plant matter",
            "Check for stem cankers",
        ),
        base_loss_modifier=2.0,
    ),
    DiseaseProfile(
        name="Powdery Mildew",
        weights={"variance": 0.8, "edge_density": 0.5, "greenness": -0.2},
        description=(
            "Surface-level white mycelial growth creating high textural "
            "complexity and edge counts."
        ),
        recommendations=(
            "Increase airflow in canopy",
            "Apply sulfur-based powders",
            "Check relative humidity levels",
        ),
        base_loss_modifier=0.8,
    ),
    DiseaseProfile(
        name="Nitrogen/Iron Chlorosis",
        weights={"greenness": -0.9, "zonal_integrity": -0.7, "necrotic_density": -0.5},
        description=(
            "Broad-spectrum chlorophyll loss starting from leaf margins. "
            "Pattern suggests physiological deficiency."
        ),
        recommendations=(
            "Check soil pH (likely >7.0)",
            "Apply chelated iron/nitrogen",
            "Review drainage efficiency",
        ),
        base_loss_modifier=0.6,
    ),
    DiseaseProfile(
        name="Bacterial Leaf Spot",
        weights={"edge_density": 0.9, "necrotic_density": 0.5, "variance": 0.5},
        description="Small, angular necrotic spots with sharp boundaries (high edge density).",
        recommendations=(
            "Avoid handling wet foliage",
            "Apply fixed copper bactericide",
            "Sanitize equipment between sectors",
        ),
        base_loss_modifier=1.1,
    ),
)


@dataclass(frozen=True)
class ProfileMatch:
    profile: DiseaseProfile | None
    score: float
    scores: dict[str, float] = field(default_factory=dict)

    @property
    def confirmed(self) -> bool:
        return self.profile is not None and self.score > ACCEPTANCE_THRESHOLD

    @property
    def matched_profile(self) -> DiseaseProfile | None:
        """The best profile, only when it clears the acceptance threshold."""
        return self.profile if self.confirmed else None


def score_profile(features: VisualFeatures, profile: DiseaseProfile) -> float:
    """Normalized match score of one profile.

    Positive weights reward high feature values, negative weights reward
    low ones. The sum is divided by the total absolute weight.
    """
    score = 0.0
    weight_total = 0.0
    for feature_name, weight in profile.weights.items():
        value = getattr(features, feature_name)
        if weight > 0:
            score += value * weight
        else:
            score += (1 - value) * abs(weight)
        weight_total += abs(weight)
    if weight_total == 0:
        return 0.0
    return score / weight_total


def match_profiles(
    features: VisualFeatures,
    profiles: tuple[DiseaseProfile, ...] = DISEASE_PROFILES,
) -> ProfileMatch:
    """Pick the strictly highest-scoring profile; ties keep the earlier one."""
    best_profile = None
    best_score = -1.0
    scores = {}

    for profile in profiles:
        score = score_profile(features, profile)
        scores[profile.name] = score
        if score > best_score:
            best_score = score
            best_profile = profile

    match = ProfileMatch(profile=best_profile, score=max(best_score, 0.0), scores=scores)
    logger.debug(
        "Profile match: best=%s score=%.3f confirmed=%s",
        best_profile.name if best_profile else None,
        match.score,
        match.confirmed,
    )
    return match
