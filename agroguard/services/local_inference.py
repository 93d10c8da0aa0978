"""Offline inference: features + profile match + severity -> one YieldAnalysis."""

import logging

from agroguard.schemas.analysis import DetailedMetrics, YieldAnalysis
from agroguard.services import severity
from agroguard.services.feature_extractor import VisualFeatures, features_from_image
from agroguard.services.profile_matcher import match_profiles

logger = logging.getLogger(__name__)

SYMPTOMLESS_RECOMMENDATIONS = [
    "Apply micronutrient foliar spray",
    "Verify soil moisture",
    "Conduct sap test",
]
UNKNOWN_PATHOGEN_RECOMMENDATIONS = [
    "Isolate sector",
    "Apply organic fungicide",
    "Monitor spread",
]


def build_local_analysis(features: VisualFeatures, sensitivity: str = "Standard") -> YieldAnalysis:
    """Compose the heuristic verdict for an already-extracted feature vector."""
    match = match_profiles(features)
    matched = match.matched_profile

    stress = severity.compute_stress_heuristic(features, sensitivity)
    symptomless = severity.is_symptomless_stress(stress, features)
    loss_multiplier = matched.base_loss_modifier if matched else 1.0

    if matched:
        recommendations = list(matched.recommendations)
        disease = matched.name
        description = (
            f"Local Diagnostic Engine Match: {matched.description} "
            f"(Match Confidence: {severity.round_half_up(match.score * 100)}%)"
        )
    else:
        zonal_pct = severity.round_half_up(features.zonal_integrity * 100)
        if symptomless:
            recommendations = list(SYMPTOMLESS_RECOMMENDATIONS)
            disease = "Physiological Stress"
            finding = "Detected spectral shifts indicating latent stress."
        else:
            recommendations = list(UNKNOWN_PATHOGEN_RECOMMENDATIONS)
            disease = "Unknown Pathogen"
            finding = "Detected atypical morphological lesions."
        description = f"Heuristic Analysis: Zonal integrity at {zonal_pct}%. {finding}"

    return YieldAnalysis(
        expected_loss=severity.estimate_expected_loss(stress, loss_multiplier),
        confidence_score=severity.compute_confidence(match.score),
        risk_level=severity.classify_risk(stress),
        recommendations=recommendations,
        disease_detected=disease,
        disease_description=description,
        similarity_score=match.score,
        symptomless_stress_detected=symptomless,
        stress_probability=severity.stress_probability(stress),
        treatment_urgency=severity.classify_urgency(stress),
        detailed_metrics=DetailedMetrics(
            leaf_coverage=severity.leaf_coverage(features),
            spread_velocity=severity.classify_spread_velocity(features.edge_density),
            climate_risk_factor=severity.CLIMATE_RISK_PLACEHOLDER,
        ),
    )


def run_local_inference(image, crop_type: str, sensitivity: str = "Standard") -> YieldAnalysis:
    """Full offline path from an image payload (or None)."""
    features = features_from_image(image)
    analysis = build_local_analysis(features, sensitivity)
    logger.info(
        "Local inference for %s: %s, loss=%d%%, risk=%s",
        crop_type,
        analysis.disease_detected,
        analysis.expected_loss,
        analysis.risk_level,
    )
    return analysis
