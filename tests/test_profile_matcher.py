import itertools

import pytest

from agroguard.services.feature_extractor import DEFAULT_FEATURES, VisualFeatures
from agroguard.services.profile_matcher import (
    ACCEPTANCE_THRESHOLD,
    DISEASE_PROFILES,
    DiseaseProfile,
    match_profiles,
    score_profile,
)

BLIGHT_LEAF = VisualFeatures(
    greenness=0.1,
    variance=0.6,
    necrotic_density=0.7,
    redness=0.05,
    edge_density=0.1,
    zonal_integrity=0.3,
)


def test_profiles_in_declaration_order():
    assert [p.name for p in DISEASE_PROFILES] == [
        "Leaf Rust (Puccinia spp.)",
        "Late Blight (Phytophthora infestans)",
        "Powdery Mildew",
        "Nitrogen/Iron Chlorosis",
        "Bacterial Leaf Spot",
    ]
    assert [p.base_loss_modifier for p in DISEASE_PROFILES] == [1.2, 2.0, 0.8, 0.6, 1.1]
    for profile in DISEASE_PROFILES:
        assert len(profile.recommendations) == 3


def test_profile_weights_are_read_only():
    with pytest.raises(TypeError):
        DISEASE_PROFILES[0].weights["redness"] = 0.0


def test_late_blight_leaf_matches_blight():
    match = match_profiles(BLIGHT_LEAF)

    assert match.profile.name.startswith("Late Blight")
    assert match.score == pytest.approx(0.7375)
    assert match.confirmed
    assert match.scores["Nitrogen/Iron Chlorosis"] == pytest.approx(0.6905, abs=1e-4)
    assert match.scores["Powdery Mildew"] == pytest.approx(0.4733, abs=1e-4)


def test_default_vector_is_unconfirmed():
    match = match_profiles(DEFAULT_FEATURES)

    assert match.profile.name == "Nitrogen/Iron Chlorosis"
    assert match.score == pytest.approx(0.725 / 2.1)
    assert match.score <= ACCEPTANCE_THRESHOLD
    assert not match.confirmed
    assert match.matched_profile is None


def test_scores_stay_in_unit_interval():
    grid = [0.0, 0.5, 1.0]
    for values in itertools.product(grid, repeat=6):
        features = VisualFeatures(*values)
        for profile in DISEASE_PROFILES:
            assert 0.0 <= score_profile(features, profile) <= 1.0


def test_tie_keeps_first_declared_profile():
    weights = {"redness": 1.0}
    first = DiseaseProfile("First", weights, "a", ("x",), 1.0)
    second = DiseaseProfile("Second", weights, "b", ("y",), 1.0)

    match = match_profiles(BLIGHT_LEAF, profiles=(first, second))

    assert match.profile is first


def test_empty_weights_score_zero():
    empty = DiseaseProfile("Empty", {}, "none", (), 1.0)
    assert score_profile(DEFAULT_FEATURES, empty) == 0.0

    match = match_profiles(DEFAULT_FEATURES, profiles=(empty,))
    assert match.profile is empty
    assert match.score == 0.0
    assert not match.confirmed


def test_no_profiles_yields_no_match():
    match = match_profiles(DEFAULT_FEATURES, profiles=())
    assert match.profile is None
    assert match.score == 0.0
    assert match.matched_profile is None
