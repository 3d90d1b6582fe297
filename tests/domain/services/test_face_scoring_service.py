"""face_scoring_service のユニットテスト

顔の5ピラーと総合スコアのテスト。
Requirements: 4.2, 4.3, 4.4
"""

import pytest

from app.domain.models.measurement import FaceLandmarkPayload
from app.domain.services.face_scoring_service import (
    MAX_RATIO_SIGNALS,
    calculate_feature_scores,
    calculate_harmony,
    calculate_symmetry,
    calculate_thirds,
    score_face,
)


def _landmarks(**overrides) -> FaceLandmarkPayload:
    values = {
        "face_width": 140.0,
        "face_height": 226.5,
        "hairline_to_eyebrow": 60.0,
        "eyebrow_to_nose": 60.0,
        "nose_to_chin": 60.0,
        "left_eye_width": 30.0,
        "right_eye_width": 30.0,
        "inter_eye_distance": 30.0,
        "nose_width": 18.5,
        "mouth_width": 27.8,
        "jaw_width": 86.5,
        "chin_width": 40.0,
        "left_face_width": 70.0,
        "right_face_width": 70.0,
        "left_cheek_height": 35.0,
        "right_cheek_height": 35.0,
        "left_brow_height": 20.0,
        "right_brow_height": 20.0,
    }
    values.update(overrides)
    return FaceLandmarkPayload(**values)


@pytest.mark.unit
class TestFacePillars:
    """顔の各ピラー計算のテスト"""

    def test_harmony_signals(self):
        result = calculate_harmony(_landmarks(), 1.0)
        assert 0 < len(result.ratio_signals) <= MAX_RATIO_SIGNALS
        assert 0.0 <= result.harmony_index <= 1.0
        by_key = {s.key: s for s in result.ratio_signals}
        assert by_key["interEyeSpacing"].score == 1.0
        assert by_key["faceWidthToLength"].status == "good"

    def test_harmony_uses_sample_median(self):
        samples = {"interEyeSpacing": [1.3] * 8}
        result = calculate_harmony(_landmarks(), 1.0, samples)
        by_key = {s.key: s for s in result.ratio_signals}
        assert by_key["interEyeSpacing"].value == 1.3
        assert by_key["interEyeSpacing"].score < 1.0

    def test_perfect_symmetry(self):
        assert calculate_symmetry(_landmarks()) == 1.0

    def test_asymmetry_lowers_symmetry(self):
        assert calculate_symmetry(_landmarks(left_face_width=60.0)) < 1.0

    def test_equal_thirds(self):
        score, notes = calculate_thirds(_landmarks())
        assert score == pytest.approx(1.0)
        assert notes == "Well-balanced facial proportions"

    def test_long_forehead_note(self):
        score, notes = calculate_thirds(_landmarks(hairline_to_eyebrow=100.0))
        assert score < 1.0
        assert "Longer forehead" in notes

    def test_unmeasurable_thirds(self):
        score, notes = calculate_thirds(
            _landmarks(hairline_to_eyebrow=0.0, eyebrow_to_nose=0.0, nose_to_chin=0.0))
        assert score == 0.5
        assert notes == "Unable to measure facial thirds"

    def test_feature_scores(self):
        features = calculate_feature_scores(_landmarks(), 0.8)
        assert set(features) == {
            "eyes", "brows", "nose", "lips", "cheekbones", "jawChin", "skin", "hair"}
        assert features["skin"].score10 == 6.0
        assert features["cheekbones"].score10 == 7.0
        assert all(0.0 <= f.score10 <= 10.0 for f in features.values())
        assert all(0.0 <= f.confidence <= 1.0 for f in features.values())

    def test_provided_skin_and_hair(self):
        features = calculate_feature_scores(_landmarks(skin_score=0.9, hair_score=0.3), 1.0)
        assert features["skin"].score10 == 9.0
        assert features["hair"].score10 == 3.0


@pytest.mark.unit
class TestScoreFace:
    """score_face のテスト"""

    def test_result_shape(self):
        result = score_face(_landmarks(), 1.0)
        assert [p.key for p in result.pillars] == [
            "harmony", "symmetry", "thirds", "features", "presentation"]
        assert sum(p.weight for p in result.pillars) == pytest.approx(1.0)
        assert 0.0 <= result.overall.current_score10 <= 10.0
        assert result.overall.summary.startswith("Overall face score")

    def test_deterministic(self):
        assert score_face(_landmarks(), 0.9) == score_face(_landmarks(), 0.9)

    def test_potential_range_contains_score(self):
        overall = score_face(_landmarks(), 1.0).overall
        assert overall.potential_range.min <= overall.current_score10 <= overall.potential_range.max
        assert overall.potential_range.max <= 10.0

    def test_low_quality_lowers_confidence(self):
        high = score_face(_landmarks(), 1.0).overall
        low = score_face(_landmarks(), 0.5).overall
        assert low.confidence < high.confidence

    def test_low_quality_clamps_to_band(self):
        """信頼度が低い場合は極端なスコアを出さない"""
        overall = score_face(_landmarks(), 0.5).overall
        assert 2.0 <= overall.current_score10 <= 8.0

    def test_asymmetric_face_scores_lower(self):
        balanced = score_face(_landmarks(), 1.0).overall.raw
        skewed = score_face(
            _landmarks(left_face_width=50.0, left_cheek_height=25.0, hairline_to_eyebrow=110.0),
            1.0,
        ).overall.raw
        assert skewed < balanced
