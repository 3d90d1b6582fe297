"""pillar_aggregation_service のユニットテスト

ピラーの組み立てと重み付き集計のテスト。
Requirements: 4.3
"""

import pytest

from app.domain.constants.scoring_config import (
    BODY_PILLAR_WEIGHTS_NO_POSTURE,
    BODY_PILLAR_WEIGHTS_WITH_POSTURE,
    FACE_PILLAR_WEIGHTS,
)
from app.domain.services.pillar_aggregation_service import (
    aggregate_confidence,
    aggregate_raw,
    build_pillars,
    select_body_weight_table,
)

FACE_KEYS = ("harmony", "symmetry", "thirds", "features", "presentation")


@pytest.mark.unit
class TestBuildPillars:
    """build_pillars のテスト"""

    def test_order_follows_table(self):
        pillars = build_pillars(
            FACE_PILLAR_WEIGHTS,
            {key: 0.5 for key in FACE_KEYS},
            {key: 1.0 for key in FACE_KEYS},
        )
        assert tuple(p.key for p in pillars) == FACE_KEYS
        assert pillars[0].name == "Golden Ratio Harmony"

    def test_contribution(self):
        pillars = build_pillars(
            FACE_PILLAR_WEIGHTS,
            {key: 1.0 for key in FACE_KEYS},
            {key: 0.5 for key in FACE_KEYS},
        )
        harmony = pillars[0]
        assert harmony.weight == 0.42
        assert harmony.contribution == pytest.approx(0.21)

    def test_missing_score_raises(self):
        with pytest.raises(KeyError):
            build_pillars(FACE_PILLAR_WEIGHTS, {"harmony": 1.0}, {})

    def test_missing_confidence_is_zero(self):
        pillars = build_pillars(
            BODY_PILLAR_WEIGHTS_NO_POSTURE,
            {"proportions": 1.0, "composition": 1.0, "verticalLine": 1.0},
            {},
        )
        assert all(p.confidence == 0.0 for p in pillars)


@pytest.mark.unit
class TestAggregate:
    """aggregate_raw / aggregate_confidence のテスト"""

    def test_perfect_scores_aggregate_to_one(self):
        pillars = build_pillars(
            FACE_PILLAR_WEIGHTS,
            {key: 1.0 for key in FACE_KEYS},
            {key: 1.0 for key in FACE_KEYS},
        )
        assert aggregate_raw(pillars) == pytest.approx(1.0)
        assert aggregate_confidence(pillars) == pytest.approx(1.0)

    def test_raw_is_not_confidence_weighted(self):
        pillars = build_pillars(
            FACE_PILLAR_WEIGHTS,
            {key: 0.8 for key in FACE_KEYS},
            {key: 0.2 for key in FACE_KEYS},
        )
        assert aggregate_raw(pillars) == pytest.approx(0.8)
        assert aggregate_confidence(pillars) == pytest.approx(0.2)

    def test_weighted(self):
        scores = {"proportions": 1.0, "composition": 0.0, "verticalLine": 0.0}
        pillars = build_pillars(BODY_PILLAR_WEIGHTS_NO_POSTURE, scores, {})
        assert aggregate_raw(pillars) == pytest.approx(0.5)


@pytest.mark.unit
class TestSelectBodyWeightTable:
    """select_body_weight_table のテスト"""

    def test_with_posture(self):
        assert select_body_weight_table(True) is BODY_PILLAR_WEIGHTS_WITH_POSTURE

    def test_without_posture(self):
        table = select_body_weight_table(False)
        assert table is BODY_PILLAR_WEIGHTS_NO_POSTURE
        assert "posture" not in table.keys
