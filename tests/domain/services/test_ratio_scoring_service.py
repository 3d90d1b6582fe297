"""ratio_scoring_service のユニットテスト

比率シグナルの作成と安定度による信頼度補正のテスト。
Requirements: 4.2
"""

import pytest

from app.domain.constants.scoring_config import RatioIdeal
from app.domain.services.ratio_scoring_service import (
    build_ratio_signal,
    safe_ratio,
    sample_stability,
)

IDEAL = RatioIdeal("Test ratio", 1.0, 0.1)


@pytest.mark.unit
class TestBuildRatioSignal:
    """build_ratio_signal のテスト"""

    def test_exact_ideal(self):
        signal = build_ratio_signal("test", 1.0, IDEAL, 0.9)
        assert signal.score == 1.0
        assert signal.status == "good"
        assert signal.confidence == 0.9
        assert signal.label == "Test ratio"
        assert signal.band == (0.9, 1.1)

    def test_body_domain_status(self):
        assert build_ratio_signal("test", 1.0, IDEAL, 0.9, domain="body").status == "ideal"
        assert build_ratio_signal("test", 1.12, IDEAL, 0.9, domain="body").status == "moderate"

    def test_status_and_score_agree(self):
        """ステータスの段階とスコアの大小が矛盾しない"""
        by_status: dict[str, list[float]] = {"good": [], "ok": [], "off": []}
        for deviation in (0.02, 0.04, 0.07, 0.09, 0.2, 0.4):
            for value in (1 + deviation, 1 - deviation):
                signal = build_ratio_signal("test", value, IDEAL, 1.0)
                by_status[signal.status].append(signal.score)
        assert min(by_status["good"]) > max(by_status["ok"])
        assert min(by_status["ok"]) > max(by_status["off"])

    def test_score_decreases_with_distance(self):
        scores = [
            build_ratio_signal("test", value, IDEAL, 1.0).score
            for value in (1.0, 1.03, 1.08, 1.15, 1.4)
        ]
        assert scores == sorted(scores, reverse=True)

    def test_zero_value_scores_zero(self):
        signal = build_ratio_signal("test", 0.0, IDEAL, 1.0)
        assert signal.score == 0.0
        assert signal.status == "off"

    def test_samples_use_median(self):
        signal = build_ratio_signal("test", 5.0, IDEAL, 0.9, samples=[1.0, 1.01, 0.99, 1.0, 1.0])
        assert signal.value == 1.0
        assert signal.confidence == 0.9

    def test_unstable_samples_reduce_confidence(self):
        samples = [0.6, 0.8, 1.0, 1.2, 1.4, 1.6, 0.7, 1.3]
        signal = build_ratio_signal("test", 1.0, IDEAL, 0.9, samples=samples)
        assert signal.confidence < 0.9


@pytest.mark.unit
class TestHelpers:
    """sample_stability / safe_ratio のテスト"""

    def test_stable_samples(self):
        assert sample_stability([1.0] * 16, 1.0) == 1.0

    def test_unstable_samples(self):
        assert sample_stability([0.5, 1.0, 1.5, 2.0, 2.5, 3.0], 1.0) == 0.0

    def test_safe_ratio(self):
        assert safe_ratio(1.0, 2.0) == 0.5
        assert safe_ratio(1.0, 0.0) == 0.0
        assert safe_ratio(1.0, -1.0) == 0.0
