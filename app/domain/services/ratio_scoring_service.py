from typing import Literal, Sequence

from app.domain.constants.scoring_config import (
    CONFIDENCE_THRESHOLDS,
    STABILITY_EXPECTED_RANGE_RATIO,
    RatioIdeal,
)
from app.domain.models.scoring import RatioSignal
from app.domain.utils.scoring_math import (
    body_ratio_status,
    face_ratio_status,
    median,
    ratio_score,
    round_to,
    stability,
)

ScoringDomain = Literal["face", "body"]


def sample_stability(samples: Sequence[float], ideal: float) -> float:
    """繰り返し計測値の安定度（1.0 が最も安定）"""
    return stability(samples, ideal * STABILITY_EXPECTED_RANGE_RATIO)


def build_ratio_signal(
    key: str,
    value: float,
    ideal: RatioIdeal,
    confidence: float,
    domain: ScoringDomain = "face",
    samples: Sequence[float] | None = None,
) -> RatioSignal:
    """
    計測比率を理想値と比較して RatioSignal を作成する。

    ステータスは理想値からの乖離率の段階、スコアは対数正規型の近さで、
    どちらも同じ乖離から求めるため矛盾しない。
    ジッター下の繰り返し計測値がある場合は中央値を採用し、
    安定度が低ければ信頼度を安定度に比例して下げる。

    Args:
        key (str): シグナルのキー
        value (float): 計測比率
        ideal (RatioIdeal): 理想値と許容幅
        confidence (float): 計測信頼度（写真品質×計測係数）
        domain (ScoringDomain): face / body（ステータスの段階が異なる）
        samples (Sequence[float] | None): 繰り返し計測値

    Returns:
        RatioSignal: 評価済みのシグナル
    """
    if samples:
        value = median(samples)
        sample_stable = sample_stability(samples, ideal.mid)
        if sample_stable < CONFIDENCE_THRESHOLDS.stability_min:
            confidence *= sample_stable

    if domain == "face":
        status: str = face_ratio_status(value, ideal.mid)
    else:
        status = body_ratio_status(value, ideal.mid)

    band = ideal.resolved_band()
    return RatioSignal(
        key=key,
        label=ideal.label,
        value=round_to(value, 3),
        ideal_mid=round_to(ideal.mid, 3),
        band=(round_to(band[0], 3), round_to(band[1], 3)),
        status=status,
        score=ratio_score(value, ideal.mid, ideal.sigma),
        confidence=round_to(confidence, 2),
    )


def safe_ratio(numerator: float, denominator: float) -> float:
    """分母が 0 以下の場合は 0.0（スコア 0 として扱われる）"""
    if denominator <= 0:
        return 0.0
    return numerator / denominator
