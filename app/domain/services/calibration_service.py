from app.domain.constants.scoring_config import (
    CONFIDENCE_THRESHOLDS,
    CalibrationParams,
    ConfidenceThresholds,
)
from app.domain.models.scoring import CalibratedScore, PotentialRange
from app.domain.utils.scoring_math import clamp, round_to, sigmoid


def calibrate_score(raw: float, params: CalibrationParams) -> float:
    """raw（0.0〜1.0）を 0〜10 のスコアに変換する（小数1桁）"""
    return round_to(10 * sigmoid(params.steepness * (raw - params.midpoint)), 1)


def calibrate(
    raw: float,
    confidence: float,
    params: CalibrationParams,
    potential_gain: float = 0.0,
    max_potential: float = 10.0,
    thresholds: ConfidenceThresholds = CONFIDENCE_THRESHOLDS,
) -> CalibratedScore:
    """
    集計後の raw スコアをキャリブレーションし、信頼度ゲートを適用する。

    - 信頼度が allow_extremes 未満なら score10 を extremes_band（2〜8）に収める
    - 信頼度が widen_range_below 未満なら potential range を固定幅で広げ、
      報告する信頼度自体も low_confidence_cap に抑える

    集計後に一度だけ適用し、ピラー単位では適用しない。

    Args:
        raw (float): ピラー集計後の raw スコア
        confidence (float): 全体の信頼度
        params (CalibrationParams): 顔・体それぞれのシグモイド定数
        potential_gain (float): 改善可能な要素から見積もった伸びしろ
        max_potential (float): 伸びしろの上限スコア
        thresholds (ConfidenceThresholds): 信頼度しきい値

    Returns:
        CalibratedScore: 0〜10 のスコア・伸びしろ・信頼度
    """
    score10 = calibrate_score(raw, params)
    confidence = clamp(confidence, 0.0, 1.0)

    extremes_clamped = False
    if confidence < thresholds.allow_extremes:
        low, high = thresholds.extremes_band
        clamped = clamp(score10, low, high)
        extremes_clamped = clamped != score10
        score10 = clamped

    if confidence < thresholds.widen_range_below:
        potential_range = PotentialRange(
            min=round_to(clamp(score10 - thresholds.widen_delta_below, 0.0, 10.0), 1),
            max=round_to(clamp(score10 + thresholds.widen_delta_above, 0.0, 10.0), 1),
        )
        return CalibratedScore(
            score10=score10,
            potential_range=potential_range,
            confidence=round_to(min(confidence, thresholds.low_confidence_cap), 2),
            extremes_clamped=extremes_clamped,
            range_widened=True,
        )

    upper = min(score10 + max(potential_gain, 0.0), max_potential, 10.0)
    potential_range = PotentialRange(
        min=score10,
        max=round_to(max(upper, score10), 1),
    )
    return CalibratedScore(
        score10=score10,
        potential_range=potential_range,
        confidence=round_to(confidence, 2),
        extremes_clamped=extremes_clamped,
    )


def confidence_label(confidence: float) -> str:
    if confidence >= CONFIDENCE_THRESHOLDS.allow_extremes:
        return "high"
    if confidence >= CONFIDENCE_THRESHOLDS.widen_range_below:
        return "moderate"
    return "low"
