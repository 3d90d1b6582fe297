"""体スコアリングサービス

正面写真の比率（プロポーション）・体組成の見え方・縦のラインと、側面写真がある場合の姿勢から
総合スコアを計算する。姿勢データの有無で重みテーブルを切り替える。
"""

from typing import Mapping

from loguru import logger

from app.domain.constants.scoring_config import (
    BODY_CALIBRATION,
    BODY_PROPORTION_IDEALS,
    BODY_TYPE_PRIMARY_MIN_PROBABILITY,
    BODY_TYPES,
    CLOTHING_FIT_CONFIDENCE,
    POSTURE_SEVERITY_SCORES,
    POSTURE_SEVERITY_THRESHOLDS,
    PROPORTION_SIGNAL_WEIGHTS,
    VERTICAL_LINE_SCORES,
)
from app.domain.models.measurement import BodyMeasurementPayload
from app.domain.models.scoring import (
    BodyScoringResult,
    BodyTypeDistribution,
    BodyTypeProbability,
    CompositionAssessment,
    OverallScore,
    PostureAssessment,
    PostureSeverity,
    PostureSignal,
    RatioSignal,
    VerticalLineAssessment,
)
from app.domain.services.calibration_service import calibrate, confidence_label
from app.domain.services.pillar_aggregation_service import (
    aggregate_confidence,
    aggregate_raw,
    build_pillars,
    select_body_weight_table,
)
from app.domain.services.ratio_scoring_service import build_ratio_signal, safe_ratio
from app.domain.utils.scoring_math import round_to, weighted_mean

MAX_POTENTIAL_GAIN = 2.0

POSTURE_LABELS: Mapping[str, tuple[str, float]] = {
    "forwardHead": ("Forward Head", 0.7),
    "roundedShoulders": ("Rounded Shoulders", 0.65),
    "pelvicTilt": ("Pelvic Tilt", 0.6),
    "ribFlare": ("Rib Flare", 0.55),
}


def _ideal_set(presentation: str) -> str:
    # ambiguous は男性側の理想値を使う
    return "female" if presentation == "female-presenting" else "male"


def calculate_proportions(
    measurements: BodyMeasurementPayload,
    photo_quality: float,
    ratio_samples: Mapping[str, list[float]] | None = None,
) -> tuple[tuple[RatioSignal, ...], float, float]:
    """
    体の比率シグナルを計算する。

    Returns:
        tuple: (シグナル, 比率インデックス, 平均信頼度)
    """
    ratio_samples = ratio_samples or {}
    ideals = BODY_PROPORTION_IDEALS[_ideal_set(measurements.presentation)]
    clothing = CLOTHING_FIT_CONFIDENCE.get(measurements.clothing_fit, CLOTHING_FIT_CONFIDENCE["unknown"])

    values = {
        "shoulderToWaist": safe_ratio(measurements.shoulder_width, measurements.waist_width),
        "waistToHip": safe_ratio(measurements.waist_width, measurements.hip_width),
        "shoulderToHip": safe_ratio(measurements.shoulder_width, measurements.hip_width),
        "legToTorso": safe_ratio(measurements.leg_height, measurements.torso_height),
    }

    signals: list[RatioSignal] = []
    weights: list[float] = []
    for key, value in values.items():
        signal_weight, factor = PROPORTION_SIGNAL_WEIGHTS[key]
        # 高さの比率は服装の影響を受けない
        confidence = photo_quality * factor if key == "legToTorso" else photo_quality * clothing * factor
        signals.append(
            build_ratio_signal(
                key=key,
                value=value,
                ideal=ideals[key],
                confidence=confidence,
                domain="body",
                samples=ratio_samples.get(key),
            )
        )
        weights.append(signal_weight)

    proportions_index = weighted_mean(
        [s.score for s in signals], weights, [s.confidence for s in signals]
    )
    avg_confidence = sum(s.confidence for s in signals) / len(signals)
    return tuple(signals), round_to(proportions_index, 3), round_to(avg_confidence, 2)


def posture_severity(angle: float, thresholds: tuple[float, float, float]) -> PostureSeverity:
    if angle < thresholds[0]:
        return "none"
    if angle < thresholds[1]:
        return "mild"
    if angle < thresholds[2]:
        return "moderate"
    return "significant"


def calculate_posture(
    measurements: BodyMeasurementPayload,
    photo_quality: float,
) -> PostureAssessment | None:
    """側面写真の角度から姿勢を評価する。角度が1つもない場合は None"""
    angles = {
        "forwardHead": measurements.head_forward_angle,
        "roundedShoulders": measurements.shoulder_angle,
        "pelvicTilt": abs(measurements.pelvic_tilt_angle) if measurements.pelvic_tilt_angle is not None else None,
        "ribFlare": measurements.rib_flare_angle,
    }
    if all(angle is None for angle in angles.values()):
        return None

    signals: list[PostureSignal] = []
    scores: list[float] = []
    for key, angle in angles.items():
        if angle is None:
            continue
        label, factor = POSTURE_LABELS[key]
        severity = posture_severity(angle, POSTURE_SEVERITY_THRESHOLDS[key])
        signals.append(
            PostureSignal(
                key=key,
                label=label,
                severity=severity,
                confidence=round_to(photo_quality * factor, 2),
            )
        )
        scores.append(POSTURE_SEVERITY_SCORES[severity])

    return PostureAssessment(
        signals=tuple(signals),
        posture_index=round_to(sum(scores) / len(scores), 3),
        confidence=round_to(sum(s.confidence for s in signals) / len(signals), 2),
    )


def calculate_composition(
    measurements: BodyMeasurementPayload,
    photo_quality: float,
) -> CompositionAssessment:
    """体組成の見え方をレンジで評価する（体脂肪率は出さない）"""
    leanness = measurements.leanness_estimate
    base_score = leanness * 10
    uncertainty = (1 - photo_quality) * 2
    clothing = CLOTHING_FIT_CONFIDENCE.get(measurements.clothing_fit, CLOTHING_FIT_CONFIDENCE["unknown"])

    if leanness > 0.7:
        sharpness = "sharper"
    elif leanness > 0.4:
        sharpness = "balanced"
    else:
        sharpness = "softer"

    return CompositionAssessment(
        leanness_min=round_to(max(0.0, base_score - uncertainty), 1),
        leanness_max=round_to(min(10.0, base_score + uncertainty), 1),
        leanness_score=round_to(base_score, 1),
        sharpness=sharpness,
        confidence=round_to(photo_quality * clothing * 0.5, 2),
    )


def calculate_vertical_line(
    measurements: BodyMeasurementPayload,
    photo_quality: float,
) -> VerticalLineAssessment:
    leg_to_torso = safe_ratio(measurements.leg_height, measurements.torso_height)
    if leg_to_torso < 0.9:
        line = "short"
    elif leg_to_torso > 1.1:
        line = "long"
    else:
        line = "medium"
    return VerticalLineAssessment(
        line=line,
        score=VERTICAL_LINE_SCORES[line],
        confidence=round_to(photo_quality * 0.85, 2),
    )


def calculate_body_type_distribution(
    probabilities: Mapping[str, float],
    min_primary_probability: float = BODY_TYPE_PRIMARY_MIN_PROBABILITY,
) -> BodyTypeDistribution:
    """
    体型タイプの確率分布を正規化する。

    未知のタイプ名と負の値は除外し、合計 1.0 に正規化して確率の降順に並べる。
    最大確率が min_primary_probability 以上の場合のみ主タイプを確定する。
    """
    known = {
        name: value
        for name, value in probabilities.items()
        if name in BODY_TYPES and value > 0
    }
    total = sum(known.values())
    if total <= 0:
        return BodyTypeDistribution()

    ordered = sorted(
        (BodyTypeProbability(type=name, probability=round_to(value / total, 3))
         for name, value in known.items()),
        key=lambda p: (-p.probability, BODY_TYPES.index(p.type)),
    )
    primary = ordered[0].type if ordered[0].probability >= min_primary_probability else None
    return BodyTypeDistribution(probabilities=tuple(ordered), primary_type=primary)


def _potential_gain(posture: PostureAssessment | None, composition: CompositionAssessment) -> float:
    """改善可能な要素（姿勢・体組成）から伸びしろを見積もる"""
    gain = 0.0
    if posture is not None:
        gain += max(0.0, (1 - posture.posture_index) * 0.8)
    gain += max(0.0, (10 - composition.leanness_score) * 0.15)
    return min(gain, MAX_POTENTIAL_GAIN)


def score_body(
    measurements: BodyMeasurementPayload,
    photo_quality: float,
    posture_measurements: BodyMeasurementPayload | None = None,
    ratio_samples: Mapping[str, list[float]] | None = None,
) -> BodyScoringResult:
    """
    体の総合スコアを計算する。

    Args:
        measurements (BodyMeasurementPayload): 正面写真の計測値
        photo_quality (float): 検証済み正面写真の品質スコア
        posture_measurements (BodyMeasurementPayload | None): 側面写真の計測値（姿勢角度）
        ratio_samples (Mapping[str, list[float]] | None): 比率の繰り返し計測値

    Returns:
        BodyScoringResult: スコアリング結果
    """
    signals, proportions_index, proportions_confidence = calculate_proportions(
        measurements, photo_quality, ratio_samples
    )
    posture = (
        calculate_posture(posture_measurements, photo_quality)
        if posture_measurements is not None
        else None
    )
    composition = calculate_composition(measurements, photo_quality)
    vertical_line = calculate_vertical_line(measurements, photo_quality)
    body_type = calculate_body_type_distribution(measurements.body_type_probabilities)

    table = select_body_weight_table(has_posture_data=posture is not None)
    raw_scores = {
        "proportions": proportions_index,
        "composition": composition.leanness_score / 10,
        "verticalLine": vertical_line.score,
    }
    confidences = {
        "proportions": proportions_confidence,
        "composition": photo_quality * 0.5,
        "verticalLine": photo_quality * 0.8,
    }
    if posture is not None:
        raw_scores["posture"] = posture.posture_index
        confidences["posture"] = posture.confidence

    pillars = build_pillars(table, raw_scores, confidences)
    raw = aggregate_raw(pillars)
    calibrated = calibrate(
        raw,
        aggregate_confidence(pillars),
        BODY_CALIBRATION,
        potential_gain=_potential_gain(posture, composition),
    )

    strongest = max(pillars, key=lambda p: p.raw_score).name
    overall = OverallScore(
        current_score10=calibrated.score10,
        potential_range=calibrated.potential_range,
        confidence=calibrated.confidence,
        summary=(
            f"Overall body score {calibrated.score10:.1f}/10 with "
            f"{confidence_label(calibrated.confidence)} confidence; strongest pillar: {strongest}."
        ),
        raw=round_to(raw, 3),
    )
    logger.debug(
        f"体スコア計算完了: table={table.name}, raw={raw:.3f}, "
        f"score10={overall.current_score10}, confidence={overall.confidence}"
    )
    return BodyScoringResult(
        photo_quality=photo_quality,
        proportion_signals=signals,
        proportions_index=proportions_index,
        posture=posture,
        composition=composition,
        vertical_line=vertical_line,
        body_type=body_type,
        pillars=pillars,
        overall=overall,
    )
