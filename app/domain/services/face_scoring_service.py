"""顔スコアリングサービス

ランドマーク間距離から黄金比ハーモニー・対称性・三分割・パーツ・見せ方の5ピラーを計算し、
重み付き集計 → キャリブレーション → 信頼度ゲートの順で総合スコアを求める。
"""

from dataclasses import dataclass
from typing import Mapping

from loguru import logger

from app.domain.constants.scoring_config import (
    FACE_CALIBRATION,
    FACE_PILLAR_WEIGHTS,
    FACE_RATIO_IDEALS,
    HARMONY_SIGNAL_WEIGHTS,
)
from app.domain.models.measurement import FaceLandmarkPayload
from app.domain.models.scoring import (
    FaceScoringResult,
    FeatureScore,
    OverallScore,
    RatioSignal,
)
from app.domain.services.calibration_service import calibrate, confidence_label
from app.domain.services.pillar_aggregation_service import (
    aggregate_confidence,
    aggregate_raw,
    build_pillars,
)
from app.domain.services.ratio_scoring_service import build_ratio_signal, safe_ratio
from app.domain.utils.scoring_math import (
    ratio_score,
    round_to,
    symmetry_score,
    thirds_balance_score,
)

MAX_RATIO_SIGNALS = 6
SYMMETRY_TOLERANCE = 0.08
# 写真からの見せ方（肌・髪）の伸びしろ上限
MAX_POTENTIAL_GAIN = 1.5
MAX_POTENTIAL_SCORE = 9.5

GEOMETRY_FEATURES: tuple[str, ...] = ("eyes", "brows", "nose", "lips", "jawChin")
PRESENTATION_FEATURES: tuple[str, ...] = ("skin", "hair")

# ピラーごとの計測信頼度係数（写真品質に掛ける）
PILLAR_CONFIDENCE_FACTORS: Mapping[str, float] = {
    "harmony": 0.9,
    "symmetry": 0.85,
    "thirds": 0.8,
    "features": 0.75,
    "presentation": 0.5,
}


@dataclass(frozen=True)
class HarmonyResult:
    harmony_index: float
    ratio_signals: tuple[RatioSignal, ...]
    confidence: float


def _harmony_ratios(landmarks: FaceLandmarkPayload) -> dict[str, float]:
    avg_eye_width = (landmarks.left_eye_width + landmarks.right_eye_width) / 2
    return {
        "faceWidthToLength": safe_ratio(landmarks.face_width, landmarks.face_height),
        "interEyeSpacing": safe_ratio(landmarks.inter_eye_distance, avg_eye_width),
        "noseToEyeWidth": safe_ratio(landmarks.nose_width, avg_eye_width),
        "mouthToNoseWidth": safe_ratio(landmarks.mouth_width, landmarks.nose_width),
        "eyeToFaceWidth": safe_ratio(avg_eye_width, landmarks.face_width),
        "jawToFaceWidth": safe_ratio(landmarks.jaw_width, landmarks.face_width),
    }


def calculate_harmony(
    landmarks: FaceLandmarkPayload,
    photo_quality: float,
    ratio_samples: Mapping[str, list[float]] | None = None,
) -> HarmonyResult:
    """黄金比ハーモニー（主ピラー）を計算する"""
    ratio_samples = ratio_samples or {}
    signals: list[RatioSignal] = []
    total_score = 0.0
    total_weight = 0.0

    for key, value in _harmony_ratios(landmarks).items():
        signal_weight, confidence_factor = HARMONY_SIGNAL_WEIGHTS[key]
        signal = build_ratio_signal(
            key=key,
            value=value,
            ideal=FACE_RATIO_IDEALS[key],
            confidence=photo_quality * confidence_factor,
            domain="face",
            samples=ratio_samples.get(key),
        )
        signals.append(signal)
        total_score += signal.score * signal_weight
        total_weight += signal_weight

    harmony_index = total_score / total_weight if total_weight > 0 else 0.0
    avg_confidence = sum(s.confidence for s in signals) / len(signals)
    return HarmonyResult(
        harmony_index=round_to(harmony_index, 3),
        ratio_signals=tuple(signals[:MAX_RATIO_SIGNALS]),
        confidence=round_to(avg_confidence, 2),
    )


def calculate_symmetry(landmarks: FaceLandmarkPayload) -> float:
    left = [
        landmarks.left_face_width,
        landmarks.left_cheek_height,
        landmarks.left_brow_height,
        landmarks.left_eye_width,
    ]
    right = [
        landmarks.right_face_width,
        landmarks.right_cheek_height,
        landmarks.right_brow_height,
        landmarks.right_eye_width,
    ]
    return round_to(symmetry_score(left, right, SYMMETRY_TOLERANCE), 3)


def calculate_thirds(landmarks: FaceLandmarkPayload) -> tuple[float, str]:
    """顔の三分割バランスとその所見を返す"""
    upper = landmarks.hairline_to_eyebrow
    middle = landmarks.eyebrow_to_nose
    lower = landmarks.nose_to_chin
    total = upper + middle + lower
    if total <= 0:
        return 0.5, "Unable to measure facial thirds"

    ideal = 1 / 3
    notes: list[str] = []
    for ratio, short_note, long_note in (
        (upper / total, "Shorter forehead", "Longer forehead"),
        (middle / total, "Shorter midface", "Longer midface"),
        (lower / total, "Shorter lower face", "Longer lower face"),
    ):
        if ratio < ideal - 0.05:
            notes.append(short_note)
        elif ratio > ideal + 0.05:
            notes.append(long_note)

    note_text = ", ".join(notes) if notes else "Well-balanced facial proportions"
    return round_to(thirds_balance_score(upper, middle, lower), 3), note_text


def calculate_feature_scores(
    landmarks: FaceLandmarkPayload,
    photo_quality: float,
) -> dict[str, FeatureScore]:
    """パーツごとのスコア（0〜10）と信頼度"""
    avg_eye_width = (landmarks.left_eye_width + landmarks.right_eye_width) / 2
    eyes = min(
        ratio_score(safe_ratio(landmarks.left_eye_width, landmarks.right_eye_width), 1.0, 0.05),
        ratio_score(safe_ratio(avg_eye_width, landmarks.face_width), 0.23, 0.04),
    )
    brows = min(
        ratio_score(safe_ratio(landmarks.left_brow_height, landmarks.right_brow_height), 1.0, 0.08),
        0.85,
    )
    nose = ratio_score(safe_ratio(landmarks.nose_width, landmarks.face_width), 0.25, 0.04)
    lips = ratio_score(safe_ratio(landmarks.mouth_width, landmarks.face_width), 0.38, 0.06)
    # 2D 写真からは頬骨を測りにくいため控えめな既定値
    cheekbones = 0.7
    jaw_chin = ratio_score(safe_ratio(landmarks.jaw_width, landmarks.face_width), 0.618, 0.08)
    skin = landmarks.skin_score if landmarks.skin_score is not None else 0.6
    hair = landmarks.hair_score if landmarks.hair_score is not None else 0.6

    raw_features = {
        "eyes": (eyes, 0.9),
        "brows": (brows, 0.85),
        "nose": (nose, 0.8),
        "lips": (lips, 0.75),
        "cheekbones": (cheekbones, 0.5),
        "jawChin": (jaw_chin, 0.7),
        "skin": (skin, 0.5),
        "hair": (hair, 0.4),
    }
    return {
        key: FeatureScore(
            score10=round_to(score * 10, 1),
            confidence=round_to(photo_quality * factor, 2),
        )
        for key, (score, factor) in raw_features.items()
    }


def _potential_gain(feature_scores: Mapping[str, FeatureScore]) -> float:
    """改善可能な要素（肌・髪）から伸びしろを見積もる"""
    skin_room = max(0.0, (10 - feature_scores["skin"].score10) * 0.15)
    hair_room = max(0.0, (10 - feature_scores["hair"].score10) * 0.1)
    return min(skin_room + hair_room, MAX_POTENTIAL_GAIN)


def _summary(score10: float, confidence: float, strongest: str) -> str:
    return (
        f"Overall face score {score10:.1f}/10 with {confidence_label(confidence)} "
        f"confidence; strongest pillar: {strongest}."
    )


def score_face(
    landmarks: FaceLandmarkPayload,
    photo_quality: float,
    ratio_samples: Mapping[str, list[float]] | None = None,
) -> FaceScoringResult:
    """
    顔の総合スコアを計算する。

    Args:
        landmarks (FaceLandmarkPayload): ランドマーク間距離
        photo_quality (float): 検証済み写真の品質スコア（0.0〜1.0）
        ratio_samples (Mapping[str, list[float]] | None): 比率の繰り返し計測値

    Returns:
        FaceScoringResult: スコアリング結果
    """
    harmony = calculate_harmony(landmarks, photo_quality, ratio_samples)
    symmetry_index = calculate_symmetry(landmarks)
    thirds_index, thirds_notes = calculate_thirds(landmarks)
    feature_scores = calculate_feature_scores(landmarks, photo_quality)

    features_avg = sum(feature_scores[k].score10 for k in GEOMETRY_FEATURES) / 10 / len(GEOMETRY_FEATURES)
    presentation_avg = (
        sum(feature_scores[k].score10 for k in PRESENTATION_FEATURES) / 10 / len(PRESENTATION_FEATURES)
    )

    raw_scores = {
        "harmony": harmony.harmony_index,
        "symmetry": symmetry_index,
        "thirds": thirds_index,
        "features": features_avg,
        "presentation": presentation_avg,
    }
    confidences = {
        key: photo_quality * factor for key, factor in PILLAR_CONFIDENCE_FACTORS.items()
    }
    pillars = build_pillars(FACE_PILLAR_WEIGHTS, raw_scores, confidences)
    raw = aggregate_raw(pillars)
    calibrated = calibrate(
        raw,
        aggregate_confidence(pillars),
        FACE_CALIBRATION,
        potential_gain=_potential_gain(feature_scores),
        max_potential=MAX_POTENTIAL_SCORE,
    )

    strongest = max(pillars, key=lambda p: p.raw_score).name
    overall = OverallScore(
        current_score10=calibrated.score10,
        potential_range=calibrated.potential_range,
        confidence=calibrated.confidence,
        summary=_summary(calibrated.score10, calibrated.confidence, strongest),
        raw=round_to(raw, 3),
    )
    logger.debug(
        f"顔スコア計算完了: raw={raw:.3f}, score10={overall.current_score10}, "
        f"confidence={overall.confidence}"
    )
    return FaceScoringResult(
        photo_quality=photo_quality,
        harmony_index=harmony.harmony_index,
        ratio_signals=harmony.ratio_signals,
        symmetry_index=symmetry_index,
        thirds_index=thirds_index,
        thirds_notes=thirds_notes,
        feature_scores=feature_scores,
        pillars=pillars,
        overall=overall,
    )
