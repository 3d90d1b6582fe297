import math
from typing import Mapping

from app.domain.constants.scoring_config import (
    BODY_PILLAR_WEIGHTS_NO_POSTURE,
    BODY_PILLAR_WEIGHTS_WITH_POSTURE,
)
from app.domain.models.scoring import PillarScore, WeightTable
from app.domain.utils.scoring_math import round_to

PILLAR_NAMES: Mapping[str, str] = {
    "harmony": "Golden Ratio Harmony",
    "symmetry": "Symmetry",
    "thirds": "Thirds Balance",
    "features": "Feature Geometry",
    "presentation": "Presentation",
    "proportions": "Proportions",
    "posture": "Posture",
    "composition": "Composition",
    "verticalLine": "Vertical Line",
}


def select_body_weight_table(has_posture_data: bool) -> WeightTable:
    """姿勢データ（側面写真由来）の有無で体の重みテーブルを選択する"""
    if has_posture_data:
        return BODY_PILLAR_WEIGHTS_WITH_POSTURE
    return BODY_PILLAR_WEIGHTS_NO_POSTURE


def build_pillars(
    table: WeightTable,
    raw_scores: Mapping[str, float],
    confidences: Mapping[str, float],
) -> tuple[PillarScore, ...]:
    """
    重みテーブルに従ってピラーを組み立てる。

    Args:
        table (WeightTable): 使用する重みテーブル
        raw_scores (Mapping[str, float]): ピラーごとの 0.0〜1.0 のスコア
        confidences (Mapping[str, float]): ピラーごとの信頼度

    Returns:
        tuple[PillarScore, ...]: テーブルの順序で並んだピラー
    """
    missing = [key for key in table.keys if key not in raw_scores]
    if missing:
        raise KeyError(f"ピラーのスコアが不足しています: {missing}")

    pillars: list[PillarScore] = []
    for key in table.keys:
        weight = table.weight(key)
        raw = raw_scores[key]
        confidence = confidences.get(key, 0.0)
        pillars.append(
            PillarScore(
                key=key,
                name=PILLAR_NAMES.get(key, key),
                raw_score=round_to(raw, 3),
                weight=weight,
                confidence=round_to(confidence, 2),
                contribution=round_to(raw * weight * confidence, 4),
            )
        )
    return tuple(pillars)


def aggregate_raw(pillars: tuple[PillarScore, ...]) -> float:
    """raw = Σ(pillarScore × weight)"""
    return math.fsum(p.raw_score * p.weight for p in pillars)


def aggregate_confidence(pillars: tuple[PillarScore, ...]) -> float:
    """ピラー信頼度の重み付き平均"""
    return math.fsum(p.confidence * p.weight for p in pillars)
