import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, Mapping

# 重みテーブルの合計値として許容する誤差
WEIGHT_SUM_EPSILON: float = 1e-9

PostureSeverity = Literal["none", "mild", "moderate", "significant"]
Sharpness = Literal["softer", "balanced", "sharper"]
VerticalLine = Literal["short", "medium", "long"]


class MalformedWeightTableError(ValueError):
    """重みテーブルの合計が 1.0 にならない等、設定が不正な場合の例外"""

    def __init__(self, table_name: str, total: float):
        self.table_name = table_name
        self.total = total
        super().__init__(
            f"重みテーブル '{table_name}' の合計が 1.0 ではありません: {total!r}"
        )


@dataclass(frozen=True)
class WeightTable:
    """
    ピラーの重みテーブル。

    生成時に合計が 1.0（誤差 WEIGHT_SUM_EPSILON 以内）であることを検証し、
    以降は読み取り専用として扱う。
    """
    name: str
    weights: Mapping[str, float]

    def __post_init__(self) -> None:
        weights = dict(self.weights)
        if not weights or any(w < 0 for w in weights.values()):
            raise MalformedWeightTableError(self.name, math.fsum(weights.values()))
        total = math.fsum(weights.values())
        if abs(total - 1.0) > WEIGHT_SUM_EPSILON:
            raise MalformedWeightTableError(self.name, total)
        object.__setattr__(self, "weights", MappingProxyType(weights))

    def weight(self, pillar_key: str) -> float:
        return self.weights.get(pillar_key, 0.0)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self.weights.keys())


@dataclass(frozen=True)
class RatioSignal:
    """1つの計測比率とその評価"""
    key: str
    label: str
    value: float
    ideal_mid: float
    band: tuple[float, float]
    status: str
    score: float
    confidence: float


@dataclass(frozen=True)
class FeatureScore:
    score10: float
    confidence: float


@dataclass(frozen=True)
class PillarScore:
    """重み付き合成スコアの1要素"""
    key: str
    name: str
    raw_score: float
    weight: float
    confidence: float
    contribution: float


@dataclass(frozen=True)
class PotentialRange:
    min: float
    max: float


@dataclass(frozen=True)
class CalibratedScore:
    """キャリブレーションと信頼度ゲート適用後のスコア"""
    score10: float
    potential_range: PotentialRange
    confidence: float
    extremes_clamped: bool = False
    range_widened: bool = False


@dataclass(frozen=True)
class OverallScore:
    current_score10: float
    potential_range: PotentialRange
    confidence: float
    summary: str
    raw: float


@dataclass(frozen=True)
class FaceScoringResult:
    """顔スコアリング結果"""
    photo_quality: float
    harmony_index: float
    ratio_signals: tuple[RatioSignal, ...]
    symmetry_index: float
    thirds_index: float
    thirds_notes: str
    feature_scores: Mapping[str, FeatureScore]
    pillars: tuple[PillarScore, ...]
    overall: OverallScore


@dataclass(frozen=True)
class PostureSignal:
    key: str
    label: str
    severity: PostureSeverity
    confidence: float


@dataclass(frozen=True)
class PostureAssessment:
    signals: tuple[PostureSignal, ...]
    posture_index: float
    confidence: float


@dataclass(frozen=True)
class CompositionAssessment:
    """体組成の見え方（体脂肪率は出さずにレンジで表す）"""
    leanness_min: float
    leanness_max: float
    leanness_score: float
    sharpness: Sharpness
    confidence: float


@dataclass(frozen=True)
class VerticalLineAssessment:
    line: VerticalLine
    score: float
    confidence: float


@dataclass(frozen=True)
class BodyTypeProbability:
    type: str
    probability: float


@dataclass(frozen=True)
class BodyTypeDistribution:
    probabilities: tuple[BodyTypeProbability, ...] = field(default_factory=tuple)
    primary_type: str | None = None


@dataclass(frozen=True)
class BodyScoringResult:
    """体スコアリング結果"""
    photo_quality: float
    proportion_signals: tuple[RatioSignal, ...]
    proportions_index: float
    posture: PostureAssessment | None
    composition: CompositionAssessment
    vertical_line: VerticalLineAssessment
    body_type: BodyTypeDistribution
    pillars: tuple[PillarScore, ...]
    overall: OverallScore
