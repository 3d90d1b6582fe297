"""スコアリング設定

ビュー判定の角度しきい値、品質しきい値、信頼度ゲート、キャリブレーション定数、
比率の理想値、ピラーの重みテーブルを定義する。
いずれも起動時に一度だけ生成される読み取り専用の値で、実行中に変更しない。
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Final, Mapping

from app.domain.models.scoring import WeightTable

GOLDEN_RATIO: Final[float] = 1.618

RATIO_SIGMA_RANGE: Final[tuple[float, float]] = (0.045, 0.175)


@dataclass(frozen=True)
class FaceViewThresholds:
    front_max_yaw: float
    front_max_pitch: float
    front_max_roll: float
    side_min_yaw: float
    side_max_yaw: float

    def __post_init__(self) -> None:
        # 正面と横顔の窓は重ならない（間の角度は不感帯として却下する）
        if self.front_max_yaw >= self.side_min_yaw:
            raise ValueError("顔の正面しきい値と横顔しきい値が重なっています")


@dataclass(frozen=True)
class BodyViewThresholds:
    front_max_rotation: float
    side_min_rotation: float
    side_max_rotation: float

    def __post_init__(self) -> None:
        if self.front_max_rotation >= self.side_min_rotation:
            raise ValueError("体の正面しきい値と側面しきい値が重なっています")


@dataclass(frozen=True)
class ViewThresholds:
    face: FaceViewThresholds
    body: BodyViewThresholds
    min_pose_confidence: float


@dataclass(frozen=True)
class TwoTierThreshold:
    """ハード（issue）とソフト（warning）の2段階しきい値と減点係数"""
    hard: float
    soft: float
    hard_factor: float
    soft_factor: float


@dataclass(frozen=True)
class QualityThresholds:
    min_acceptable: float
    blur: TwoTierThreshold          # 値が小さいほど悪い
    resolution: TwoTierThreshold    # 値が小さいほど悪い
    dark: TwoTierThreshold          # 値が小さいほど悪い
    bright: TwoTierThreshold        # 値が大きいほど悪い
    filter: TwoTierThreshold        # 値が大きいほど悪い
    max_occlusion: float


@dataclass(frozen=True)
class ConfidenceThresholds:
    allow_extremes: float
    stability_min: float
    widen_range_below: float
    low_confidence_cap: float
    widen_delta_below: float
    widen_delta_above: float
    extremes_band: tuple[float, float]


@dataclass(frozen=True)
class CalibrationParams:
    """score10 = 10 * sigmoid(steepness * (raw - midpoint))"""
    steepness: float
    midpoint: float


@dataclass(frozen=True)
class RatioIdeal:
    label: str
    mid: float
    sigma: float
    band: tuple[float, float] | None = None

    def __post_init__(self) -> None:
        # この範囲外の sigma ではステータス段階とスコアの四分位が矛盾しうる
        if self.mid <= 0 or not (RATIO_SIGMA_RANGE[0] <= self.sigma <= RATIO_SIGMA_RANGE[1]):
            raise ValueError(f"比率理想値の設定が不正です: {self.label}")

    def resolved_band(self, tolerance: float = 0.10) -> tuple[float, float]:
        if self.band is not None:
            return self.band
        return (self.mid * (1 - tolerance), self.mid * (1 + tolerance))


VIEW_THRESHOLDS: Final[ViewThresholds] = ViewThresholds(
    face=FaceViewThresholds(
        front_max_yaw=12.0,
        front_max_pitch=10.0,
        front_max_roll=10.0,
        side_min_yaw=75.0,
        side_max_yaw=105.0,
    ),
    body=BodyViewThresholds(
        front_max_rotation=15.0,
        side_min_rotation=70.0,
        side_max_rotation=110.0,
    ),
    min_pose_confidence=0.30,
)

QUALITY_THRESHOLDS: Final[QualityThresholds] = QualityThresholds(
    min_acceptable=0.50,
    blur=TwoTierThreshold(hard=0.30, soft=0.50, hard_factor=0.5, soft_factor=0.8),
    resolution=TwoTierThreshold(hard=256, soft=384, hard_factor=0.4, soft_factor=0.85),
    dark=TwoTierThreshold(hard=0.15, soft=0.30, hard_factor=0.5, soft_factor=0.7),
    bright=TwoTierThreshold(hard=0.97, soft=0.90, hard_factor=0.5, soft_factor=0.7),
    filter=TwoTierThreshold(hard=0.70, soft=0.40, hard_factor=0.5, soft_factor=0.85),
    max_occlusion=0.30,
)

CONFIDENCE_THRESHOLDS: Final[ConfidenceThresholds] = ConfidenceThresholds(
    allow_extremes=0.70,
    stability_min=0.70,
    widen_range_below=0.60,
    low_confidence_cap=0.60,
    widen_delta_below=0.5,
    widen_delta_above=2.0,
    extremes_band=(2.0, 8.0),
)

FACE_CALIBRATION: Final[CalibrationParams] = CalibrationParams(steepness=7.5, midpoint=0.58)
BODY_CALIBRATION: Final[CalibrationParams] = CalibrationParams(steepness=7.0, midpoint=0.58)

FACE_RATIO_IDEALS: Final[Mapping[str, RatioIdeal]] = MappingProxyType({
    "faceWidthToLength": RatioIdeal("Face width to length", 1 / GOLDEN_RATIO, 0.08),
    "interEyeSpacing": RatioIdeal("Inter-eye spacing", 1.0, 0.08),
    "noseToEyeWidth": RatioIdeal("Nose width to eye width", 1 / GOLDEN_RATIO, 0.10),
    "mouthToNoseWidth": RatioIdeal("Mouth width to nose width", 1.5, 0.12),
    "eyeToFaceWidth": RatioIdeal("Eye width to face width", 0.46, 0.06),
    "jawToFaceWidth": RatioIdeal("Jaw width to face width", 1 / GOLDEN_RATIO, 0.10),
})

# 黄金比ハーモニーの各シグナルの重みと計測信頼度係数
HARMONY_SIGNAL_WEIGHTS: Final[Mapping[str, tuple[float, float]]] = MappingProxyType({
    "faceWidthToLength": (1.5, 0.90),
    "interEyeSpacing": (1.2, 0.95),
    "noseToEyeWidth": (1.0, 0.85),
    "mouthToNoseWidth": (1.0, 0.80),
    "eyeToFaceWidth": (1.0, 0.85),
    "jawToFaceWidth": (0.8, 0.75),  # 顎は計測が難しい
})

# presentation ごとの体の比率理想値
BODY_PROPORTION_IDEALS: Final[Mapping[str, Mapping[str, RatioIdeal]]] = MappingProxyType({
    "male": MappingProxyType({
        "shoulderToWaist": RatioIdeal("Shoulder to Waist", 1.45, 0.12, (1.3, 1.6)),
        "waistToHip": RatioIdeal("Waist to Hip", 0.90, 0.08, (0.8, 1.0)),
        "shoulderToHip": RatioIdeal("Shoulder to Hip", 1.30, 0.10, (1.2, 1.4)),
        "legToTorso": RatioIdeal("Leg to Torso", 1.0, 0.10, (0.9, 1.15)),
    }),
    "female": MappingProxyType({
        "shoulderToWaist": RatioIdeal("Shoulder to Waist", 1.25, 0.10, (1.15, 1.35)),
        "waistToHip": RatioIdeal("Waist to Hip", 0.75, 0.08, (0.65, 0.85)),
        "shoulderToHip": RatioIdeal("Shoulder to Hip", 1.0, 0.08, (0.9, 1.1)),
        "legToTorso": RatioIdeal("Leg to Torso", 1.0, 0.10, (0.9, 1.15)),
    }),
})

# 体の比率シグナルの重みと計測信頼度係数
PROPORTION_SIGNAL_WEIGHTS: Final[Mapping[str, tuple[float, float]]] = MappingProxyType({
    "shoulderToWaist": (1.2, 0.85),
    "waistToHip": (1.0, 0.80),
    "shoulderToHip": (1.0, 0.85),
    "legToTorso": (0.8, 0.90),
})

CLOTHING_FIT_CONFIDENCE: Final[Mapping[str, float]] = MappingProxyType({
    "tight": 0.95,
    "fitted": 0.85,
    "loose": 0.5,
    "unknown": 0.6,
})

# 姿勢の重症度しきい値（度）: none < t0 <= mild < t1 <= moderate < t2 <= significant
POSTURE_SEVERITY_THRESHOLDS: Final[Mapping[str, tuple[float, float, float]]] = MappingProxyType({
    "forwardHead": (5.0, 10.0, 15.0),
    "roundedShoulders": (8.0, 15.0, 25.0),
    "pelvicTilt": (5.0, 10.0, 15.0),
    "ribFlare": (10.0, 20.0, 30.0),
})

POSTURE_SEVERITY_SCORES: Final[Mapping[str, float]] = MappingProxyType({
    "none": 1.0,
    "mild": 0.75,
    "moderate": 0.5,
    "significant": 0.25,
})

VERTICAL_LINE_SCORES: Final[Mapping[str, float]] = MappingProxyType({
    "short": 0.55,
    "medium": 0.75,
    "long": 0.90,
})

FACE_PILLAR_WEIGHTS: Final[WeightTable] = WeightTable(
    name="face",
    weights={
        "harmony": 0.42,
        "symmetry": 0.18,
        "thirds": 0.15,
        "features": 0.15,
        "presentation": 0.10,
    },
)

BODY_PILLAR_WEIGHTS_WITH_POSTURE: Final[WeightTable] = WeightTable(
    name="body_with_posture",
    weights={
        "proportions": 0.40,
        "posture": 0.25,
        "composition": 0.25,
        "verticalLine": 0.10,
    },
)

BODY_PILLAR_WEIGHTS_NO_POSTURE: Final[WeightTable] = WeightTable(
    name="body_no_posture",
    weights={
        "proportions": 0.50,
        "composition": 0.30,
        "verticalLine": 0.20,
    },
)

BODY_TYPES: Final[tuple[str, ...]] = (
    "Dramatic",
    "Soft Dramatic",
    "Romantic",
    "Theatrical Romantic",
    "Natural",
    "Soft Natural",
    "Flamboyant Natural",
    "Classic",
    "Soft Classic",
    "Dramatic Classic",
    "Gamine",
    "Soft Gamine",
    "Flamboyant Gamine",
)

# 主タイプを確定するのに必要な最大確率
BODY_TYPE_PRIMARY_MIN_PROBABILITY: Final[float] = 0.60

# 比率サンプルの IQR を安定度に変換する際の想定レンジ（理想値に対する割合）
STABILITY_EXPECTED_RANGE_RATIO: Final[float] = 0.10
