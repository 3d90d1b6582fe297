from dataclasses import dataclass, field
from typing import Literal

FaceViewType = Literal["face_front", "face_side"]
BodyViewType = Literal["body_front", "body_side", "body_back"]
ViewType = Literal["face_front", "face_side", "body_front", "body_side", "body_back"]
DetectedViewType = Literal[
    "face_front", "face_side", "body_front", "body_side", "body_back",
    "unknown", "rejected",
]

FACE_VIEWS: tuple[str, ...] = ("face_front", "face_side")
BODY_VIEWS: tuple[str, ...] = ("body_front", "body_side", "body_back")
VIEW_TYPES: tuple[str, ...] = FACE_VIEWS + BODY_VIEWS


def is_face_view(view: str) -> bool:
    return view in FACE_VIEWS


@dataclass(frozen=True)
class PoseEstimate:
    """外部の姿勢推定から得られる頭部の角度（度）"""
    yaw: float
    pitch: float
    roll: float
    confidence: float = 1.0


@dataclass(frozen=True)
class QualityMetrics:
    """写真品質の指標（resolution 以外は 0.0〜1.0）"""
    blur_score: float           # 1.0 が最も鮮明
    resolution: int             # 短辺のピクセル数
    brightness_score: float     # 0.0 が真っ暗、1.0 が白飛び
    filter_score: float         # 美肌フィルタの疑い


@dataclass(frozen=True)
class SubjectMetrics:
    """被写体の可視性・遮蔽の指標"""
    face_visible: bool
    full_body_visible: bool
    occlusion_score: float = 0.0
    occluded_areas: tuple[str, ...] = ()
    shoulder_rotation: float | None = None
    hip_rotation: float | None = None


@dataclass(frozen=True)
class ViewClassification:
    """ビュー分類結果"""
    view: DetectedViewType
    reason: str | None = None


@dataclass(frozen=True)
class QualityAssessment:
    """品質判定結果"""
    is_acceptable: bool
    quality_score: float
    issues: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class PhotoValidation:
    """1枚の写真に対する検証結果。返却後は変更しない"""
    is_valid: bool
    detected_view: DetectedViewType
    pose: PoseEstimate
    quality_score: float
    issues: tuple[str, ...] = field(default_factory=tuple)
    warnings: tuple[str, ...] = field(default_factory=tuple)
    rejection_reason: str | None = None
    error_type: str | None = None
