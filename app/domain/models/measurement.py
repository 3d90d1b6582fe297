"""外部の計測プロバイダから受け取るペイロード

プロバイダの JSON は境界でドメインごとのタグ付き型（face / body）にパースし、
不正な形は黙って補完せずに ValidationError として扱う。
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from app.domain.models.photo import PoseEstimate, QualityMetrics, SubjectMetrics


class PosePayload(BaseModel):
    yaw: float = Field(..., description="左右の回転角（度）")
    pitch: float = Field(..., description="上下の回転角（度）")
    roll: float = Field(..., description="傾き（度）")
    confidence: float = Field(1.0, description="推定の信頼度", ge=0.0, le=1.0)


class QualityPayload(BaseModel):
    blur: float = Field(..., description="鮮明度（1.0 が最も鮮明）", ge=0.0, le=1.0)
    brightness: float = Field(..., description="明るさ", ge=0.0, le=1.0)
    filter_suspected: float = Field(..., description="フィルタ使用の疑い", ge=0.0, le=1.0)


class SubjectPayload(BaseModel):
    face_visible: bool
    full_body_visible: bool
    occlusion_score: float = Field(0.0, ge=0.0, le=1.0)
    occluded_areas: list[str] = Field(default_factory=list)
    shoulder_rotation: float | None = Field(None, description="肩の回転角（度）")
    hip_rotation: float | None = Field(None, description="腰の回転角（度）")


class FaceLandmarkPayload(BaseModel):
    """顔のランドマーク間距離（単位は任意だが同一画像内で一貫していること）"""
    face_width: float = Field(..., gt=0)
    face_height: float = Field(..., gt=0)
    hairline_to_eyebrow: float = Field(..., ge=0)
    eyebrow_to_nose: float = Field(..., ge=0)
    nose_to_chin: float = Field(..., ge=0)
    left_eye_width: float = Field(..., gt=0)
    right_eye_width: float = Field(..., gt=0)
    inter_eye_distance: float = Field(..., gt=0)
    nose_width: float = Field(..., gt=0)
    mouth_width: float = Field(..., gt=0)
    jaw_width: float = Field(..., gt=0)
    chin_width: float = Field(..., gt=0)
    left_face_width: float = Field(..., gt=0)
    right_face_width: float = Field(..., gt=0)
    left_cheek_height: float = Field(..., gt=0)
    right_cheek_height: float = Field(..., gt=0)
    left_brow_height: float = Field(..., gt=0)
    right_brow_height: float = Field(..., gt=0)
    skin_score: float | None = Field(None, ge=0.0, le=1.0)
    hair_score: float | None = Field(None, ge=0.0, le=1.0)


class BodyMeasurementPayload(BaseModel):
    shoulder_width: float = Field(..., gt=0)
    waist_width: float = Field(..., gt=0)
    hip_width: float = Field(..., gt=0)
    total_height: float = Field(..., gt=0)
    torso_height: float = Field(..., gt=0)
    leg_height: float = Field(..., gt=0)
    head_forward_angle: float | None = None
    shoulder_angle: float | None = None
    pelvic_tilt_angle: float | None = None
    rib_flare_angle: float | None = None
    presentation: Literal["male-presenting", "female-presenting", "ambiguous"] = "ambiguous"
    presentation_confidence: float = Field(0.5, ge=0.0, le=1.0)
    clothing_fit: Literal["tight", "fitted", "loose", "unknown"] = "unknown"
    leanness_estimate: float = Field(0.5, ge=0.0, le=1.0)
    body_type_probabilities: dict[str, float] = Field(default_factory=dict)


class _MeasurementBase(BaseModel):
    pose: PosePayload
    quality: QualityPayload
    subject: SubjectPayload
    ratio_samples: dict[str, list[float]] = Field(
        default_factory=dict, description="ジッター下での比率の繰り返し計測値")

    def to_pose(self) -> PoseEstimate:
        return PoseEstimate(
            yaw=self.pose.yaw,
            pitch=self.pose.pitch,
            roll=self.pose.roll,
            confidence=self.pose.confidence,
        )

    def to_quality_metrics(self, resolution: int) -> QualityMetrics:
        return QualityMetrics(
            blur_score=self.quality.blur,
            resolution=resolution,
            brightness_score=self.quality.brightness,
            filter_score=self.quality.filter_suspected,
        )

    def to_subject_metrics(self) -> SubjectMetrics:
        return SubjectMetrics(
            face_visible=self.subject.face_visible,
            full_body_visible=self.subject.full_body_visible,
            occlusion_score=self.subject.occlusion_score,
            occluded_areas=tuple(self.subject.occluded_areas),
            shoulder_rotation=self.subject.shoulder_rotation,
            hip_rotation=self.subject.hip_rotation,
        )


class FaceMeasurement(_MeasurementBase):
    domain: Literal["face"]
    landmarks: FaceLandmarkPayload | None = None


class BodyMeasurement(_MeasurementBase):
    domain: Literal["body"]
    measurements: BodyMeasurementPayload | None = None


Measurement = Annotated[
    Union[FaceMeasurement, BodyMeasurement],
    Field(discriminator="domain"),
]

MEASUREMENT_ADAPTER: TypeAdapter[FaceMeasurement | BodyMeasurement] = TypeAdapter(Measurement)
