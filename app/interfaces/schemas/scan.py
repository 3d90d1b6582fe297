from typing import Optional

from pydantic import BaseModel, Field


class PoseSchema(BaseModel):
    yaw: float = Field(..., description="左右の回転角（度）")
    pitch: float = Field(..., description="上下の回転角（度）")
    roll: float = Field(..., description="傾き（度）")
    confidence: float = Field(..., description="推定の信頼度", ge=0.0, le=1.0)


class PhotoValidationResponse(BaseModel):
    """写真検証結果"""
    is_valid: bool = Field(..., description="採点に使えるか")
    expected_view: str = Field(..., description="期待するビュー")
    detected_view: str = Field(
        ..., description="検出されたビュー（unknown / rejected を含む）")
    pose: PoseSchema
    quality_score: float = Field(
        ..., description="品質スコア（0.0〜1.0）", ge=0.0, le=1.0)
    issues: list[str] = Field(
        default_factory=list, description="採点不可となる問題")
    warnings: list[str] = Field(
        default_factory=list, description="採点可能だが注意が必要な点")
    rejection_reason: Optional[str] = Field(None, description="却下理由")
    error_type: Optional[str] = Field(None, description="却下の種別")


class RatioSignalSchema(BaseModel):
    key: str
    label: str
    value: float
    ideal_mid: float
    band: tuple[float, float]
    status: str = Field(..., description="face: good/ok/off, body: ideal/good/moderate/off")
    score: float = Field(..., ge=0.0, le=1.0)
    confidence: float = Field(..., ge=0.0, le=1.0)


class FeatureScoreSchema(BaseModel):
    score10: float = Field(..., ge=0.0, le=10.0)
    confidence: float = Field(..., ge=0.0, le=1.0)


class PillarScoreSchema(BaseModel):
    key: str
    name: str
    raw_score: float
    weight: float
    confidence: float
    contribution: float


class PotentialRangeSchema(BaseModel):
    min: float = Field(..., ge=0.0, le=10.0)
    max: float = Field(..., ge=0.0, le=10.0)


class OverallScoreSchema(BaseModel):
    current_score10: float = Field(..., ge=0.0, le=10.0)
    potential_range: PotentialRangeSchema
    confidence: float = Field(..., ge=0.0, le=1.0)
    summary: str
    raw: float


class ScanMetaSchema(BaseModel):
    """決定性・キャッシュに関する情報"""
    content_hash: str = Field(..., description="正面写真の内容ハッシュ")
    options_hash: str = Field(..., description="正規化オプションのハッシュ")
    schema_version: str = Field(..., description="レスポンス形式のバージョン")
    seed: int = Field(..., description="決定的シード")
    cached: bool = Field(False, description="キャッシュから返却したか")


class FaceScanResponse(BaseModel):
    """顔スキャン結果"""
    photo_quality: float
    harmony_index: float
    ratio_signals: list[RatioSignalSchema]
    symmetry_index: float
    thirds_index: float
    thirds_notes: str
    feature_scores: dict[str, FeatureScoreSchema]
    pillars: list[PillarScoreSchema]
    overall: OverallScoreSchema
    front_validation: PhotoValidationResponse
    side_validation: Optional[PhotoValidationResponse] = None
    meta: ScanMetaSchema


class PostureSignalSchema(BaseModel):
    key: str
    label: str
    severity: str = Field(..., description="none / mild / moderate / significant")
    confidence: float


class PostureSchema(BaseModel):
    signals: list[PostureSignalSchema]
    posture_index: float
    confidence: float


class CompositionSchema(BaseModel):
    leanness_min: float
    leanness_max: float
    leanness_score: float
    sharpness: str
    confidence: float


class VerticalLineSchema(BaseModel):
    line: str = Field(..., description="short / medium / long")
    score: float
    confidence: float


class BodyTypeProbabilitySchema(BaseModel):
    type: str
    probability: float = Field(..., ge=0.0, le=1.0)


class BodyTypeSchema(BaseModel):
    probabilities: list[BodyTypeProbabilitySchema]
    primary_type: Optional[str] = Field(
        None, description="最大確率が 0.6 以上の場合のみ設定")


class BodyScanResponse(BaseModel):
    """体スキャン結果"""
    photo_quality: float
    proportion_signals: list[RatioSignalSchema]
    proportions_index: float
    posture: Optional[PostureSchema] = Field(
        None, description="側面写真がある場合のみ")
    composition: CompositionSchema
    vertical_line: VerticalLineSchema
    body_type: BodyTypeSchema
    pillars: list[PillarScoreSchema]
    overall: OverallScoreSchema
    front_validation: PhotoValidationResponse
    side_validation: Optional[PhotoValidationResponse] = None
    meta: ScanMetaSchema


class CacheKeyResponse(BaseModel):
    content_hash: str
    options_hash: str
    schema_version: str
    seed: int
    cached: bool = Field(..., description="同じキーの結果が保存済みか")


class CacheStatsResponse(BaseModel):
    entries: int
    schema_version: str
    in_flight: int


class CacheClearResponse(BaseModel):
    removed: int
