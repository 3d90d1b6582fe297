"""写真の品質・ビュー判定サービス

外部の姿勢推定・品質計測の結果から、写真が期待するビュー（正面・横顔・全身側面など）として
採点に使えるかを判定する。判定は下記の状態遷移を持つ純粋関数のパイプラインで行う。

    START → QUALITY_CHECKED → OCCLUSION_CHECKED → VIEW_CLASSIFIED → MISMATCH_CHECKED → DONE
"""

import dataclasses
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from app.domain.constants import rejection_messages as messages
from app.domain.constants.scoring_config import (
    QUALITY_THRESHOLDS,
    VIEW_THRESHOLDS,
    BodyViewThresholds,
    FaceViewThresholds,
    QualityThresholds,
    ViewThresholds,
)
from app.domain.models.photo import (
    VIEW_TYPES,
    DetectedViewType,
    PhotoValidation,
    PoseEstimate,
    QualityAssessment,
    QualityMetrics,
    SubjectMetrics,
    ViewClassification,
    is_face_view,
)
from app.domain.utils.scoring_math import clamp, round_to


class ValidationStage(str, Enum):
    START = "start"
    QUALITY_CHECKED = "quality_checked"
    OCCLUSION_CHECKED = "occlusion_checked"
    VIEW_CLASSIFIED = "view_classified"
    MISMATCH_CHECKED = "mismatch_checked"
    DONE = "done"


@dataclass(frozen=True)
class ValidationContext:
    """検証パイプラインを流れる不変の中間状態"""
    expected_view: str
    pose: PoseEstimate
    quality_metrics: QualityMetrics
    subject_metrics: SubjectMetrics
    view_thresholds: ViewThresholds
    quality_thresholds: QualityThresholds
    stage: ValidationStage = ValidationStage.START
    quality: QualityAssessment | None = None
    issues: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    detected_view: DetectedViewType = "unknown"
    rejection_reason: str | None = None
    error_type: str | None = None
    is_valid: bool = False


def classify_face_view(
    pose: PoseEstimate,
    thresholds: FaceViewThresholds = VIEW_THRESHOLDS.face,
) -> ViewClassification:
    """
    顔の姿勢角度からビューを分類する。

    正面と横顔の間の角度（不感帯）は最も近いビューに寄せず、3/4 アングルとして却下する。

    Args:
        pose (PoseEstimate): 姿勢角度
        thresholds (FaceViewThresholds): 角度しきい値

    Returns:
        ViewClassification: face_front / face_side / rejected
    """
    abs_yaw = abs(pose.yaw)
    abs_pitch = abs(pose.pitch)
    abs_roll = abs(pose.roll)

    if (
        abs_yaw <= thresholds.front_max_yaw
        and abs_pitch <= thresholds.front_max_pitch
        and abs_roll <= thresholds.front_max_roll
    ):
        return ViewClassification(view="face_front")

    if thresholds.side_min_yaw <= abs_yaw <= thresholds.side_max_yaw:
        return ViewClassification(view="face_side")

    if thresholds.front_max_yaw < abs_yaw < thresholds.side_min_yaw:
        return ViewClassification(view="rejected", reason=messages.FACE_THREE_QUARTER)

    return ViewClassification(view="rejected", reason=messages.FACE_POSE_INVALID)


def classify_body_view(
    shoulder_rotation: float,
    hip_rotation: float,
    face_visible: bool,
    thresholds: BodyViewThresholds = VIEW_THRESHOLDS.body,
) -> ViewClassification:
    """
    肩と腰の回転角度から体のビューを分類する。

    側面と背面は回転角ではなく顔が見えるかどうかだけで区別する簡易判定。

    Args:
        shoulder_rotation (float): 肩の回転角（度）
        hip_rotation (float): 腰の回転角（度）
        face_visible (bool): 顔が写っているか
        thresholds (BodyViewThresholds): 角度しきい値

    Returns:
        ViewClassification: body_front / body_side / body_back / rejected
    """
    avg_rotation = (abs(shoulder_rotation) + abs(hip_rotation)) / 2

    if avg_rotation <= thresholds.front_max_rotation and face_visible:
        return ViewClassification(view="body_front")

    if thresholds.side_min_rotation <= avg_rotation <= thresholds.side_max_rotation:
        if face_visible:
            return ViewClassification(view="body_side")
        return ViewClassification(view="body_back")

    if avg_rotation > thresholds.side_max_rotation and not face_visible:
        return ViewClassification(view="body_back")

    return ViewClassification(view="rejected", reason=messages.BODY_POSE_INVALID)


def validate_photo_quality(
    blur_score: float,
    resolution: int,
    brightness_score: float,
    filter_score: float,
    thresholds: QualityThresholds = QUALITY_THRESHOLDS,
) -> QualityAssessment:
    """
    写真品質を判定する。

    品質スコアは 1.0 から各指標の減点係数を掛けて求める。各指標はハード（issue, 採点不可）と
    ソフト（warning, 採点可能だが注意）の2段階で評価する。

    Args:
        blur_score (float): 鮮明度（1.0 が最も鮮明）
        resolution (int): 短辺のピクセル数
        brightness_score (float): 明るさ（0.0〜1.0）
        filter_score (float): フィルタ使用の疑い（0.0〜1.0）
        thresholds (QualityThresholds): 品質しきい値

    Returns:
        QualityAssessment: 判定結果
    """
    issues: list[str] = []
    warnings: list[str] = []
    quality_score = 1.0

    if blur_score < thresholds.blur.hard:
        issues.append(messages.TOO_BLURRY)
        quality_score *= thresholds.blur.hard_factor
    elif blur_score < thresholds.blur.soft:
        warnings.append("Image is slightly blurry; results may be less precise.")
        quality_score *= thresholds.blur.soft_factor

    if resolution < thresholds.resolution.hard:
        issues.append(messages.RESOLUTION_LOW)
        quality_score *= thresholds.resolution.hard_factor
    elif resolution < thresholds.resolution.soft:
        warnings.append("Image resolution is lower than recommended.")
        quality_score *= thresholds.resolution.soft_factor

    too_dark = brightness_score < thresholds.dark.hard
    too_bright = brightness_score > thresholds.bright.hard
    if too_dark or too_bright:
        issues.append(messages.POOR_LIGHTING)
        quality_score *= (thresholds.dark if too_dark else thresholds.bright).hard_factor
    elif brightness_score < thresholds.dark.soft or brightness_score > thresholds.bright.soft:
        warnings.append(messages.POOR_LIGHTING)
        tier = thresholds.dark if brightness_score < thresholds.dark.soft else thresholds.bright
        quality_score *= tier.soft_factor

    if filter_score > thresholds.filter.hard:
        issues.append(messages.FILTER_SUSPECTED)
        quality_score *= thresholds.filter.hard_factor
    elif filter_score > thresholds.filter.soft:
        warnings.append("Possible filter detected; results may be less accurate.")
        quality_score *= thresholds.filter.soft_factor

    quality_score = round_to(clamp(quality_score, 0.0, 1.0), 3)
    return QualityAssessment(
        is_acceptable=quality_score >= thresholds.min_acceptable and not issues,
        quality_score=quality_score,
        issues=tuple(issues),
        warnings=tuple(warnings),
    )


def _check_quality(ctx: ValidationContext) -> ValidationContext:
    metrics = ctx.quality_metrics
    quality = validate_photo_quality(
        metrics.blur_score,
        metrics.resolution,
        metrics.brightness_score,
        metrics.filter_score,
        ctx.quality_thresholds,
    )
    return dataclasses.replace(
        ctx,
        stage=ValidationStage.QUALITY_CHECKED,
        quality=quality,
        issues=ctx.issues + quality.issues,
        warnings=ctx.warnings + quality.warnings,
    )


def _check_occlusion(ctx: ValidationContext) -> ValidationContext:
    subject = ctx.subject_metrics
    face = is_face_view(ctx.expected_view)
    issues: list[str] = []

    if subject.occlusion_score > ctx.quality_thresholds.max_occlusion:
        issues.append(messages.FACE_OCCLUDED if face else messages.BODY_OCCLUDED)
    if face and not subject.face_visible and messages.FACE_OCCLUDED not in issues:
        issues.append(messages.FACE_OCCLUDED)
    if not face and not subject.full_body_visible:
        issues.append(messages.BODY_NOT_FULL)

    return dataclasses.replace(
        ctx,
        stage=ValidationStage.OCCLUSION_CHECKED,
        issues=ctx.issues + tuple(issues),
    )


def _is_indeterminate(pose: PoseEstimate, min_confidence: float) -> bool:
    angles = (pose.yaw, pose.pitch, pose.roll)
    if not all(math.isfinite(angle) for angle in angles):
        return True
    return pose.confidence < min_confidence


def _classify_view(ctx: ValidationContext) -> ValidationContext:
    pose = ctx.pose
    if _is_indeterminate(pose, ctx.view_thresholds.min_pose_confidence):
        return dataclasses.replace(
            ctx,
            stage=ValidationStage.VIEW_CLASSIFIED,
            detected_view="unknown",
            rejection_reason=messages.view_mismatch_message(ctx.expected_view, "unknown"),
            error_type=messages.INVALID_VIEW,
        )

    if is_face_view(ctx.expected_view):
        classification = classify_face_view(pose, ctx.view_thresholds.face)
    else:
        # 肩・腰の回転角が計測されていない場合は yaw で代用する
        subject = ctx.subject_metrics
        shoulder = subject.shoulder_rotation if subject.shoulder_rotation is not None else abs(pose.yaw)
        hip = subject.hip_rotation if subject.hip_rotation is not None else abs(pose.yaw)
        classification = classify_body_view(
            shoulder, hip, subject.face_visible, ctx.view_thresholds.body
        )

    error_type = None
    if classification.view == "rejected":
        error_type = (
            messages.INVALID_VIEW
            if classification.reason == messages.FACE_THREE_QUARTER
            else messages.POSE_INVALID
        )
    return dataclasses.replace(
        ctx,
        stage=ValidationStage.VIEW_CLASSIFIED,
        detected_view=classification.view,
        rejection_reason=classification.reason,
        error_type=error_type,
    )


def _check_mismatch(ctx: ValidationContext) -> ValidationContext:
    detected = ctx.detected_view
    if detected not in ("rejected", "unknown") and detected != ctx.expected_view:
        return dataclasses.replace(
            ctx,
            stage=ValidationStage.MISMATCH_CHECKED,
            detected_view="rejected",
            rejection_reason=messages.view_mismatch_message(ctx.expected_view, detected),
            error_type=messages.INVALID_VIEW,
        )
    return dataclasses.replace(ctx, stage=ValidationStage.MISMATCH_CHECKED)


def _finalize(ctx: ValidationContext) -> ValidationContext:
    quality_ok = ctx.quality is not None and ctx.quality.is_acceptable
    is_valid = (
        ctx.detected_view not in ("rejected", "unknown")
        and quality_ok
        and not ctx.issues
    )

    rejection_reason = ctx.rejection_reason
    error_type = ctx.error_type
    if not is_valid and rejection_reason is None:
        if ctx.issues:
            rejection_reason = ctx.issues[0]
            error_type = messages.ISSUE_ERROR_TYPES.get(ctx.issues[0], messages.LOW_QUALITY)
        else:
            rejection_reason = messages.QUALITY_TOO_LOW
            error_type = messages.LOW_QUALITY

    return dataclasses.replace(
        ctx,
        stage=ValidationStage.DONE,
        is_valid=is_valid,
        rejection_reason=rejection_reason,
        error_type=error_type,
    )


VALIDATION_PIPELINE: tuple[Callable[[ValidationContext], ValidationContext], ...] = (
    _check_quality,
    _check_occlusion,
    _classify_view,
    _check_mismatch,
    _finalize,
)


def validate_photo(
    pose: PoseEstimate,
    expected_view: str,
    quality_metrics: QualityMetrics,
    subject_metrics: SubjectMetrics,
    view_thresholds: ViewThresholds = VIEW_THRESHOLDS,
    quality_thresholds: QualityThresholds = QUALITY_THRESHOLDS,
) -> PhotoValidation:
    """
    写真1枚を期待ビューに対して検証する。

    品質 → 遮蔽・可視性 → ビュー分類 → 期待ビューとの不一致 の順に判定する。
    分類に成功しても期待ビューと異なる場合は rejected に落とす。

    Args:
        pose (PoseEstimate): 姿勢角度
        expected_view (str): 期待するビュー
        quality_metrics (QualityMetrics): 品質指標
        subject_metrics (SubjectMetrics): 被写体の可視性・遮蔽指標

    Returns:
        PhotoValidation: 検証結果
    """
    if expected_view not in VIEW_TYPES:
        raise ValueError(f"未知のビューです: {expected_view}")

    ctx = ValidationContext(
        expected_view=expected_view,
        pose=pose,
        quality_metrics=quality_metrics,
        subject_metrics=subject_metrics,
        view_thresholds=view_thresholds,
        quality_thresholds=quality_thresholds,
    )
    for step in VALIDATION_PIPELINE:
        ctx = step(ctx)

    return PhotoValidation(
        is_valid=ctx.is_valid,
        detected_view=ctx.detected_view,
        pose=ctx.pose,
        quality_score=ctx.quality.quality_score if ctx.quality is not None else 0.0,
        issues=ctx.issues,
        warnings=ctx.warnings,
        rejection_reason=ctx.rejection_reason,
        error_type=ctx.error_type,
    )
