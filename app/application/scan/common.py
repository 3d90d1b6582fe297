import dataclasses
import os

from dotenv import load_dotenv
from loguru import logger

from app.application.exceptions import (
    InvalidParamError,
    PhotoValidationRejectedError,
    UpstreamComputationError,
)
from app.domain.models.measurement import BodyMeasurement, FaceMeasurement
from app.domain.models.photo import PhotoValidation
from app.domain.services.image_service import ImageInfo, ImageService
from app.domain.services.measurement_service import (
    MeasurementDomain,
    MeasurementError,
    MeasurementService,
)
from app.domain.services.photo_validation_service import validate_photo
from app.domain.services.scan_cache_service import ScanCacheKey
from app.domain.utils.seeded_random import JitterParams
from app.interfaces.schemas.scan import PhotoValidationResponse, ScanMetaSchema

load_dotenv()

# キャッシュミス時の外部計算のタイムアウト（秒）
MEASUREMENT_TIMEOUT_SEC = float(os.getenv("MEASUREMENT_TIMEOUT_SEC", "45"))
# 安定性サンプリングのジッター数
MEASUREMENT_JITTER_SAMPLES = int(os.getenv("MEASUREMENT_JITTER_SAMPLES", "16"))


def inspect_image(image_service: ImageService, image_data: bytes, param_name: str) -> ImageInfo:
    """画像を検査し、読み込めない場合は InvalidParamError を送出する"""
    if not image_data:
        raise InvalidParamError(reason="画像が空です", param_name=param_name)
    try:
        return image_service.inspect(image_data)
    except ValueError as e:
        raise InvalidParamError(reason=str(e), param_name=param_name) from e


async def measure_photo(
    measurement_service: MeasurementService,
    image_data: bytes,
    image_info: ImageInfo,
    domain: MeasurementDomain,
    expected_view: str,
    jitter: list[JitterParams] | None = None,
    include_measurements: bool = True,
) -> FaceMeasurement | BodyMeasurement:
    """計測プロバイダを呼び出し、失敗を UpstreamComputationError に変換する"""
    try:
        return await measurement_service.measure(
            image_bytes=image_data,
            image_format=image_info.format,
            domain=domain,
            expected_view=expected_view,
            jitter=jitter,
            include_measurements=include_measurements,
        )
    except MeasurementError as e:
        raise UpstreamComputationError(message=str(e)) from e


def validate_measured_photo(
    measurement: FaceMeasurement | BodyMeasurement,
    image_info: ImageInfo,
    expected_view: str,
) -> PhotoValidation:
    return validate_photo(
        pose=measurement.to_pose(),
        expected_view=expected_view,
        quality_metrics=measurement.to_quality_metrics(image_info.short_side),
        subject_metrics=measurement.to_subject_metrics(),
    )


def to_validation_response(
    validation: PhotoValidation,
    expected_view: str,
) -> PhotoValidationResponse:
    return PhotoValidationResponse.model_validate(
        {**dataclasses.asdict(validation), "expected_view": expected_view}
    )


def raise_if_rejected(validation: PhotoValidation, expected_view: str) -> None:
    """検証 NG の場合は PhotoValidationRejectedError を送出する"""
    if validation.is_valid:
        return
    logger.warning(
        f"写真検証 NG: expected={expected_view}, "
        f"detected={validation.detected_view}, "
        f"error_type={validation.error_type}, "
        f"quality={validation.quality_score:.2f}"
    )
    raise PhotoValidationRejectedError(
        rejection_reason=validation.rejection_reason or "",
        expected_view=expected_view,
        detected_view=validation.detected_view,
        error_type=validation.error_type,
        quality_score=validation.quality_score,
        issues=list(validation.issues),
        warnings=list(validation.warnings),
    )


def to_meta(key: ScanCacheKey, cached: bool) -> ScanMetaSchema:
    return ScanMetaSchema(
        content_hash=key.content_hash,
        options_hash=key.options_hash,
        schema_version=key.schema_version,
        seed=key.seed,
        cached=cached,
    )


def timeout_error(operation: str, timeout: float) -> UpstreamComputationError:
    """タイムアウトを再試行可能な UpstreamComputationError に変換する"""
    logger.error(f"{operation} がタイムアウトしました: timeout={timeout}s")
    return UpstreamComputationError(
        message=f"{operation} timed out after {timeout}s", timed_out=True
    )
