import asyncio

from loguru import logger

from app.application.exceptions import InvalidParamError
from app.application.scan.common import (
    MEASUREMENT_TIMEOUT_SEC,
    inspect_image,
    measure_photo,
    raise_if_rejected,
    timeout_error,
    to_validation_response,
    validate_measured_photo,
)
from app.domain.models.photo import VIEW_TYPES, is_face_view
from app.domain.services.image_service import ImageService
from app.domain.services.measurement_service import MeasurementService
from app.interfaces.schemas.scan import PhotoValidationResponse


async def validate_photo_app(
    image_data: bytes,
    expected_view: str,
    image_service: ImageService,
    measurement_service: MeasurementService,
    timeout: float = MEASUREMENT_TIMEOUT_SEC,
) -> PhotoValidationResponse:
    """写真1枚を期待ビューに対して検証する

    採点より前に、アップロードされた写真を受け付けるかどうかだけを判定する。

    Args:
        image_data: 画像データのバイト列
        expected_view: 期待するビュー
        image_service: 画像サービス
        measurement_service: 計測サービス
        timeout: 外部計測のタイムアウト秒数

    Returns:
        PhotoValidationResponse: 検証結果（OK の場合のみ）

    Raises:
        InvalidParamError: ビュー名や画像が不正な場合
        PhotoValidationRejectedError: 写真が却下された場合
        UpstreamComputationError: 外部計測が失敗・タイムアウトした場合
    """
    if expected_view not in VIEW_TYPES:
        raise InvalidParamError(
            reason="未知のビューです", param_name="expected_view")

    image_info = inspect_image(image_service, image_data, "image")
    domain = "face" if is_face_view(expected_view) else "body"

    try:
        measurement = await asyncio.wait_for(
            measure_photo(
                measurement_service,
                image_data,
                image_info,
                domain,
                expected_view,
                include_measurements=False,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        raise timeout_error("photo validation", timeout) from e

    validation = validate_measured_photo(measurement, image_info, expected_view)
    raise_if_rejected(validation, expected_view)

    logger.info(
        f"写真検証 OK: view={validation.detected_view}, "
        f"quality={validation.quality_score:.2f}, warnings={len(validation.warnings)}"
    )
    return to_validation_response(validation, expected_view)
