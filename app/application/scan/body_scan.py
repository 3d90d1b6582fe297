import asyncio
import dataclasses
from typing import Any

from loguru import logger

from app.application.exceptions import UpstreamComputationError
from app.application.scan.common import (
    MEASUREMENT_JITTER_SAMPLES,
    MEASUREMENT_TIMEOUT_SEC,
    inspect_image,
    measure_photo,
    raise_if_rejected,
    timeout_error,
    to_meta,
    to_validation_response,
    validate_measured_photo,
)
from app.domain.models.measurement import BodyMeasurement
from app.domain.services.body_scoring_service import score_body
from app.domain.services.image_service import ImageService
from app.domain.services.measurement_service import MeasurementService
from app.domain.services.scan_cache_service import (
    ScanCacheService,
    compute_content_hash,
)
from app.domain.utils.seeded_random import generate_jitter_params
from app.interfaces.schemas.scan import BodyScanResponse


async def body_scan_app(
    front_image: bytes,
    side_image: bytes | None,
    image_service: ImageService,
    measurement_service: MeasurementService,
    scan_cache_service: ScanCacheService,
    timeout: float = MEASUREMENT_TIMEOUT_SEC,
) -> BodyScanResponse:
    """全身写真をスキャンして採点する

    側面写真がある場合はその姿勢角度から姿勢ピラーを加え、重みテーブルを切り替える。

    Args:
        front_image: 正面の全身写真
        side_image: 側面の全身写真（任意）
        image_service: 画像サービス
        measurement_service: 計測サービス
        scan_cache_service: スキャン結果キャッシュ
        timeout: キャッシュミス時の計算のタイムアウト秒数

    Returns:
        BodyScanResponse: 採点結果

    Raises:
        InvalidParamError: 画像が不正な場合
        PhotoValidationRejectedError: いずれかの写真が却下された場合
        UpstreamComputationError: 外部計測が失敗・タイムアウトした場合
    """
    front_info = inspect_image(image_service, front_image, "front_image")
    side_info = inspect_image(image_service, side_image, "side_image") if side_image else None

    options: dict[str, Any] = {
        "domain": "body",
        "side_photo_hash": compute_content_hash(side_image) if side_image else None,
    }
    key = scan_cache_service.make_key(front_image, options)

    async def compute() -> dict[str, Any]:
        jitter = generate_jitter_params(key.seed, MEASUREMENT_JITTER_SAMPLES)
        tasks = [
            measure_photo(
                measurement_service, front_image, front_info, "body", "body_front", jitter
            )
        ]
        if side_image and side_info:
            tasks.append(
                measure_photo(
                    measurement_service, side_image, side_info, "body", "body_side"
                )
            )
        measurements = await asyncio.gather(*tasks)

        front = measurements[0]
        front_validation = validate_measured_photo(front, front_info, "body_front")
        raise_if_rejected(front_validation, "body_front")

        side_validation_response = None
        posture_measurements = None
        if side_info is not None:
            side = measurements[1]
            side_validation = validate_measured_photo(side, side_info, "body_side")
            raise_if_rejected(side_validation, "body_side")
            side_validation_response = to_validation_response(side_validation, "body_side")
            if isinstance(side, BodyMeasurement):
                posture_measurements = side.measurements

        if not isinstance(front, BodyMeasurement) or front.measurements is None:
            raise UpstreamComputationError(message="体の計測値がありません")

        result = score_body(
            front.measurements,
            front_validation.quality_score,
            posture_measurements=posture_measurements,
            ratio_samples=front.ratio_samples,
        )
        response = BodyScanResponse.model_validate({
            **dataclasses.asdict(result),
            "front_validation": to_validation_response(front_validation, "body_front"),
            "side_validation": side_validation_response,
            "meta": to_meta(key, cached=False),
        })
        return response.model_dump(mode="json")

    try:
        payload, cached = await scan_cache_service.get_or_compute(key, compute, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise timeout_error("body scan", timeout) from e

    response = BodyScanResponse.model_validate(payload)
    response.meta.cached = cached
    logger.info(
        f"体スキャン完了: hash={key.content_hash[:8]}, cached={cached}, "
        f"score={response.overall.current_score10}, "
        f"posture={'あり' if response.posture else 'なし'}"
    )
    return response
