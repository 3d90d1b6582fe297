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
from app.domain.models.measurement import FaceMeasurement
from app.domain.services.face_scoring_service import score_face
from app.domain.services.image_service import ImageService
from app.domain.services.measurement_service import MeasurementService
from app.domain.services.scan_cache_service import (
    ScanCacheService,
    compute_content_hash,
)
from app.domain.utils.seeded_random import generate_jitter_params
from app.interfaces.schemas.scan import FaceScanResponse


async def face_scan_app(
    front_image: bytes,
    side_image: bytes | None,
    image_service: ImageService,
    measurement_service: MeasurementService,
    scan_cache_service: ScanCacheService,
    timeout: float = MEASUREMENT_TIMEOUT_SEC,
) -> FaceScanResponse:
    """顔写真をスキャンして採点する

    同じ写真・同じオプションの結果はキャッシュから返す。
    キャッシュミス時は計測 → 検証 → 採点を時間制限付きで1回だけ実行する。

    Args:
        front_image: 正面写真
        side_image: 横顔写真（任意）
        image_service: 画像サービス
        measurement_service: 計測サービス
        scan_cache_service: スキャン結果キャッシュ
        timeout: キャッシュミス時の計算のタイムアウト秒数

    Returns:
        FaceScanResponse: 採点結果

    Raises:
        InvalidParamError: 画像が不正な場合
        PhotoValidationRejectedError: いずれかの写真が却下された場合
        UpstreamComputationError: 外部計測が失敗・タイムアウトした場合
    """
    front_info = inspect_image(image_service, front_image, "front_image")
    side_info = inspect_image(image_service, side_image, "side_image") if side_image else None

    options: dict[str, Any] = {
        "domain": "face",
        "side_photo_hash": compute_content_hash(side_image) if side_image else None,
    }
    key = scan_cache_service.make_key(front_image, options)

    async def compute() -> dict[str, Any]:
        jitter = generate_jitter_params(key.seed, MEASUREMENT_JITTER_SAMPLES)
        tasks = [
            measure_photo(
                measurement_service, front_image, front_info, "face", "face_front", jitter
            )
        ]
        if side_image and side_info:
            tasks.append(
                measure_photo(
                    measurement_service, side_image, side_info, "face", "face_side",
                    include_measurements=False,
                )
            )
        measurements = await asyncio.gather(*tasks)

        front = measurements[0]
        front_validation = validate_measured_photo(front, front_info, "face_front")
        raise_if_rejected(front_validation, "face_front")

        side_validation_response = None
        if side_info is not None:
            side_validation = validate_measured_photo(measurements[1], side_info, "face_side")
            raise_if_rejected(side_validation, "face_side")
            side_validation_response = to_validation_response(side_validation, "face_side")

        if not isinstance(front, FaceMeasurement) or front.landmarks is None:
            raise UpstreamComputationError(message="顔のランドマーク計測値がありません")

        result = score_face(front.landmarks, front_validation.quality_score, front.ratio_samples)
        response = FaceScanResponse.model_validate({
            **dataclasses.asdict(result),
            "front_validation": to_validation_response(front_validation, "face_front"),
            "side_validation": side_validation_response,
            "meta": to_meta(key, cached=False),
        })
        return response.model_dump(mode="json")

    try:
        payload, cached = await scan_cache_service.get_or_compute(key, compute, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise timeout_error("face scan", timeout) from e

    response = FaceScanResponse.model_validate(payload)
    response.meta.cached = cached
    logger.info(
        f"顔スキャン完了: hash={key.content_hash[:8]}, cached={cached}, "
        f"score={response.overall.current_score10}"
    )
    return response
