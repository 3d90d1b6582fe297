import os

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

import app.application.scan.body_scan
import app.application.scan.cache
import app.application.scan.face_scan
import app.application.scan.validate_photo
from app.domain.services.image_service import ImageService, get_image_service
from app.domain.services.measurement_service import (
    MeasurementService,
    get_measurement_service,
)
from app.domain.services.scan_cache_service import (
    ScanCacheService,
    ScanCacheStore,
    get_memory_scan_cache_store,
)
from app.infrastructure.database.database import get_db
from app.infrastructure.repositories.scan_cache_repository import (
    get_scan_cache_repository,
)
from app.interfaces.schemas.scan import (
    BodyScanResponse,
    CacheClearResponse,
    CacheKeyResponse,
    CacheStatsResponse,
    FaceScanResponse,
    PhotoValidationResponse,
)

load_dotenv()
SCAN_CACHE_BACKEND = os.getenv("SCAN_CACHE_BACKEND", "memory")

router = APIRouter()


def get_scan_cache_service(db: Session = Depends(get_db)) -> ScanCacheService:
    """SCAN_CACHE_BACKEND に応じたストアでキャッシュサービスを生成する"""
    store: ScanCacheStore
    if SCAN_CACHE_BACKEND == "db":
        store = get_scan_cache_repository(db)
    else:
        store = get_memory_scan_cache_store()
    return ScanCacheService(store)


async def _read_optional(upload: UploadFile | None) -> bytes | None:
    if upload is None:
        return None
    data = await upload.read()
    return data or None


@router.post("/scan/validate_photo", response_model=PhotoValidationResponse)
async def validate_photo(
    image: UploadFile = File(
        ...,
        description="検証する写真"
    ),
    expected_view: str = Form(
        ...,
        description="期待するビュー（face_front / face_side / body_front / body_side / body_back）"
    ),
    image_service: ImageService = Depends(get_image_service, use_cache=True),
    measurement_service: MeasurementService = Depends(
        get_measurement_service, use_cache=True),
):
    """
    写真が期待するビューとして採点に使えるかを検証する
    """
    image_data = await image.read()
    return await app.application.scan.validate_photo.validate_photo_app(
        image_data=image_data,
        expected_view=expected_view,
        image_service=image_service,
        measurement_service=measurement_service,
    )


@router.post("/scan/face", response_model=FaceScanResponse)
async def face_scan(
    front_image: UploadFile = File(
        ...,
        description="正面の顔写真"
    ),
    side_image: UploadFile | None = File(
        None,
        description="横顔の写真（任意）"
    ),
    image_service: ImageService = Depends(get_image_service, use_cache=True),
    measurement_service: MeasurementService = Depends(
        get_measurement_service, use_cache=True),
    scan_cache_service: ScanCacheService = Depends(get_scan_cache_service),
):
    """
    顔写真を採点する。同じ写真の2回目以降はキャッシュから同じ結果を返す
    """
    front_data = await front_image.read()
    side_data = await _read_optional(side_image)
    return await app.application.scan.face_scan.face_scan_app(
        front_image=front_data,
        side_image=side_data,
        image_service=image_service,
        measurement_service=measurement_service,
        scan_cache_service=scan_cache_service,
    )


@router.post("/scan/body", response_model=BodyScanResponse)
async def body_scan(
    front_image: UploadFile = File(
        ...,
        description="正面の全身写真"
    ),
    side_image: UploadFile | None = File(
        None,
        description="側面の全身写真（任意、姿勢の評価に使用）"
    ),
    image_service: ImageService = Depends(get_image_service, use_cache=True),
    measurement_service: MeasurementService = Depends(
        get_measurement_service, use_cache=True),
    scan_cache_service: ScanCacheService = Depends(get_scan_cache_service),
):
    """
    全身写真を採点する
    """
    front_data = await front_image.read()
    side_data = await _read_optional(side_image)
    return await app.application.scan.body_scan.body_scan_app(
        front_image=front_data,
        side_image=side_data,
        image_service=image_service,
        measurement_service=measurement_service,
        scan_cache_service=scan_cache_service,
    )


@router.post("/scan/cache_key", response_model=CacheKeyResponse)
async def cache_key(
    image: UploadFile = File(
        ...,
        description="写真"
    ),
    options: str | None = Form(
        None,
        description="オプション（JSON オブジェクト）"
    ),
    scan_cache_service: ScanCacheService = Depends(get_scan_cache_service),
):
    """
    写真とオプションからキャッシュキーと決定的シードを返す
    """
    image_data = await image.read()
    return app.application.scan.cache.derive_cache_key_app(
        photo=image_data,
        options_json=options,
        scan_cache_service=scan_cache_service,
    )


@router.delete("/scan/cache", response_model=CacheClearResponse)
async def clear_cache(
    scan_cache_service: ScanCacheService = Depends(get_scan_cache_service),
):
    """
    スキャン結果キャッシュを全件削除する
    """
    return app.application.scan.cache.clear_scan_cache_app(scan_cache_service)


@router.get("/scan/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(
    scan_cache_service: ScanCacheService = Depends(get_scan_cache_service),
):
    """
    スキャン結果キャッシュの件数とスキーマバージョンを返す
    """
    return app.application.scan.cache.scan_cache_stats_app(scan_cache_service)
