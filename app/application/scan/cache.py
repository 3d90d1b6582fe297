import json
from typing import Any

from loguru import logger

from app.application.exceptions import InvalidParamError
from app.domain.services.scan_cache_service import ScanCacheService
from app.interfaces.schemas.scan import (
    CacheClearResponse,
    CacheKeyResponse,
    CacheStatsResponse,
)


def parse_options(options_json: str | None) -> dict[str, Any]:
    """オプションの JSON 文字列をパースする。空の場合は空の辞書"""
    if not options_json:
        return {}
    try:
        options = json.loads(options_json)
    except json.JSONDecodeError as e:
        raise InvalidParamError(
            reason="オプションの JSON が不正です", param_name="options") from e
    if not isinstance(options, dict):
        raise InvalidParamError(
            reason="オプションは JSON オブジェクトで指定してください", param_name="options")
    return options


def derive_cache_key_app(
    photo: bytes | str,
    options_json: str | None,
    scan_cache_service: ScanCacheService,
) -> CacheKeyResponse:
    """
    写真とオプションからキャッシュキーと決定的シードを導出する。

    Args:
        photo: 画像のバイト列、または base64 / data URL 文字列
        options_json: オプションの JSON 文字列
        scan_cache_service: スキャン結果キャッシュ

    Returns:
        CacheKeyResponse: キーの各要素と保存済みかどうか
    """
    if not photo:
        raise InvalidParamError(reason="画像が空です", param_name="image")
    options = parse_options(options_json)
    try:
        key = scan_cache_service.make_key(photo, options)
    except ValueError as e:
        raise InvalidParamError(reason=str(e), param_name="image") from e

    return CacheKeyResponse(
        content_hash=key.content_hash,
        options_hash=key.options_hash,
        schema_version=key.schema_version,
        seed=key.seed,
        cached=scan_cache_service.is_cached(key),
    )


def clear_scan_cache_app(scan_cache_service: ScanCacheService) -> CacheClearResponse:
    removed = scan_cache_service.clear()
    return CacheClearResponse(removed=removed)


def scan_cache_stats_app(scan_cache_service: ScanCacheService) -> CacheStatsResponse:
    stats = scan_cache_service.stats()
    logger.debug(f"スキャンキャッシュ統計: {stats}")
    return CacheStatsResponse(**stats)
