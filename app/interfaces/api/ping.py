import os

from fastapi import APIRouter, Request

from app.domain.services.scan_cache_service import DEFAULT_SCHEMA_VERSION

router = APIRouter()


@router.get("/ping", status_code=200)
async def ping(request: Request):
    """
    ヘルスチェック用のエンドポイント
    クライアントがキャッシュ済み結果の形式を確認できるようスキーマバージョンを返す
    """
    # ログ抑制設定
    request.state.access_log = False
    return {
        "status": "ok",
        "schema_version": os.getenv("SCAN_SCHEMA_VERSION", DEFAULT_SCHEMA_VERSION),
    }
