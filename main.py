import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.interfaces.api import ping, scan
from app.interfaces.api.error_handlers import register_error_handlers

load_dotenv()
STAGE = os.getenv("stage", "dev")

API_PREFIX = "/sugata/api"


# セキュリティヘッダーを追加するミドルウェア
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        # スキャン系と更新系のレスポンスはキャッシュさせない
        if request.url.path.startswith(f"{API_PREFIX}/scan/") or request.method in [
            "POST", "PUT", "DELETE", "PATCH"
        ]:
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"

        return response


app = FastAPI(
    title="姿API",
    description="""
    顔・全身写真の検証と外見スコアリングのためのAPI。

    ## 主な機能

    * 写真のビュー（正面・横顔・側面・背面）と品質の検証
    * 顔の比率・対称性・パーツに基づく採点
    * 全身のプロポーション・姿勢・体組成に基づく採点
    * 同じ写真に対して同じ結果を返す決定的キャッシュ
    """,
    version="2.0.0",
    docs_url=f"{API_PREFIX}/docs",
    openapi_url=f"{API_PREFIX}/openapi.json",
    openapi_tags=[
        {
            "name": "scan",
            "description": "写真検証と採点に関するエンドポイント."
        },
        {
            "name": "ping",
            "description": "ヘルスチェック."
        }
    ]
)

# エラーハンドラの登録
register_error_handlers(app)

# セキュリティヘッダーミドルウェアの追加
app.add_middleware(SecurityHeadersMiddleware)

if STAGE == "dev":
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r'.*',  # すべてのドメインを許可（開発環境のみ）
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            origin for origin in os.getenv("CORS_ALLOW_ORIGINS", "").split(",") if origin
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ルーターの登録
app.include_router(scan.router, prefix=API_PREFIX, tags=["scan"])
app.include_router(ping.router, prefix=API_PREFIX, tags=["ping"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
