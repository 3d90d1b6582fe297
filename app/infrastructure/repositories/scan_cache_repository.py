from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.domain.models.scan_cache_entry import ScanCacheEntry
from app.domain.services.scan_cache_service import CachedScan


class ScanCacheRepository:
    """スキャン結果キャッシュのリポジトリ（ScanCacheStore の DB 実装）"""

    db: Session

    def __init__(self, db: Session) -> None:
        self.db = db

    def _find(self, content_hash: str, options_hash: str) -> ScanCacheEntry | None:
        return self.db.execute(
            select(ScanCacheEntry).where(
                ScanCacheEntry.content_hash == content_hash,
                ScanCacheEntry.options_hash == options_hash,
            )
        ).scalar_one_or_none()

    def get(self, content_hash: str, options_hash: str) -> CachedScan | None:
        """
        キャッシュ行を取得する

        Args:
            content_hash: 正面写真の内容ハッシュ
            options_hash: 正規化オプションのハッシュ

        Returns:
            CachedScan | None: 保存済みの結果。存在しない場合は None
        """
        entry = self._find(content_hash, options_hash)
        if entry is None:
            return None
        return CachedScan(
            schema_version=entry.schema_version,
            result_json=entry.result_json,
            created_at=entry.created_at,
        )

    def put(
        self,
        content_hash: str,
        options_hash: str,
        schema_version: str,
        result_json: str,
    ) -> None:
        """
        キャッシュ行を保存する。同じキーの行があれば上書きする

        Args:
            content_hash: 正面写真の内容ハッシュ
            options_hash: 正規化オプションのハッシュ
            schema_version: レスポンス形式のバージョン
            result_json: スキャン結果の JSON
        """
        entry = self._find(content_hash, options_hash)
        if entry is None:
            entry = ScanCacheEntry(
                content_hash=content_hash,
                options_hash=options_hash,
            )
            self.db.add(entry)
        entry.schema_version = schema_version
        entry.result_json = result_json
        entry.created_at = datetime.now(timezone.utc)
        self.db.commit()

    def clear(self) -> int:
        """全件削除し、削除件数を返す"""
        removed = self.count()
        self.db.execute(delete(ScanCacheEntry))
        self.db.commit()
        return removed

    def count(self) -> int:
        return self.db.execute(
            select(func.count()).select_from(ScanCacheEntry)
        ).scalar_one()


def get_scan_cache_repository(db: Session) -> ScanCacheRepository:
    """ScanCacheRepository のインスタンスを取得する"""
    return ScanCacheRepository(db)
