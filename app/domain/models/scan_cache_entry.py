from datetime import datetime, timezone
from typing import ClassVar

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.database.database import Base


class ScanCacheEntry(Base):  # pyright: ignore[reportAny]
    """スキャン結果キャッシュ"""
    __tablename__: ClassVar[str] = "scan_cache_entries"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True)
    content_hash: Mapped[str] = mapped_column(
        String(64), comment="正面写真の sha256")
    options_hash: Mapped[str] = mapped_column(
        String(64), comment="正規化オプションの sha256")
    schema_version: Mapped[str] = mapped_column(
        String(32), comment="保存時のレスポンス形式バージョン")
    result_json: Mapped[str] = mapped_column(
        Text, comment="スキャン結果の JSON")
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc))

    __table_args__: ClassVar[tuple[UniqueConstraint | Index, ...]] = (
        UniqueConstraint("content_hash", "options_hash", name="uq_scan_cache_key"),
        Index("idx_scan_cache_created_at", "created_at"),
    )
