"""Add scan_cache_entries table

Revision ID: 20261019001
Revises:
Create Date: 2026-10-19

Requirements: 4.5（スキャン結果の決定的キャッシュの永続化）
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "scan_cache_entries",
        sa.Column(
            "id", sa.Integer(),
            primary_key=True, autoincrement=True,
        ),
        sa.Column(
            "content_hash", sa.String(64),
            nullable=False, comment="正面写真の sha256",
        ),
        sa.Column(
            "options_hash", sa.String(64),
            nullable=False, comment="正規化オプションの sha256",
        ),
        sa.Column(
            "schema_version", sa.String(32),
            nullable=False, comment="保存時のレスポンス形式のバージョン",
        ),
        sa.Column(
            "result_json", sa.Text(),
            nullable=False, comment="スキャン結果",
        ),
        sa.Column(
            "created_at", sa.DateTime(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "content_hash", "options_hash", name="uq_scan_cache_key"),
    )
    op.create_index(
        "idx_scan_cache_created_at",
        "scan_cache_entries",
        ["created_at"],
    )


def downgrade() -> None:
    op.drop_index(
        "idx_scan_cache_created_at",
        table_name="scan_cache_entries",
    )
    op.drop_table("scan_cache_entries")
