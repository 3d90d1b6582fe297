"""スキャン結果の決定的キャッシュ

写真のバイト列とオプションから安定したキーとシードを導出し、スキャン結果をメモ化する。
同じ写真・同じオプションなら常に同じキー・同じシード・同じ結果になる。
キャッシュミス時の計算はキー単位で1つに絞り、同時に来た同一リクエストはその結果を待つ。
"""

import asyncio
import base64
import binascii
import hashlib
import json
import os
import re
import threading
import time as time_module
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

DEFAULT_SCHEMA_VERSION = "2.0.0"

_DATA_URL_PREFIX = re.compile(r"^data:[\w/+.-]*(;[\w=.-]+)*;base64,")


def compute_content_hash(photo: bytes | str) -> str:
    """
    写真の内容ハッシュ（sha256 の16進文字列）を計算する。

    文字列の場合は data URL の接頭辞を取り除いて base64 デコードした生バイト列をハッシュするため、
    接頭辞の形式が異なるだけの同じ画像は同じハッシュになる。

    Args:
        photo (bytes | str): 画像のバイト列、または base64 / data URL 文字列

    Returns:
        str: 64桁の16進ハッシュ
    """
    if isinstance(photo, str):
        encoded = _DATA_URL_PREFIX.sub("", photo.strip(), count=1)
        try:
            raw = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise ValueError(f"base64 のデコードに失敗しました: {e}") from e
    else:
        raw = photo
    return hashlib.sha256(raw).hexdigest()


def canonicalize_options(options: Mapping[str, Any] | None) -> str:
    """キー順序に依存しない正規化 JSON 文字列"""
    return json.dumps(
        options or {},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_options_hash(options: Mapping[str, Any] | None) -> str:
    return hashlib.sha256(canonicalize_options(options).encode("utf-8")).hexdigest()


def compute_seed(content_hash: str, options_hash: str) -> int:
    """2つのハッシュの連結から 32bit の決定的なシードを導出する"""
    digest = hashlib.sha256(f"{content_hash}{options_hash}".encode("ascii")).hexdigest()
    return int(digest[:8], 16)


@dataclass(frozen=True)
class ScanCacheKey:
    content_hash: str
    options_hash: str
    schema_version: str

    @property
    def seed(self) -> int:
        return compute_seed(self.content_hash, self.options_hash)

    @property
    def lock_key(self) -> str:
        return f"{self.content_hash}:{self.options_hash}:{self.schema_version}"


def derive_cache_key(
    photo: bytes | str,
    options: Mapping[str, Any] | None,
    schema_version: str,
) -> ScanCacheKey:
    return ScanCacheKey(
        content_hash=compute_content_hash(photo),
        options_hash=compute_options_hash(options),
        schema_version=schema_version,
    )


@dataclass(frozen=True)
class CachedScan:
    """ストアに保存されたスキャン結果"""
    schema_version: str
    result_json: str
    created_at: datetime


class ScanCacheStore(Protocol):
    """(content_hash, options_hash) をキーとする保存先"""

    def get(self, content_hash: str, options_hash: str) -> CachedScan | None: ...

    def put(self, content_hash: str, options_hash: str, schema_version: str, result_json: str) -> None: ...

    def clear(self) -> int: ...

    def count(self) -> int: ...


class InMemoryScanCacheStore:
    """プロセス内のキャッシュストア"""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], CachedScan] = {}
        self._lock = threading.Lock()

    def get(self, content_hash: str, options_hash: str) -> CachedScan | None:
        with self._lock:
            return self._entries.get((content_hash, options_hash))

    def put(self, content_hash: str, options_hash: str, schema_version: str, result_json: str) -> None:
        with self._lock:
            self._entries[(content_hash, options_hash)] = CachedScan(
                schema_version=schema_version,
                result_json=result_json,
                created_at=datetime.now(timezone.utc),
            )

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            return removed

    def count(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass
class _InFlight:
    future: asyncio.Future | None = None
    users: int = 0


class KeyedLocks:
    """キーごとの実行中の計算。使用中のキーのエントリだけを保持する"""

    def __init__(self) -> None:
        self._entries: dict[str, _InFlight] = {}

    def acquire_entry(self, key: str) -> _InFlight:
        entry = self._entries.get(key)
        if entry is None:
            entry = _InFlight()
            self._entries[key] = entry
        entry.users += 1
        return entry

    def release_entry(self, key: str, entry: _InFlight) -> None:
        entry.users -= 1
        if entry.users <= 0 and self._entries.get(key) is entry:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


class ScanCacheService:
    """スキャン結果キャッシュのサービス"""

    store: ScanCacheStore
    schema_version: str

    def __init__(
        self,
        store: ScanCacheStore,
        schema_version: str | None = None,
        keyed_locks: KeyedLocks | None = None,
    ) -> None:
        self.store = store
        self.schema_version = schema_version or os.getenv(
            "SCAN_SCHEMA_VERSION", DEFAULT_SCHEMA_VERSION
        )
        self._locks = keyed_locks if keyed_locks is not None else get_keyed_locks()

    def make_key(self, photo: bytes | str, options: Mapping[str, Any] | None) -> ScanCacheKey:
        return derive_cache_key(photo, options, self.schema_version)

    def get(self, key: ScanCacheKey) -> dict[str, Any] | None:
        """
        キャッシュを取得する。

        保存済みのスキーマバージョンが呼び出し側と一致しない場合はミスとして扱い、
        古い形式の結果は移行せずに再計算させる。
        """
        cached = self.store.get(key.content_hash, key.options_hash)
        if cached is None:
            return None
        if cached.schema_version != key.schema_version:
            logger.debug(
                f"スキーマバージョン不一致のためキャッシュミス: "
                f"stored={cached.schema_version}, current={key.schema_version}"
            )
            return None
        return json.loads(cached.result_json)

    def put(self, key: ScanCacheKey, result: Mapping[str, Any]) -> None:
        self.store.put(
            key.content_hash,
            key.options_hash,
            key.schema_version,
            json.dumps(result, sort_keys=True, ensure_ascii=False),
        )

    def is_cached(self, key: ScanCacheKey) -> bool:
        return self.get(key) is not None

    def clear(self) -> int:
        removed = self.store.clear()
        logger.info(f"スキャンキャッシュを削除しました: {removed}件")
        return removed

    def stats(self) -> dict[str, Any]:
        return {
            "entries": self.store.count(),
            "schema_version": self.schema_version,
            "in_flight": len(self._locks),
        }

    async def get_or_compute(
        self,
        key: ScanCacheKey,
        compute: Callable[[], Awaitable[dict[str, Any]]],
        timeout: float | None = None,
    ) -> tuple[dict[str, Any], bool]:
        """
        キャッシュを返すか、ミスの場合は計算して保存する。

        同じキーの計算は同時に1つだけ実行し、後から来た呼び出しは先行する計算の結果
        （成功・失敗・タイムアウトのいずれも）をそのまま受け取る。先行する計算が失敗しても
        待機中の呼び出しが再計算することはない。タイムアウトは待機時間を含めた呼び出し全体に
        1つの期限として適用する。計算が失敗・タイムアウトした場合は何も保存せず例外を伝播する。

        Args:
            key (ScanCacheKey): キャッシュキー
            compute (Callable[[], Awaitable[dict[str, Any]]]): ミス時の計算
            timeout (float | None): 呼び出し全体のタイムアウト秒数

        Returns:
            tuple[dict[str, Any], bool]: (結果, キャッシュヒットかどうか)

        Raises:
            asyncio.TimeoutError: 期限までに結果が得られなかった場合
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"キャッシュヒット: {key.content_hash[:8]}")
            return cached, True

        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        entry = self._locks.acquire_entry(key.lock_key)
        try:
            while entry.future is not None:
                future = entry.future
                try:
                    result = await asyncio.wait_for(
                        asyncio.shield(future), timeout=_remaining(loop, deadline)
                    )
                except asyncio.CancelledError:
                    if not future.cancelled():
                        raise
                    # 先行する計算が取り消された場合は残り時間で計算し直す
                    logger.debug(f"先行する計算が取り消されました: {key.content_hash[:8]}")
                    continue
                logger.debug(f"先行する計算の結果を利用: {key.content_hash[:8]}")
                return result, True

            future = loop.create_future()
            entry.future = future
            logger.debug(f"キャッシュミス: {key.content_hash[:8]}")
            start_time = time_module.time()
            try:
                result = await asyncio.wait_for(compute(), timeout=_remaining(loop, deadline))
                self.put(key, result)
            except asyncio.CancelledError:
                future.cancel()
                raise
            except Exception as e:
                future.set_exception(e)
                # 待機者がいない場合の未回収警告を抑える
                future.exception()
                raise
            else:
                future.set_result(result)
            finally:
                if entry.future is future:
                    entry.future = None

            elapsed_ms = (time_module.time() - start_time) * 1000
            logger.info(
                f"スキャン結果を計算・保存しました: {key.content_hash[:8]}, "
                f"elapsed={elapsed_ms:.2f}ms"
            )
            return result, False
        finally:
            self._locks.release_entry(key.lock_key, entry)


def _remaining(loop: asyncio.AbstractEventLoop, deadline: float | None) -> float | None:
    """期限までの残り秒数。期限なしなら None"""
    if deadline is None:
        return None
    return max(deadline - loop.time(), 0.0)


# シングルトンパターン
_keyed_locks_instance: KeyedLocks | None = None
_memory_store_instance: InMemoryScanCacheStore | None = None


def get_keyed_locks() -> KeyedLocks:
    """プロセス共有の KeyedLocks を取得する"""
    global _keyed_locks_instance
    if _keyed_locks_instance is None:
        _keyed_locks_instance = KeyedLocks()
    return _keyed_locks_instance


def get_memory_scan_cache_store() -> InMemoryScanCacheStore:
    """プロセス共有のインメモリストアを取得する"""
    global _memory_store_instance
    if _memory_store_instance is None:
        _memory_store_instance = InMemoryScanCacheStore()
    return _memory_store_instance
