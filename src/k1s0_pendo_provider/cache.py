"""セグメントフラグのインメモリ TTL キャッシュ"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable


def cache_key(visitor_id: str, account_id: str | None = None) -> str:
    """visitor/account の組からキャッシュキーを組み立てる。"""
    return f"{visitor_id}:{account_id or ''}"


class _CacheEntry:
    __slots__ = ("flags", "expires_at")

    def __init__(self, flags: frozenset[str], expires_at: float) -> None:
        self.flags = flags
        self.expires_at = expires_at

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class SegmentCache:
    """visitor/account ごとのフラグ集合を TTL 付きで保持するキャッシュ。

    期限切れエントリは get 時に遅延削除する。エントリは丸ごと置き換えられ、
    部分更新されることはない。
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._store: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> frozenset[str] | None:
        """有効なフラグ集合を返す。未登録・期限切れなら None。"""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._store[key]
                return None
            return entry.flags

    def set(self, key: str, flags: Iterable[str], ttl_ms: int) -> None:
        """フラグ集合を保存する。既存エントリは置き換える。"""
        entry = _CacheEntry(frozenset(flags), self._clock() + ttl_ms / 1000)
        with self._lock:
            self._store[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def evict_expired(self) -> int:
        """期限切れエントリを一括削除し、削除件数を返す。"""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._store.items() if e.is_expired(now)]
            for key in expired:
                del self._store[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
