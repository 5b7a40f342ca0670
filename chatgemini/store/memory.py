"""
进程内键值存储 - 基于字典的 KVStore 实现，用于测试和本地调试。
"""

import time
from typing import Callable

from chatgemini.store.base import KVStore


class MemoryKVStore(KVStore):
    """
    进程内键值存储。

    过期判断采用惰性策略：读取时发现已过期就删除并返回 None。
    clock 参数可注入假时钟，便于测试 TTL 行为。
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}  # key → (value, expires_at)

    def _expired(self, expires_at: float | None) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    async def get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._expired(expires_at):
            del self._data[key]
            return None
        return value

    async def put(self, key: str, value: str, expiration_ttl: int | None = None) -> None:
        expires_at = self._clock() + expiration_ttl if expiration_ttl is not None else None
        self._data[key] = (value, expires_at)

    async def keys(self, prefix: str = "") -> list[str]:
        return sorted(
            k for k, (_, expires_at) in self._data.items()
            if k.startswith(prefix) and not self._expired(expires_at)
        )
