"""
文件键值存储 - 每个键保存为一个 JSON 文件。

【存储格式】
文件名由键转换而来（通过 safe_filename 把冒号等字符替换为下划线），内容为：
    {"key": "session:100", "value": "...", "expires_at": 1700000000.0}

- key：原始键名（文件名经过转义，无法可靠还原，因此单独保存）
- expires_at：Unix 时间戳（秒），null 表示永不过期

过期文件在读取时被删除，相当于惰性垃圾回收。
写入先写临时文件再原子替换，避免并发读到半截内容。

文件 I/O 通过 asyncio.to_thread 放到线程池执行，不阻塞事件循环。
"""

import asyncio
import json
import os
import time
import uuid
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from chatgemini.store.base import KVStore
from chatgemini.utils.helpers import ensure_dir, safe_filename


class FileKVStore(KVStore):
    """
    基于本地文件系统的键值存储。

    属性:
        root: 数据目录
    """

    def __init__(self, root: Path, clock: Callable[[], float] = time.time):
        self.root = ensure_dir(Path(root).expanduser())
        self._clock = clock

    def _path(self, key: str) -> Path:
        return self.root / f"{safe_filename(key)}.json"

    def _read_record(self, path: Path) -> dict[str, Any] | None:
        """读取并校验单个记录文件；已过期的记录会被删除。"""
        try:
            with open(path) as f:
                record = json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding unreadable store record {path.name}: {e}")
            return None

        if (
            not isinstance(record, dict)
            or not isinstance(record.get("key"), str)
            or not isinstance(record.get("value"), str)
            or not isinstance(record.get("expires_at"), (int, float, type(None)))
        ):
            logger.warning(f"Discarding malformed store record {path.name}")
            return None

        expires_at = record.get("expires_at")
        if expires_at is not None and self._clock() >= expires_at:
            path.unlink(missing_ok=True)
            return None
        return record

    def _get_sync(self, key: str) -> str | None:
        record = self._read_record(self._path(key))
        return record["value"] if record else None

    def _put_sync(self, key: str, value: str, expiration_ttl: int | None) -> None:
        path = self._path(key)
        record = {
            "key": key,
            "value": value,
            "expires_at": self._clock() + expiration_ttl if expiration_ttl is not None else None,
        }
        tmp = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            with open(tmp, "w") as f:
                json.dump(record, f, ensure_ascii=False)
            os.replace(tmp, path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise

    def _keys_sync(self, prefix: str) -> list[str]:
        keys = []
        for path in self.root.glob("*.json"):
            record = self._read_record(path)
            if record and record["key"].startswith(prefix):
                keys.append(record["key"])
        return sorted(keys)

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get_sync, key)

    async def put(self, key: str, value: str, expiration_ttl: int | None = None) -> None:
        await asyncio.to_thread(self._put_sync, key, value, expiration_ttl)

    async def keys(self, prefix: str = "") -> list[str]:
        return await asyncio.to_thread(self._keys_sync, prefix)
