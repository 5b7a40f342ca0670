"""
键值存储模块 - 会话索引与对话历史的持久化后端。

本模块对外只暴露一个极简接口：按键读写字符串，写入时可附带过期时间（TTL）。
所有跨请求的状态都保存在这里，Webhook 进程本身不持有任何会话状态。

【后端实现】
- MemoryKVStore：进程内字典，适合测试与本地调试（重启即丢失）
- FileKVStore：每个键一个 JSON 文件，默认存放在 ~/.chatgemini/kv/

【Java 开发者类比】
- KVStore 类似于 Spring Data 的 KeyValueOperations 接口
- TTL 语义类似于 Redis 的 SETEX：过期后读取返回 None，由存储自行回收
"""

from chatgemini.store.base import KVStore
from chatgemini.store.memory import MemoryKVStore
from chatgemini.store.file import FileKVStore

__all__ = ["KVStore", "MemoryKVStore", "FileKVStore", "create_store"]


def create_store(backend: str, path=None) -> KVStore:
    """
    根据配置创建存储后端实例。

    参数:
        backend: 后端类型，"file" 或 "memory"
        path: file 后端的数据目录

    返回:
        KVStore 实例

    异常:
        ValueError: 未知的后端类型
    """
    if backend == "memory":
        return MemoryKVStore()
    if backend == "file":
        if path is None:
            raise ValueError("File store requires a path")
        return FileKVStore(path)
    raise ValueError(f"Unknown store backend: {backend}")
