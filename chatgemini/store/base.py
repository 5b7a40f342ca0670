"""
键值存储抽象基类 - 定义所有存储后端的统一接口。
"""

from abc import ABC, abstractmethod


class KVStore(ABC):
    """
    键值存储抽象基类。

    只保存字符串值；结构化数据（如对话历史）由调用方自行序列化为 JSON。
    读写都是异步方法，调用方在每次存储访问处挂起，而不阻塞事件循环。
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """读取键对应的值。键不存在或已过期时返回 None。"""
        pass

    @abstractmethod
    async def put(self, key: str, value: str, expiration_ttl: int | None = None) -> None:
        """
        写入键值（整体覆盖）。

        参数:
            key: 键
            value: 字符串值
            expiration_ttl: 过期时间（秒），None 表示永不过期
        """
        pass

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """列出所有未过期、且以 prefix 开头的键（按字典序）。"""
        pass
