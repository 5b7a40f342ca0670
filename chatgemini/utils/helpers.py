"""
工具函数集合 - chatgemini 项目全局通用的辅助函数。

函数分类：
- 路径管理：ensure_dir
- 字符串工具：truncate_string, safe_filename
- 时间工具：now_ms
"""

import time
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """
    确保目录存在，不存在则递归创建。

    参数:
        path: 目标目录路径

    返回:
        创建后的目录路径（原样返回）
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def now_ms() -> int:
    """当前时间的毫秒级 Unix 时间戳（对话历史的 lastUpdated 字段使用此格式）。"""
    return int(time.time() * 1000)


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """
    截断字符串到指定最大长度，超出时添加后缀。

    参数:
        s: 原始字符串
        max_len: 最大长度（包含后缀），默认 100
        suffix: 截断后缀，默认 "..."

    返回:
        截断后的字符串
    """
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix


def safe_filename(name: str) -> str:
    """
    将字符串转换为安全的文件名（替换 < > : " / \\ | ? * 为下划线）。

    参数:
        name: 原始文件名

    返回:
        安全的文件名字符串
    """
    unsafe = '<>:"/\\|?*'
    for char in unsafe:
        name = name.replace(char, "_")
    return name.strip()
