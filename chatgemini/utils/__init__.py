"""
工具函数模块 - 提供 chatgemini 项目全局通用的辅助函数。
"""

from chatgemini.utils.helpers import ensure_dir, now_ms, safe_filename, truncate_string

__all__ = ["ensure_dir", "now_ms", "safe_filename", "truncate_string"]
