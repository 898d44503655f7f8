"""
Config Utilities - 配置工具函数

所有配置模块共享的工具函数。
"""

import os
from typing import Any


def merge_overrides(
    base: dict[str, Any],
    overrides: dict[str, Any],
) -> dict[str, Any]:
    """递归深合并覆盖配置到基础配置

    - 嵌套 dict：递归合并
    - 其他类型：直接覆盖
    - 值为 None 的覆盖项被忽略

    Args:
        base: 基础配置字典
        overrides: 覆盖字典

    Returns:
        合并后的配置字典（不修改原字典）
    """
    result = base.copy()
    for key, value in overrides.items():
        if value is None:
            continue
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_overrides(result[key], value)
        else:
            result[key] = value
    return result


def env_overrides(prefix: str, mapping: dict[str, tuple[str, ...]]) -> dict[str, Any]:
    """Build a nested override dict from environment variables.

    Args:
        prefix: Variable prefix, e.g. ``KEYPUSH_``.
        mapping: ``{"RATE_LIMIT": ("rate_limit", "per_minute"), ...}``

    Returns:
        Nested dict containing only variables that are set.
    """
    result: dict[str, Any] = {}
    for suffix, path in mapping.items():
        raw = os.getenv(f"{prefix}{suffix}")
        if raw is None or raw == "":
            continue
        node = result
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = _coerce(raw)
    return result


def _coerce(raw: str) -> Any:
    """Best-effort conversion of an environment string."""
    lowered = raw.strip().lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    try:
        return int(raw)
    except ValueError:
        return raw
