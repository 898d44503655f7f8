"""
keypush CLI - 命令行工具

提供命令：
- keygen: 生成随机 key
- channel / app / recipient: 注册表管理
- push: 推送消息
- history: 历史查询与清理
- verify: 索引一致性检查
"""

from src.business.cli.main import cli

__all__ = ["cli"]
