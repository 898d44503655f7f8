"""
CLI helpers - 子命令共用工具
"""

import sys

import click

from src.business.errors import PushError
from src.engine.codes import ResultCode


def fail(message: str, code: int = ResultCode.INTERNAL_ERROR) -> None:
    """输出错误并以非零状态退出"""
    click.echo(f"❌ {message} (code={int(code)})", err=True)
    sys.exit(1)


def fail_with(error: PushError) -> None:
    fail(error.message, error.code)


def format_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"
