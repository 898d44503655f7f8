"""
CLI Main Entry Point - 命令行主入口

使用 Click 库构建命令行工具。
"""

import logging
import sys
from typing import Optional

import click

from src.business.cli.commands.app import app
from src.business.cli.commands.channel import channel
from src.business.cli.commands.history import history
from src.business.cli.commands.keygen import keygen
from src.business.cli.commands.push import push
from src.business.cli.commands.recipient import recipient
from src.business.cli.commands.verify import verify
from src.business.config.push_config import PushConfig
from src.business.errors import ConfigurationError
from src.business.service import PushService


@click.group()
@click.version_option(version="0.1.0", prog_name="keypush")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="配置文件路径（默认 config/keypush.yaml）",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="显示详细日志",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """keypush - 消息推送服务命令行工具

    管理渠道、推送目标和接收者，发送推送并查询历史。
    使用 redis 存储时各命令共享数据；默认内存存储仅在单次进程内有效。
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if ctx.obj is not None:
        return

    try:
        config = PushConfig.load(config_path)
    except ConfigurationError as e:
        click.echo(f"❌ 配置错误: {e.message}", err=True)
        sys.exit(1)
    ctx.obj = PushService(config)


# 注册子命令
cli.add_command(keygen)
cli.add_command(channel)
cli.add_command(app)
cli.add_command(recipient)
cli.add_command(push)
cli.add_command(history)
cli.add_command(verify)


if __name__ == "__main__":
    cli()
