"""
Channel Commands - 渠道管理命令
"""

import click

from src.business.cli.commands.common import fail_with, format_time
from src.business.errors import PushError
from src.business.notification.channels.registry import mask_channel
from src.business.service import PushService


@click.group()
def channel() -> None:
    """渠道管理（微信公众号凭证）"""
    pass


@channel.command("add")
@click.argument("name")
@click.option("--app-id", required=True, help="公众号 AppID")
@click.option("--app-secret", required=True, help="公众号 AppSecret")
@click.option("--type", "channel_type", default="wechat", show_default=True, help="渠道类型")
@click.pass_obj
def add_channel(service: PushService, name: str, app_id: str, app_secret: str, channel_type: str) -> None:
    """创建渠道"""
    try:
        created = service.channels.create(name, app_id, app_secret, channel_type)
    except PushError as e:
        fail_with(e)
    click.echo(f"✅ 渠道已创建: {created.id}")


@channel.command("list")
@click.pass_obj
def list_channels(service: PushService) -> None:
    """列出渠道（AppSecret 已脱敏）"""
    channels = service.channels.list()
    if not channels:
        click.echo("暂无渠道")
        return
    for item in channels:
        masked = mask_channel(item)
        click.echo(
            f"{masked.id}  {masked.name}  type={masked.type}  app_id={masked.config.app_id}  "
            f"secret={masked.config.app_secret}  created={format_time(masked.created_at)}"
        )


@channel.command("remove")
@click.argument("channel_id")
@click.pass_obj
def remove_channel(service: PushService, channel_id: str) -> None:
    """删除渠道（被推送目标引用时拒绝）"""
    try:
        service.channels.delete(channel_id)
    except PushError as e:
        fail_with(e)
    click.echo(f"🗑️ 渠道已删除: {channel_id}")
