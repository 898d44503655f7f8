"""
Recipient Commands - 接收者管理命令
"""

from typing import Optional

import click

from src.business.cli.commands.common import fail_with, format_time
from src.business.errors import PushError
from src.business.service import PushService


@click.group()
def recipient() -> None:
    """接收者 (OpenID) 管理"""
    pass


@recipient.command("add")
@click.argument("app_id")
@click.argument("openid")
@click.option("--nickname", default=None, help="昵称")
@click.option("--remark", default=None, help="备注")
@click.pass_obj
def add_recipient(
    service: PushService,
    app_id: str,
    openid: str,
    nickname: Optional[str],
    remark: Optional[str],
) -> None:
    """为推送目标添加接收者"""
    try:
        created = service.recipients.create(app_id, openid, nickname=nickname, remark=remark)
    except PushError as e:
        fail_with(e)
    click.echo(f"✅ 接收者已添加: {created.id}")


@recipient.command("list")
@click.argument("app_id")
@click.pass_obj
def list_recipients(service: PushService, app_id: str) -> None:
    """列出推送目标的接收者"""
    try:
        service.targets.require(app_id)
    except PushError as e:
        fail_with(e)
    recipients = service.recipients.list_by_target(app_id)
    if not recipients:
        click.echo("暂无接收者")
        return
    for item in recipients:
        click.echo(
            f"{item.id}  {item.platform_user_id}  {item.nickname or '-'}  "
            f"{item.remark or '-'}  created={format_time(item.created_at)}"
        )


@recipient.command("remove")
@click.argument("recipient_id")
@click.pass_obj
def remove_recipient(service: PushService, recipient_id: str) -> None:
    """删除接收者"""
    try:
        service.recipients.delete(recipient_id)
    except PushError as e:
        fail_with(e)
    click.echo(f"🗑️ 接收者已删除: {recipient_id}")
