"""
App Commands - 推送目标管理命令
"""

from typing import Optional

import click

from src.business.cli.commands.common import fail_with, format_time
from src.business.errors import PushError
from src.business.service import PushService
from src.data.models.target import MessageType, PushMode


@click.group()
def app() -> None:
    """推送目标管理"""
    pass


@app.command("add")
@click.argument("name")
@click.option("--channel", "-c", "channel_id", required=True, help="渠道 ID")
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in PushMode]),
    default=PushMode.SINGLE.value,
    show_default=True,
    help="推送模式：single (单人) / subscribe (群发)",
)
@click.option(
    "--message-type",
    type=click.Choice([t.value for t in MessageType]),
    default=MessageType.NORMAL.value,
    show_default=True,
    help="消息类型",
)
@click.option("--template-id", default=None, help="模板消息 ID（template 类型必填）")
@click.pass_obj
def add_app(
    service: PushService,
    name: str,
    channel_id: str,
    mode: str,
    message_type: str,
    template_id: Optional[str],
) -> None:
    """创建推送目标"""
    try:
        target = service.targets.create(name, channel_id, mode, message_type, template_id)
    except PushError as e:
        fail_with(e)
    click.echo(f"✅ 推送目标已创建: {target.id}")
    click.echo(f"   push key: {target.key}")
    click.echo(f"   webhook:  /{target.key}.send")


@app.command("list")
@click.pass_obj
def list_apps(service: PushService) -> None:
    """列出推送目标"""
    targets = service.targets.list()
    if not targets:
        click.echo("暂无推送目标")
        return
    for target in targets:
        count = service.targets.count_recipients(target.id)
        click.echo(
            f"{target.id}  {target.name}  key={target.key}  mode={target.push_mode.value}  "
            f"type={target.message_type.value}  recipients={count}  created={format_time(target.created_at)}"
        )


@app.command("remove")
@click.argument("app_id")
@click.pass_obj
def remove_app(service: PushService, app_id: str) -> None:
    """删除推送目标（级联删除接收者）"""
    try:
        removed = service.targets.delete(app_id)
    except PushError as e:
        fail_with(e)
    click.echo(f"🗑️ 推送目标已删除: {app_id}（接收者 {removed} 个）")


@app.command("bind-url")
@click.argument("push_key")
@click.option("--redirect-uri", default=None, help="授权回调地址")
@click.pass_obj
def bind_url(service: PushService, push_key: str, redirect_uri: Optional[str]) -> None:
    """生成微信授权绑定链接"""
    try:
        redirect = service.binding.issue_bind_redirect(push_key, redirect_uri)
    except PushError as e:
        fail_with(e)
    click.echo(redirect.url)
    click.echo(f"有效期 {redirect.expires_in} 秒")
