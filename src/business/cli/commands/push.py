"""
Push Command - 推送消息
"""

import json
import sys
from typing import Optional

import click

from src.business.cli.commands.common import fail
from src.business.service import PushService
from src.engine.codes import ResultCode


@click.command()
@click.argument("push_key")
@click.option("--title", "-T", required=True, help="消息标题")
@click.option("--content", "-c", default=None, help="消息内容")
@click.option("--url", default=None, help="点击跳转链接（模板消息）")
@click.option("--json", "as_json", is_flag=True, help="以 JSON 输出结果")
@click.pass_obj
def push(
    service: PushService,
    push_key: str,
    title: str,
    content: Optional[str],
    url: Optional[str],
    as_json: bool,
) -> None:
    """按 push key 推送消息

    \b
    示例：
      keypush push APKxxxx -T "部署完成" -c "v1.2.3 已上线"
    """
    result = service.push_by_key(push_key, title, content, url)

    if as_json:
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        if result.code != ResultCode.SUCCESS:
            sys.exit(1)
        return

    if result.code != ResultCode.SUCCESS:
        fail(result.error or "推送失败", result.code)

    click.echo(f"📤 推送完成: {result.push_id}")
    click.echo(f"   总数 {result.total}  成功 {result.success_count}  失败 {result.failed_count}")
    for item in result.results:
        status = "✅" if item.success else "❌"
        detail = item.external_id if item.success else item.error
        click.echo(f"   {status} {item.platform_user_id}  {detail or ''}")
