"""
History Commands - 消息历史命令
"""

from typing import Optional

import click

from src.business.cli.commands.common import fail_with, format_time
from src.business.errors import PushError
from src.business.service import PushService


@click.group()
def history() -> None:
    """消息历史"""
    pass


@history.command("list")
@click.option("--page", "-p", type=int, default=1, show_default=True, help="页码")
@click.option("--size", "-s", "page_size", type=int, default=20, show_default=True, help="每页数量")
@click.option("--app", "target_id", default=None, help="按推送目标筛选")
@click.option("--start", "start_date", default=None, help="开始时间 (ISO 8601)")
@click.option("--end", "end_date", default=None, help="结束时间 (ISO 8601)")
@click.pass_obj
def list_history(
    service: PushService,
    page: int,
    page_size: int,
    target_id: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
) -> None:
    """分页查询历史（时间倒序）"""
    try:
        result = service.history.list(
            page=page,
            page_size=page_size,
            target_id=target_id,
            start_date=start_date,
            end_date=end_date,
        )
    except PushError as e:
        fail_with(e)

    click.echo(f"共 {result.total} 条，第 {result.page} 页")
    for record in result.items:
        click.echo(
            f"{format_time(record.created_at)}  {record.id}  {record.direction.value}  "
            f"{record.title}  {record.success_count}/{record.total}"
        )


@history.command("prune")
@click.option("--days", "-d", type=int, default=None, help="保留天数（默认使用配置）")
@click.pass_obj
def prune_history(service: PushService, days: Optional[int]) -> None:
    """清理过期历史"""
    try:
        count = service.prune_history(days)
    except PushError as e:
        fail_with(e)
    click.echo(f"🧹 已清理 {count} 条记录")


@history.command("stats")
@click.pass_obj
def history_stats(service: PushService) -> None:
    """历史统计"""
    stats = service.history.stats()
    click.echo(f"总记录 {stats.total}  今日 {stats.today}  成功 {stats.success}  失败 {stats.failed}")
