"""
Verify Command - 索引一致性检查
"""

import sys

import click

from src.business.service import PushService


@click.command()
@click.option("--repair", is_flag=True, help="修复发现的问题")
@click.pass_obj
def verify(service: PushService, repair: bool) -> None:
    """检查注册表索引一致性"""
    registries = [
        ("channels", service.channels),
        ("apps", service.targets),
        ("recipients", service.recipients),
    ]
    consistent = True
    for name, registry in registries:
        report = registry.verify(repair=repair)
        if report.is_consistent:
            click.echo(f"✅ {name}: OK")
            continue
        consistent = False
        suffix = " (repaired)" if report.repaired else ""
        click.echo(
            f"⚠️ {name}: dangling={len(report.dangling_ids)} stale_index={len(report.stale_index_keys)} "
            f"unlisted={len(report.unlisted_ids)} unindexed={len(report.unindexed_ids)}{suffix}"
        )
    if not consistent and not repair:
        sys.exit(1)
