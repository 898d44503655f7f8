"""
Keygen Command - 生成随机 key
"""

import click

from src.engine.keys import KeyPrefix, new_id


@click.command()
@click.option(
    "--type",
    "-t",
    "key_type",
    type=click.Choice(["admin", "push"]),
    default="admin",
    help="key 类型：admin (管理令牌)、push (推送 key)",
)
@click.option("--count", "-n", type=click.IntRange(1, 100), default=1, help="生成数量")
def keygen(key_type: str, count: int) -> None:
    """生成随机 key（不写入存储）

    \b
    示例：
      keypush keygen
      keypush keygen -t push -n 5
    """
    prefix = KeyPrefix.ADMIN_TOKEN if key_type == "admin" else KeyPrefix.PUSH_KEY
    for _ in range(count):
        click.echo(new_id(prefix))
