"""
CLI Commands - 命令行子命令
"""

from src.business.cli.commands.app import app
from src.business.cli.commands.channel import channel
from src.business.cli.commands.history import history
from src.business.cli.commands.keygen import keygen
from src.business.cli.commands.push import push
from src.business.cli.commands.recipient import recipient
from src.business.cli.commands.verify import verify

__all__ = ["app", "channel", "history", "keygen", "push", "recipient", "verify"]
