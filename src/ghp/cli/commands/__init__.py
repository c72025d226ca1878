# ghp/cli/commands: Command modules for the ghp CLI.
#
# Each module in this package provides a command group.

from .hooks import hooks_app

__all__ = [
    "hooks_app",
]
