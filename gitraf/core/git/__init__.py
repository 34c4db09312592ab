"""Git protocol core module"""
from .command_executor import GitCommandExecutor
from .command_builder import GitCommandBuilder
from .command_parser import CommandParser, GatewayCommand
from .git_types import (
    GitService,
    CommandResult,
    GitError,
    GitCommandError,
    GitTimeoutError,
    GitSecurityError
)

__all__ = [
    'GitCommandExecutor',
    'GitCommandBuilder',
    'CommandParser',
    'GatewayCommand',
    'GitService',
    'CommandResult',
    'GitError',
    'GitCommandError',
    'GitTimeoutError',
    'GitSecurityError'
]
