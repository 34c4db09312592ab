"""Runs the git plumbing commands gitraf needs, and nothing else"""
import asyncio
import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .git_types import CommandResult, GitCommandError, GitSecurityError, GitTimeoutError


class GitCommandExecutor:
    """Runs git with a closed set of subcommands in a non-interactive environment"""

    SUBCOMMANDS = frozenset({
        'for-each-ref', 'checkout',
    })

    # Long options that may carry an inline "=value"
    VALUE_OPTIONS = frozenset({'--count', '--sort', '--format'})

    NON_INTERACTIVE_ENV = {
        'GIT_TERMINAL_PROMPT': '0',
        'GIT_ASKPASS': '/bin/echo',
        'LC_ALL': 'C',
    }

    def __init__(self, git_binary: str = 'git', timeout: float = 300):
        self.git_binary = git_binary
        self.timeout = timeout

    def check(self, args: Sequence[str]) -> None:
        """
        Refuse anything outside the allowed subcommands and option forms

        Raises:
            GitSecurityError: If args must not be run
        """
        if not args:
            raise GitSecurityError("Empty git command")

        if args[0] not in self.SUBCOMMANDS:
            raise GitSecurityError(f"git {args[0]} is not allowed")

        for arg in args[1:]:
            if '\x00' in arg or '\n' in arg or '\r' in arg:
                raise GitSecurityError(f"Control character in argument: {arg!r}")

            option, has_value, _ = arg.partition('=')
            if arg.startswith('--') and has_value and option not in self.VALUE_OPTIONS:
                raise GitSecurityError(f"Option {option} may not carry a value")

    async def execute(
        self,
        args: List[str],
        cwd: Optional[Path] = None,
        input_data: Optional[bytes] = None,
        env: Optional[Dict[str, str]] = None
    ) -> CommandResult:
        """
        Run git and collect its output

        Args:
            args: Arguments after 'git'
            cwd: Working directory
            input_data: Bytes for stdin
            env: Variables added to the inherited environment

        Returns:
            CommandResult of a successful run

        Raises:
            GitSecurityError: If args fail check()
            GitCommandError: If git exits nonzero
            GitTimeoutError: If git outlives the timeout
        """
        self.check(args)

        process = await asyncio.create_subprocess_exec(
            self.git_binary,
            *args,
            stdin=asyncio.subprocess.PIPE if input_data else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=self._environment(env),
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(input_data), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            raise GitTimeoutError(args, self.timeout)
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()

        result = CommandResult(exit_code=process.returncode, stdout=stdout, stderr=stderr)
        if not result.success:
            raise GitCommandError(args, result.exit_code, stderr.decode('utf-8', errors='replace'))

        return result

    def _environment(self, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        env = dict(os.environ)
        env.update(extra or {})
        env.update(self.NON_INTERACTIVE_ENV)
        return env
