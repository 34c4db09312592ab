"""Git service names, command results and git failures"""
from dataclasses import dataclass
from enum import Enum
from typing import Sequence


class GitService(str, Enum):
    """Pack protocol services reachable over SSH"""
    UPLOAD_PACK = "git-upload-pack"
    RECEIVE_PACK = "git-receive-pack"

    @property
    def is_write(self) -> bool:
        return self is GitService.RECEIVE_PACK

    @property
    def operation(self) -> str:
        return "push" if self.is_write else "fetch"


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one git invocation"""
    exit_code: int
    stdout: bytes
    stderr: bytes

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """stdout as text without the trailing newline"""
        return self.stdout.decode("utf-8", errors="replace").strip()


def _describe(args: Sequence[str]) -> str:
    return "git " + " ".join(args)


class GitError(Exception):
    """Any failure running git"""


class GitCommandError(GitError):
    """git ran and exited nonzero"""

    def __init__(self, args: Sequence[str], exit_code: int, stderr: str):
        self.command = _describe(args)
        self.exit_code = exit_code
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"{self.command} exited with status {exit_code}{detail}")


class GitTimeoutError(GitError):
    """git was killed after exceeding its time limit"""

    def __init__(self, args: Sequence[str], timeout: float):
        self.command = _describe(args)
        self.timeout = timeout
        super().__init__(f"{self.command} was killed after {timeout} seconds")


class GitSecurityError(GitError):
    """Invocation refused before running git"""
