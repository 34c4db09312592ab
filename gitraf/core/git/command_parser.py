"""Parsing of the command line an SSH client asks the git user to run"""
import re
from dataclasses import dataclass

from gitraf.core.exceptions import InvalidCommandError

from .git_types import GitService


@dataclass(frozen=True)
class GatewayCommand:
    """A recognised pack protocol request"""
    service: GitService
    repository: str

    @property
    def is_push(self) -> bool:
        return self.service.is_write


class CommandParser:
    """Turns raw SSH command text into a GatewayCommand or rejects it"""

    # <service> '<repository>' and nothing else
    COMMAND_PATTERN = re.compile(
        r"(?P<service>git-upload-pack|git-receive-pack) '(?P<repository>[^'\x00\r\n]+)'"
    )

    @classmethod
    def parse(cls, raw: str) -> GatewayCommand:
        """
        Parse an SSH command

        Args:
            raw: Command text as received from the SSH session

        Returns:
            Parsed command

        Raises:
            InvalidCommandError: If the text is not one of the two accepted forms
        """
        if not raw:
            raise InvalidCommandError("Invalid git command: no command given")

        match = cls.COMMAND_PATTERN.fullmatch(raw)
        if not match:
            raise InvalidCommandError(
                "Invalid git command",
                details={"command": raw[:200]}
            )

        return GatewayCommand(
            service=GitService(match.group("service")),
            repository=match.group("repository"),
        )
