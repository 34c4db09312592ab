"""Subprocess wrapper for the external pack protocol transport"""

import asyncio
import os
import time
from typing import Any, Dict, List, Optional, Sequence

from gitraf.core.exceptions import TransportError
from gitraf.core.git import GitService
from gitraf.core.models import Repository
from gitraf.infrastructure.logging import get_logger

logger = get_logger(__name__)


class BackendTransport:
    """Runs git-upload-pack / git-receive-pack for one SSH session

    The transport inherits the session's stdin and stdout so the pack
    protocol flows through untouched. It runs in its own process group and
    is terminated when the session task is cancelled.
    """

    # Environment passed through to the transport
    ENV_PREFIXES = ("PATH", "HOME", "USER", "LANG", "LC_", "GIT_PROTOCOL", "DOCKER_")

    def __init__(
        self,
        command_prefix: Sequence[str] = (),
        repository_root: Optional[str] = None,
        terminate_grace_seconds: float = 5.0,
    ):
        self.command_prefix = list(command_prefix)
        self.repository_root = repository_root
        self.terminate_grace_seconds = terminate_grace_seconds
        self.process: Optional[asyncio.subprocess.Process] = None
        self.start_time: Optional[float] = None

    def repository_argument(self, repository: Repository) -> str:
        """Path of the repository as the transport sees it"""
        if self.repository_root:
            return f"{self.repository_root.rstrip('/')}/{repository.directory_name}"
        return str(repository.path)

    def build_command(self, service: GitService, repository: Repository) -> List[str]:
        return self.command_prefix + [service.value, self.repository_argument(repository)]

    def _create_environment(self) -> Dict[str, str]:
        return {
            k: v
            for k, v in os.environ.items()
            if k.startswith(self.ENV_PREFIXES)
        }

    async def run(
        self,
        service: GitService,
        repository: Repository,
        stdin: Any = None,
        stdout: Any = None,
        stderr: Any = None,
    ) -> int:
        """
        Execute the transport and wait for it

        Args:
            service: Pack protocol service to run
            repository: Target repository
            stdin, stdout, stderr: Stream overrides; None inherits the session's

        Returns:
            Transport exit code (128 + signal number if it was killed)

        Raises:
            TransportError: If the transport cannot be started
        """
        cmd = self.build_command(service, repository)

        logger.info(
            "transport_starting",
            service=service.value,
            repository=repository.name,
            command=cmd[0],
        )

        self.start_time = time.monotonic()

        try:
            self.process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                env=self._create_environment(),
                start_new_session=True,  # Own process group for cleanup
            )
        except OSError as e:
            logger.error("transport_start_failed", command=cmd[0], error=str(e))
            raise TransportError(
                f"Failed to start transport: {e}",
                details={"command": cmd[0]},
            )

        try:
            return_code = await self.process.wait()
        finally:
            if self.process.returncode is None:
                await self.terminate()

        duration = time.monotonic() - self.start_time
        logger.info(
            "transport_completed",
            service=service.value,
            return_code=return_code,
            duration=duration,
        )

        if return_code < 0:
            return 128 - return_code
        return return_code

    async def terminate(self) -> None:
        """Terminate the transport gracefully, then kill it"""
        process = self.process
        if not process or process.returncode is not None:
            return

        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self.terminate_grace_seconds)
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()

        logger.warning("transport_terminated", pid=process.pid)
