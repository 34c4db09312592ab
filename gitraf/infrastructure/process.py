"""Bounded execution of hook scripts and build commands"""

import asyncio
import os
import signal
import time
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Union

from gitraf.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ProcessTimeoutError(Exception):
    """Command exceeded its wall clock limit and was killed"""

    def __init__(self, command: str, timeout: float):
        super().__init__(f"'{command}' timed out after {timeout} seconds")
        self.command = command
        self.timeout = timeout


class CommandRunner:
    """Runs a command in its own process group, streaming combined output"""

    CHUNK_SIZE = 8192

    def __init__(self, timeout: Optional[float] = None, output: Optional[BinaryIO] = None):
        """
        Args:
            timeout: Wall clock limit in seconds, None for unbounded
            output: Sink for the command's stdout and stderr
        """
        self.timeout = timeout
        self.output = output

    async def execute(
        self,
        command: Union[str, List[str]],
        cwd: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        input_data: Optional[bytes] = None,
        shell: bool = False,
    ) -> int:
        """
        Execute a command and wait for it

        Args:
            command: Argument list, or a shell string when shell is True
            cwd: Working directory
            env: Extra environment variables
            input_data: Bytes written to stdin before it is closed
            shell: Run command through /bin/sh -c

        Returns:
            Exit code (128 + signal number if killed by a signal)

        Raises:
            ProcessTimeoutError: If the command outlives the timeout
        """
        if shell:
            argv = ["/bin/sh", "-c", command]
            label = command
        else:
            argv = list(command)
            label = " ".join(argv)

        run_env = os.environ.copy()
        if env:
            run_env.update(env)

        start_time = time.monotonic()
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if input_data is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=cwd,
            env=run_env,
            start_new_session=True,  # Whole build tree can be killed at once
        )

        try:
            await asyncio.wait_for(
                asyncio.gather(self._feed(process, input_data), self._pump(process)),
                timeout=self.timeout,
            )
            return_code = await process.wait()
        except asyncio.TimeoutError:
            self._kill_group(process)
            await process.wait()
            logger.warning("command_timed_out", command=label, timeout=self.timeout)
            raise ProcessTimeoutError(label, self.timeout)
        finally:
            if process.returncode is None:
                self._kill_group(process)
                await process.wait()

        logger.debug(
            "command_completed",
            command=label,
            return_code=return_code,
            duration=time.monotonic() - start_time,
        )

        if return_code < 0:
            return 128 - return_code
        return return_code

    async def _feed(self, process: asyncio.subprocess.Process, input_data: Optional[bytes]) -> None:
        if input_data is None or process.stdin is None:
            return
        try:
            process.stdin.write(input_data)
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # Hooks may exit without reading their input
            pass
        finally:
            process.stdin.close()

    async def _pump(self, process: asyncio.subprocess.Process) -> None:
        while True:
            chunk = await process.stdout.read(self.CHUNK_SIZE)
            if not chunk:
                break
            if self.output is not None:
                self.output.write(chunk)
                self.output.flush()

    @staticmethod
    def _kill_group(process: asyncio.subprocess.Process) -> None:
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
