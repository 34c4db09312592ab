"""SSH command gateway.

Entry point for every git operation arriving over SSH. The gateway accepts
exactly two commands, resolves the target repository inside the store, hands
the session to the backend transport and, after an accepted push, runs the
post-receive hooks. The session's exit code is always the transport's own
exit code once the transport has run; hooks cannot turn an accepted push
into a rejected one.
"""

import asyncio
import signal
import sys
import uuid
from typing import Optional, TextIO, Tuple

from gitraf.core.exceptions import GitrafError
from gitraf.core.git import CommandParser, GatewayCommand
from gitraf.core.models import Repository
from gitraf.core.repository import RepositoryStore
from gitraf.infrastructure.hooks import HookDispatcher
from gitraf.infrastructure.logging import bind_context, clear_context, get_logger
from gitraf.infrastructure.transport import BackendTransport

logger = get_logger(__name__)

# Signals that mean the SSH session is going away
SESSION_SIGNALS = (signal.SIGHUP, signal.SIGTERM, signal.SIGINT)


class CommandGateway:
    """Parses, authorizes and dispatches one SSH git command"""

    def __init__(
        self,
        store: RepositoryStore,
        transport: BackendTransport,
        dispatcher: HookDispatcher,
        error_output: Optional[TextIO] = None,
    ):
        """Initialize the gateway.

        Args:
            store: Repository store used to resolve the target
            transport: Backend transport running the pack protocol
            dispatcher: Post-receive hook dispatcher
            error_output: Where client-visible errors go (stderr by default)
        """
        self.store = store
        self.transport = transport
        self.dispatcher = dispatcher
        self.error_output = error_output
        # Set once the transport has exited; the session reports it from then on
        self.exit_code: Optional[int] = None

    def authorize(self, command: str) -> Tuple[GatewayCommand, Repository]:
        """Parse the command and resolve its repository.

        Raises:
            InvalidCommandError: If the command is not an accepted git operation
            RepositoryPathError: If the repository argument escapes the store
            RepositoryNotFoundError: If the repository does not exist
        """
        parsed = CommandParser.parse(command)
        bind_context(service=parsed.service.value)

        repository = self.store.resolve(parsed.repository)
        bind_context(repository=repository.name)

        return parsed, repository

    async def handle(
        self,
        command: str,
        username: str,
        session_id: Optional[str] = None,
    ) -> int:
        """Handle one SSH session.

        Args:
            command: The command the client asked to run
            username: System username of the authenticated identity
            session_id: Correlation id for logs (generated if omitted)

        Returns:
            Exit code for the SSH session
        """
        session_id = session_id or uuid.uuid4().hex[:12]
        self.exit_code = None
        clear_context()
        bind_context(session_id=session_id, username=username)

        try:
            parsed, repository = self.authorize(command)
        except GitrafError as e:
            logger.warning("command_rejected", code=e.code, reason=e.message)
            self._report(e.message)
            return e.exit_code

        logger.info("session_started", operation=parsed.service.operation)

        try:
            exit_code = await self.transport.run(parsed.service, repository)
        except GitrafError as e:
            self._report(e.message)
            return e.exit_code
        self.exit_code = exit_code

        if parsed.is_push and exit_code == 0:
            await self._run_hooks(repository, username, session_id)

        logger.info("session_finished", exit_code=exit_code)
        return exit_code

    async def _run_hooks(self, repository: Repository, username: str, session_id: str) -> None:
        try:
            context = await self.dispatcher.dispatch(
                repository, username=username, session_id=session_id
            )
        except Exception as e:
            # The push is already accepted
            logger.exception("hook_dispatch_failed", error=str(e))
            return

        if context.has_errors():
            logger.warning("hooks_reported_errors", errors=context.errors)
        else:
            logger.info("hooks_completed", refs=context.refs)

    def _report(self, message: str) -> None:
        stream = self.error_output or sys.stderr
        stream.write(f"{message}\n")
        stream.flush()


def run_session(gateway: CommandGateway, command: str, username: str) -> int:
    """Run a gateway session, terminating the transport if the session ends"""
    received = []

    async def main() -> int:
        loop = asyncio.get_running_loop()
        task = asyncio.current_task()

        def on_signal(signum: int) -> None:
            received.append(signum)
            task.cancel()

        for signum in SESSION_SIGNALS:
            loop.add_signal_handler(signum, on_signal, signum)

        try:
            return await gateway.handle(command, username)
        except asyncio.CancelledError:
            signum = received[0] if received else signal.SIGTERM
            logger.warning("session_cancelled", signal=signal.Signals(signum).name)
            if gateway.exit_code is not None:
                return gateway.exit_code
            return 128 + signum
        finally:
            for signum in SESSION_SIGNALS:
                loop.remove_signal_handler(signum)

    return asyncio.run(main())
