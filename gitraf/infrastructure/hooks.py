"""Post-receive hook dispatch"""

import asyncio
import sys
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional

from gitraf.core.models import PushEvent, Repository
from gitraf.core.repository import RepositoryStore
from gitraf.infrastructure.logging import get_logger
from gitraf.infrastructure.process import CommandRunner, ProcessTimeoutError

logger = get_logger(__name__)


class HookContext:
    """Context object passed to hooks"""

    def __init__(
        self,
        repository: Repository,
        events: List[PushEvent],
        username: Optional[str] = None,
        session_id: Optional[str] = None,
        output: Optional[BinaryIO] = None,
    ):
        self.repository = repository
        self.events = events
        self.username = username
        self.session_id = session_id
        self.output = output
        self.timestamp = datetime.now(timezone.utc)

        # Hook results storage
        self.results: Dict[str, Any] = {}

        # Error tracking
        self.errors: List[str] = []

    @property
    def refs(self) -> List[str]:
        return [event.ref for event in self.events]

    def stdin_payload(self) -> bytes:
        """Event lines in post-receive input format"""
        return "".join(event.to_line() for event in self.events).encode("utf-8")

    def emit(self, message: str) -> None:
        """Write a line the pushing client will see"""
        if self.output is None:
            return
        self.output.write(f"{message}\n".encode("utf-8"))
        self.output.flush()

    def add_result(self, key: str, value: Any) -> None:
        """Add a result from a hook execution"""
        self.results[key] = value

    def add_error(self, error: str) -> None:
        """Add an error message"""
        self.errors.append(error)

    def has_errors(self) -> bool:
        """Check if any errors occurred"""
        return len(self.errors) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary"""
        return {
            "repository": self.repository.name,
            "refs": self.refs,
            "username": self.username,
            "session_id": self.session_id,
            "timestamp": self.timestamp.isoformat(),
            "results": self.results,
            "errors": self.errors,
        }


class Hook(ABC):
    """Base class for post-receive hooks"""

    def __init__(self, name: str, enabled: bool = True):
        self.name = name
        self.enabled = enabled

    @abstractmethod
    async def execute(self, context: HookContext) -> None:
        """Execute the hook with given context"""
        pass

    def should_run(self, context: HookContext) -> bool:
        """Check if hook should run for given context"""
        return self.enabled


class ScriptHook(Hook):
    """An executable from the repository's hooks directory"""

    def __init__(self, path: Path):
        super().__init__(f"script:{path.name}", enabled=True)
        self.path = path

    async def execute(self, context: HookContext) -> None:
        runner = CommandRunner(output=context.output)

        return_code = await runner.execute(
            [str(self.path)],
            cwd=context.repository.path,
            env={"GIT_DIR": str(context.repository.path)},
            input_data=context.stdin_payload(),
        )

        context.add_result(self.name, {"return_code": return_code})
        if return_code != 0:
            context.add_error(f"Hook '{self.name}' exited with status {return_code}")
            logger.warning(
                "hook_script_failed",
                hook=self.name,
                return_code=return_code,
                repository=context.repository.name,
            )


class HookDispatcher:
    """Works out what a push updated and runs the post-receive chain once"""

    def __init__(
        self,
        store: RepositoryStore,
        hooks: Optional[List[Hook]] = None,
        timeout: float = 900.0,
        output: Optional[BinaryIO] = None,
    ):
        self.store = store
        self.hooks: List[Hook] = list(hooks or [])
        self.timeout = timeout
        self.output = output

    def register_hook(self, hook: Hook) -> None:
        """Register a built-in hook, run before repository scripts"""
        if hook not in self.hooks:
            self.hooks.append(hook)
            logger.debug("hook_registered", hook_name=hook.name)

    def hooks_for(self, repository: Repository) -> List[Hook]:
        """Built-in hooks followed by the repository's own scripts"""
        scripts = [ScriptHook(path) for path in self.store.hook_scripts(repository)]
        return self.hooks + scripts

    async def determine_events(self, repository: Repository) -> List[PushEvent]:
        """
        Synthesize the push event from the store's ref metadata

        Only the most recently committed branch is reported, so when one
        push moves several branches the others are not seen by hooks.
        """
        ref = await self.store.most_recent_branch(repository)
        if ref is None:
            return []
        return [PushEvent.synthesize(ref)]

    async def dispatch(
        self,
        repository: Repository,
        username: Optional[str] = None,
        session_id: Optional[str] = None,
        events: Optional[List[PushEvent]] = None,
    ) -> HookContext:
        """
        Run every hook once for a repository that just accepted a push

        Hook failures are recorded on the returned context and never raised.
        """
        output = self.output if self.output is not None else sys.stderr.buffer
        context = HookContext(
            repository=repository,
            events=[],
            username=username,
            session_id=session_id,
            output=output,
        )

        if events is None:
            try:
                events = await self.determine_events(repository)
            except Exception as e:
                context.add_error(f"Could not determine updated ref: {e}")
                logger.error("push_event_unavailable", repository=repository.name, error=str(e))
                return context

        context.events = events
        if not events:
            logger.info("no_branch_updated", repository=repository.name)
            return context

        hooks = self.hooks_for(repository)

        logger.debug(
            "executing_hooks",
            hook_count=len(hooks),
            repository=repository.name,
            refs=context.refs,
        )

        for hook in hooks:
            if not hook.should_run(context):
                continue

            try:
                await asyncio.wait_for(hook.execute(context), timeout=self.timeout)

                logger.debug("hook_executed", hook=hook.name)

            except (asyncio.TimeoutError, ProcessTimeoutError):
                context.add_error(f"Hook '{hook.name}' timed out")
                logger.error("hook_timeout", hook=hook.name, timeout=self.timeout)

            except Exception as e:
                context.add_error(f"Hook '{hook.name}' failed: {e}")
                logger.exception("hook_error", hook=hook.name, error=str(e))

        return context
