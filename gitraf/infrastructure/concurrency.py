import asyncio
import fcntl
import hashlib
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, TypeVar

from gitraf.core.exceptions import LockTimeoutError
from gitraf.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class LockManager:
    """Advisory file locks keyed by resource id, usable across processes"""

    POLL_INTERVAL = 0.05

    def __init__(self, lock_dir: Path):
        self.lock_dir = Path(lock_dir)

    def _get_lock_path(self, resource_id: str) -> Path:
        """Get the filesystem path for a lock file"""
        # Hash the resource ID to avoid filesystem issues with special characters
        hash_id = hashlib.sha256(resource_id.encode()).hexdigest()[:16]
        return self.lock_dir / f"{hash_id}.lock"

    @asynccontextmanager
    async def acquire_lock(
        self,
        resource_id: str,
        timeout: float = 30.0,
    ) -> AsyncIterator[Path]:
        """
        Hold an exclusive lock on resource_id for the duration of the block

        Raises:
            LockTimeoutError: If the lock is still held elsewhere after timeout
        """
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self._get_lock_path(resource_id)
        start_time = time.monotonic()
        deadline = start_time + timeout
        contended = False

        lock_file = open(lock_path, "a+")
        try:
            while True:
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if not contended:
                        contended = True
                        logger.info("lock_waiting", resource_id=resource_id)
                    if time.monotonic() >= deadline:
                        raise LockTimeoutError(resource_id, timeout)
                    await asyncio.sleep(self.POLL_INTERVAL)

            logger.debug(
                "lock_acquired",
                resource_id=resource_id,
                contended=contended,
                duration=time.monotonic() - start_time,
            )

            try:
                yield lock_path
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
                logger.debug(
                    "lock_released",
                    resource_id=resource_id,
                    total_duration=time.monotonic() - start_time,
                )
        finally:
            lock_file.close()

    def is_locked(self, resource_id: str) -> bool:
        """Check whether another holder currently owns the lock"""
        lock_path = self._get_lock_path(resource_id)
        if not lock_path.exists():
            return False

        with open(lock_path, "a+") as f:
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                return True
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            return False


async def run_to_completion(func: Callable[..., T], *args: Any) -> T:
    """
    Run func in a worker thread and wait for it even if the caller is cancelled

    A thread cannot be stopped halfway, so code holding a lock around it must
    not unwind before it returns. Cancellation is re-raised once func is done.
    """
    future = asyncio.ensure_future(asyncio.to_thread(func, *args))
    interrupted = False

    while not future.done():
        try:
            await asyncio.wait({future})
        except asyncio.CancelledError:
            interrupted = True

    if interrupted:
        error = future.exception()
        if error is not None:
            logger.warning(
                "interrupted_call_failed",
                call=getattr(func, "__name__", repr(func)),
                error=str(error),
            )
        raise asyncio.CancelledError()

    return future.result()
