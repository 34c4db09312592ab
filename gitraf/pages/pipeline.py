"""Push-triggered static site build pipeline"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable, List, Optional

from gitraf.core.exceptions import LockTimeoutError, PagesError
from gitraf.core.models import PagesConfig, PushEvent, Repository
from gitraf.core.repository import RepositoryStore
from gitraf.infrastructure.concurrency import LockManager, run_to_completion
from gitraf.infrastructure.logging import get_logger
from gitraf.pages.builder import SiteBuilder
from gitraf.pages.publisher import DeploymentLayout, SitePublisher

logger = get_logger(__name__)


class PipelineState(str, Enum):
    """Deployment states"""

    IDLE = "idle"
    CONFIG_LOADED = "config_loaded"
    SKIPPED = "skipped"
    BUILDING = "building"
    BUILT = "built"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"


@dataclass
class DeploymentResult:
    """Outcome of one pipeline run"""

    repository: str
    ref: str
    state: PipelineState = PipelineState.IDLE
    stage: Optional[str] = None
    reason: Optional[str] = None
    release: Optional[Path] = None
    history: List[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state in (PipelineState.PUBLISHED, PipelineState.SKIPPED)

    def transition(self, state: PipelineState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("pipeline_transition", repository=self.repository, state=state.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository": self.repository,
            "ref": self.ref,
            "state": self.state.value,
            "stage": self.stage,
            "reason": self.reason,
            "release": str(self.release) if self.release else None,
            "duration": round(self.duration, 3),
        }


class PagesPipeline:
    """Decides whether a push deploys, builds the site and publishes it"""

    def __init__(
        self,
        store: RepositoryStore,
        pages_base_path: Path,
        lock_manager: LockManager,
        builder: Optional[SiteBuilder] = None,
        publisher: Optional[SitePublisher] = None,
        lock_timeout: float = 600.0,
    ):
        self.store = store
        self.pages_base_path = Path(pages_base_path)
        self.lock_manager = lock_manager
        self.builder = builder or SiteBuilder()
        self.publisher = publisher or SitePublisher()
        self.lock_timeout = lock_timeout

    def layout(self, repository: Repository) -> DeploymentLayout:
        return DeploymentLayout(self.pages_base_path / repository.name)

    async def run_events(
        self,
        repository: Repository,
        events: Iterable[PushEvent],
        output: Optional[BinaryIO] = None,
    ) -> List[DeploymentResult]:
        """Run once per distinct ref in events"""
        results = []
        seen = set()
        for event in events:
            if event.ref in seen:
                continue
            seen.add(event.ref)
            results.append(await self.run(repository, event.ref, output=output))
        return results

    async def run(
        self,
        repository: Repository,
        ref: str,
        output: Optional[BinaryIO] = None,
    ) -> DeploymentResult:
        """
        Run the pipeline for one updated ref

        Never raises for deployment problems; the result carries the final
        state, and on failure the stage and reason.
        """
        result = DeploymentResult(repository=repository.name, ref=ref)
        start_time = time.monotonic()

        try:
            config = await self.store.read_pages_config(repository)
            result.transition(PipelineState.CONFIG_LOADED)

            skip_reason = self._skip_reason(config, ref)
            if skip_reason:
                result.reason = skip_reason
                result.transition(PipelineState.SKIPPED)
                logger.info("pages_skipped", repository=repository.name, ref=ref, reason=skip_reason)
                return result

            _emit(output, f"==> Deploying {repository.name}")

            async with self.lock_manager.acquire_lock(
                f"pages:{repository.name}", timeout=self.lock_timeout
            ):
                await self._deploy(repository, ref, config, result, output)

        except LockTimeoutError as e:
            self._fail(result, PagesError("lock", e.message), output)
        except PagesError as e:
            self._fail(result, e, output)
        except OSError as e:
            self._fail(result, PagesError(result.state.value, str(e)), output)
        finally:
            result.duration = time.monotonic() - start_time

        return result

    async def _deploy(
        self,
        repository: Repository,
        ref: str,
        config: PagesConfig,
        result: DeploymentResult,
        output: Optional[BinaryIO],
    ) -> None:
        layout = self.layout(repository)

        result.transition(PipelineState.BUILDING)
        await self.builder.materialize(repository, ref, layout.workspace, layout.index_file)

        if config.has_build_step:
            if await self.builder.install_dependencies(layout.workspace, output=output):
                _emit(output, "==> Installed dependencies")
            _emit(output, f"==> Running build: {config.build_command}")
            await self.builder.run_build(
                layout.workspace,
                config.build_command,
                output=output,
                env={"GITRAF_REPOSITORY": repository.name, "GITRAF_REF": ref},
            )

        source = self.builder.verify_output(layout.workspace, config.output_dir)
        result.transition(PipelineState.BUILT)

        result.transition(PipelineState.PUBLISHING)
        try:
            result.release = await run_to_completion(self.publisher.publish, source, layout)
        except asyncio.CancelledError:
            # publish() ran to the end while the lock was still held
            logger.warning("pages_publish_interrupted", repository=repository.name, ref=ref)
            raise
        result.transition(PipelineState.PUBLISHED)

        _emit(output, "==> Deployed successfully")
        logger.info(
            "pages_published",
            repository=repository.name,
            ref=ref,
            release=result.release.name,
        )

    @staticmethod
    def _skip_reason(config: Optional[PagesConfig], ref: str) -> Optional[str]:
        if config is None:
            return "no pages config"
        if not config.enabled:
            return "pages disabled"
        if ref != config.ref:
            return f"ref {ref} is not {config.ref}"
        return None

    @staticmethod
    def _fail(result: DeploymentResult, error: PagesError, output: Optional[BinaryIO]) -> None:
        result.stage = error.stage
        result.reason = error.reason
        result.transition(PipelineState.FAILED)

        _emit(output, f"==> Error: {error.stage} failed: {error.reason}")
        logger.error(
            "pages_failed",
            repository=result.repository,
            ref=result.ref,
            stage=error.stage,
            reason=error.reason,
        )


def _emit(output: Optional[BinaryIO], message: str) -> None:
    if output is None:
        return
    output.write(f"{message}\n".encode("utf-8"))
    output.flush()
