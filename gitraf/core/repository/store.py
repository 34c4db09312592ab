"""Filesystem-backed collection of bare repositories"""
import json
import os
from pathlib import Path
from typing import List, Optional

import aiofiles
from pydantic import ValidationError

from gitraf.core.exceptions import PagesError, RepositoryNotFoundError
from gitraf.core.git import GitCommandBuilder, GitCommandExecutor
from gitraf.core.models import PagesConfig, Repository
from gitraf.core.repository.path_resolver import RepositoryPathResolver
from gitraf.infrastructure.logging import get_logger

logger = get_logger(__name__)


class RepositoryStore:
    """Resolves repositories and reads their metadata; holds no business logic"""

    POST_RECEIVE = "post-receive"

    def __init__(
        self,
        base_path: Path,
        executor: Optional[GitCommandExecutor] = None,
        pages_config_filename: str = "git-pages.json",
    ):
        self.resolver = RepositoryPathResolver(base_path)
        self.executor = executor or GitCommandExecutor()
        self.pages_config_filename = pages_config_filename

    @property
    def base_path(self) -> Path:
        return self.resolver.base_path

    def resolve(self, name: str, must_exist: bool = True) -> Repository:
        """
        Resolve a repository argument to a Repository

        Raises:
            RepositoryPathError: If the argument is unsafe
            RepositoryNotFoundError: If must_exist and there is no bare repo
        """
        repository = self.resolver.resolve(name)

        if must_exist and not self.exists(repository):
            raise RepositoryNotFoundError(repository.name)

        return repository

    def exists(self, repository: Repository) -> bool:
        path = repository.path
        return path.is_dir() and (path / "HEAD").is_file() and (path / "objects").is_dir()

    def find(self, path: Path) -> Repository:
        """Resolve a repository from its on-disk location (hook scripts run with cwd = repo)"""
        path = Path(path).resolve()
        if path.parent != self.base_path:
            raise RepositoryNotFoundError(str(path))
        return self.resolve(path.name)

    def pages_config_path(self, repository: Repository) -> Path:
        return repository.path / self.pages_config_filename

    async def read_pages_config(self, repository: Repository) -> Optional[PagesConfig]:
        """
        Read the deployment config fresh from disk

        Returns:
            PagesConfig, or None when the repository never opted in

        Raises:
            PagesError: If the file exists but is not a valid config
        """
        config_path = self.pages_config_path(repository)

        try:
            async with aiofiles.open(config_path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PagesError("config", f"cannot read {config_path.name}: {e}")

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PagesError("config", f"{config_path.name} is not valid JSON: {e}")

        if not isinstance(data, dict):
            raise PagesError("config", f"{config_path.name} must contain a JSON object")

        try:
            return PagesConfig.model_validate(data)
        except ValidationError as e:
            raise PagesError("config", f"{config_path.name}: {e.errors()[0]['msg']}")

    async def most_recent_branch(self, repository: Repository) -> Optional[str]:
        """
        Return the heads ref with the newest commit, or None for an empty repository

        This approximates "the ref that was just pushed"; if a push moved
        several branches only the most recently committed one is reported.
        """
        result = await self.executor.execute(
            GitCommandBuilder.most_recent_branch(),
            cwd=repository.path,
            env={"GIT_DIR": str(repository.path)},
        )
        return result.output or None

    def hook_scripts(self, repository: Repository) -> List[Path]:
        """
        Executable post-receive scripts in invocation order

        hooks/post-receive first, then hooks/post-receive.d/* by name.
        """
        scripts: List[Path] = []

        main_hook = repository.hooks_path / self.POST_RECEIVE
        if _is_runnable(main_hook):
            scripts.append(main_hook)

        hook_dir = repository.hooks_path / f"{self.POST_RECEIVE}.d"
        if hook_dir.is_dir():
            for candidate in sorted(hook_dir.iterdir()):
                if _is_runnable(candidate):
                    scripts.append(candidate)

        logger.debug(
            "hook_scripts_discovered",
            repository=repository.name,
            count=len(scripts),
        )
        return scripts


def _is_runnable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)
