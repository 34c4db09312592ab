"""Pytest configuration and fixtures"""

import json
import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, Optional

import pytest

from gitraf.core.config import Settings, reset_settings
from gitraf.core.repository import RepositoryStore

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git binary not available")

GIT = [
    "git",
    "-c", "user.name=gitraf",
    "-c", "user.email=gitraf@example.com",
    "-c", "commit.gpgsign=false",
    "-c", "init.defaultBranch=main",
]


def git(*args: str, cwd: Optional[Path] = None, env: Optional[Dict[str, str]] = None) -> str:
    run_env = os.environ.copy()
    if env:
        run_env.update(env)
    result = subprocess.run(
        [*GIT, *args],
        cwd=str(cwd) if cwd else None,
        env=run_env,
        check=True,
        capture_output=True,
    )
    return result.stdout.decode().strip()


class RepositoryFactory:
    """Creates bare repositories in the store and pushes commits into them"""

    def __init__(self, base_path: Path, work_root: Path):
        self.base_path = base_path
        self.work_root = work_root

    def bare_path(self, name: str) -> Path:
        return self.base_path / f"{name}.git"

    def create(self, name: str) -> Path:
        bare = self.bare_path(name)
        git("init", "--bare", "-q", str(bare))
        return bare

    def push(
        self,
        name: str,
        files: Dict[str, str],
        branch: str = "main",
        date: Optional[str] = None,
        message: str = "update",
    ) -> Path:
        """Commit files on branch and push it; returns the bare repository path"""
        bare = self.bare_path(name)
        if not bare.exists():
            self.create(name)

        work = self.work_root / f"{name}-{branch.replace('/', '_')}"
        if not work.exists():
            git("init", "-q", str(work))
            git("symbolic-ref", "HEAD", f"refs/heads/{branch}", cwd=work)

        for relative, content in files.items():
            target = work / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)

        env = {}
        if date:
            env = {"GIT_AUTHOR_DATE": date, "GIT_COMMITTER_DATE": date}

        git("add", "-A", cwd=work)
        git("commit", "-q", "--allow-empty", "-m", message, cwd=work, env=env)
        git("push", "-q", str(bare), f"HEAD:refs/heads/{branch}", cwd=work)
        return bare

    def write_pages_config(self, name: str, config) -> Path:
        path = self.bare_path(name) / "git-pages.json"
        path.write_text(config if isinstance(config, str) else json.dumps(config))
        return path


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary directory"""
    repos = tmp_path / "repos"
    pages = tmp_path / "pages"
    repos.mkdir()
    pages.mkdir()
    return Settings(
        repository_base_path=repos,
        pages_base_path=pages,
        lock_dir=tmp_path / "locks",
        pages_build_timeout_seconds=60,
        pages_lock_timeout_seconds=5,
        hook_timeout_seconds=60,
    )


@pytest.fixture
def store(settings: Settings) -> RepositoryStore:
    return RepositoryStore(settings.repository_base_path)


@pytest.fixture
def repo_factory(settings: Settings, tmp_path: Path) -> RepositoryFactory:
    work_root = tmp_path / "work"
    work_root.mkdir()
    return RepositoryFactory(settings.repository_base_path, work_root)


@pytest.fixture
def fake_bare_repo(settings: Settings):
    """Create something that looks like a bare repository without running git"""

    def _create(name: str) -> Path:
        path = settings.repository_base_path / f"{name}.git"
        (path / "objects").mkdir(parents=True)
        (path / "refs" / "heads").mkdir(parents=True)
        (path / "HEAD").write_text("ref: refs/heads/main\n")
        return path

    return _create


@pytest.fixture
def cli_env(settings: Settings, monkeypatch):
    """Point the CLI's environment-driven settings at the temporary store"""
    monkeypatch.setenv("GITRAF_REPOSITORY_BASE_PATH", str(settings.repository_base_path))
    monkeypatch.setenv("GITRAF_PAGES_BASE_PATH", str(settings.pages_base_path))
    monkeypatch.setenv("GITRAF_LOCK_DIR", str(settings.lock_dir))
    reset_settings()

    yield settings

    reset_settings()
    logging.getLogger().handlers.clear()
