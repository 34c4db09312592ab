"""Tests for repository resolution and metadata"""

import json
import os
from pathlib import Path

import pytest

from conftest import requires_git
from gitraf.core.exceptions import PagesError, RepositoryNotFoundError, RepositoryPathError
from gitraf.core.repository import RepositoryPathResolver


class TestRepositoryPathResolver:
    """Test normalization and containment of repository arguments"""

    @pytest.fixture
    def resolver(self, tmp_path: Path) -> RepositoryPathResolver:
        return RepositoryPathResolver(tmp_path)

    @pytest.mark.parametrize("argument", ["site", "site.git", "/site.git", "/site"])
    def test_equivalent_forms(self, resolver, tmp_path, argument):
        repository = resolver.resolve(argument)

        assert repository.name == "site"
        assert repository.path == tmp_path.resolve() / "site.git"
        assert repository.directory_name == "site.git"

    @pytest.mark.parametrize(
        "argument",
        [
            "../site",
            "../../etc/passwd",
            "..",
            "a/b",
            "//site.git",
            "~root",
            "site\\x",
            ".git",
            "",
            "HEAD",
            "-site",
            "site name",
        ],
    )
    def test_rejects_unsafe_arguments(self, resolver, argument):
        with pytest.raises(RepositoryPathError) as exc_info:
            resolver.resolve(argument)

        assert exc_info.value.exit_code == 1

    def test_rejects_symlink_escape(self, tmp_path):
        outside = tmp_path / "outside.git"
        outside.mkdir()
        store_root = tmp_path / "store"
        store_root.mkdir()
        os.symlink(outside, store_root / "escape.git")

        resolver = RepositoryPathResolver(store_root)

        with pytest.raises(RepositoryPathError):
            resolver.resolve("escape")


class TestRepositoryStore:
    """Test store lookups that need no git history"""

    def test_resolve_missing_repository(self, store):
        with pytest.raises(RepositoryNotFoundError) as exc_info:
            store.resolve("missing.git")

        assert exc_info.value.code == "GRAF-404"

    def test_resolve_without_existence_check(self, store):
        repository = store.resolve("missing", must_exist=False)

        assert repository.name == "missing"

    def test_plain_directory_is_not_a_repository(self, store, settings):
        (settings.repository_base_path / "plain.git").mkdir()

        with pytest.raises(RepositoryNotFoundError):
            store.resolve("plain")

    def test_find_by_location(self, store, fake_bare_repo):
        path = fake_bare_repo("site")

        assert store.find(path).name == "site"

    def test_find_outside_store(self, store, tmp_path):
        with pytest.raises(RepositoryNotFoundError):
            store.find(tmp_path)

    def test_hook_scripts_order(self, store, fake_bare_repo):
        path = fake_bare_repo("site")
        hooks = path / "hooks"
        (hooks / "post-receive.d").mkdir(parents=True)

        for script in (
            hooks / "post-receive",
            hooks / "post-receive.d" / "20-notify",
            hooks / "post-receive.d" / "10-mirror",
        ):
            script.write_text("#!/bin/sh\nexit 0\n")
            script.chmod(0o755)

        not_executable = hooks / "post-receive.d" / "30-disabled"
        not_executable.write_text("#!/bin/sh\nexit 0\n")
        not_executable.chmod(0o644)
        (hooks / "post-receive.sample").write_text("#!/bin/sh\n")

        scripts = store.hook_scripts(store.resolve("site"))

        assert [p.name for p in scripts] == ["post-receive", "10-mirror", "20-notify"]

    def test_no_hook_scripts(self, store, fake_bare_repo):
        fake_bare_repo("site")

        assert store.hook_scripts(store.resolve("site")) == []


class TestPagesConfigLoading:
    """Test reading git-pages.json from the bare repository"""

    @pytest.fixture
    def repository(self, store, fake_bare_repo):
        fake_bare_repo("site")
        return store.resolve("site")

    def _write(self, repository, content: str) -> None:
        (repository.path / "git-pages.json").write_text(content)

    @pytest.mark.asyncio
    async def test_missing_config(self, store, repository):
        assert await store.read_pages_config(repository) is None

    @pytest.mark.asyncio
    async def test_defaults(self, store, repository):
        self._write(repository, "{}")

        config = await store.read_pages_config(repository)

        assert config.enabled is True
        assert config.branch == "main"
        assert config.build_command == ""
        assert config.output_dir == "public"
        assert config.ref == "refs/heads/main"
        assert config.has_build_step is False

    @pytest.mark.asyncio
    async def test_full_config(self, store, repository):
        self._write(
            repository,
            '{"enabled": false, "branch": "refs/heads/gh-pages",'
            ' "build_command": "npm run build", "output_dir": "dist", "extra": 1}',
        )

        config = await store.read_pages_config(repository)

        assert config.enabled is False
        assert config.branch == "gh-pages"
        assert config.ref == "refs/heads/gh-pages"
        assert config.has_build_step is True
        assert config.output_dir == "dist"

    @pytest.mark.asyncio
    async def test_null_fields_fall_back_to_defaults(self, store, repository):
        self._write(repository, '{"branch": null, "output_dir": null, "build_command": null}')

        config = await store.read_pages_config(repository)

        assert config.branch == "main"
        assert config.output_dir == "public"
        assert config.build_command == ""

    @pytest.mark.asyncio
    async def test_empty_output_dir_means_root(self, store, repository):
        self._write(repository, '{"output_dir": ""}')

        config = await store.read_pages_config(repository)

        assert config.output_dir == "."

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            "[]",
            '{"enabled": "maybe"}',
            '{"branch": "../main"}',
            '{"branch": "-x"}',
        ],
    )
    async def test_invalid_config(self, store, repository, content):
        self._write(repository, content)

        with pytest.raises(PagesError) as exc_info:
            await store.read_pages_config(repository)

        assert exc_info.value.stage == "config"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("branch", ["feat+x", "docs/v2", "caf\u00e9", "user@host", "v1.0_rc"])
    async def test_branch_names_git_accepts(self, store, repository, branch):
        self._write(repository, json.dumps({"branch": branch}))

        config = await store.read_pages_config(repository)

        assert config.ref == f"refs/heads/{branch}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "branch",
        ["a..b", "x.lock", "topic/.hidden", "a~1", "bad:name", "a b", "a//b", "a@{1}", "@", "HEAD", "end."],
    )
    async def test_branch_names_git_refuses(self, store, repository, branch):
        self._write(repository, json.dumps({"branch": branch}))

        with pytest.raises(PagesError):
            await store.read_pages_config(repository)


@requires_git
class TestRefQueries:
    """Test read-only git queries against real repositories"""

    @pytest.mark.asyncio
    async def test_most_recent_branch(self, store, repo_factory):
        repo_factory.push("site", {"a.txt": "a"}, branch="main", date="2024-01-01T00:00:00+00:00")
        repo_factory.push("site", {"b.txt": "b"}, branch="docs", date="2024-02-01T00:00:00+00:00")

        repository = store.resolve("site")

        assert await store.most_recent_branch(repository) == "refs/heads/docs"

        repo_factory.push("site", {"a.txt": "a2"}, branch="main", date="2024-03-01T00:00:00+00:00")

        assert await store.most_recent_branch(repository) == "refs/heads/main"

    @pytest.mark.asyncio
    async def test_empty_repository_has_no_branch(self, store, repo_factory):
        repo_factory.create("empty")

        assert await store.most_recent_branch(store.resolve("empty")) is None

