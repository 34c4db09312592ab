"""Tests for the backend transport subprocess"""

import asyncio
from pathlib import Path

import pytest

from gitraf.core.exceptions import TransportError
from gitraf.core.git import GitService
from gitraf.core.models import Repository
from gitraf.infrastructure.transport import BackendTransport


@pytest.fixture
def repository(tmp_path: Path) -> Repository:
    path = tmp_path / "site.git"
    path.mkdir()
    return Repository(name="site", path=path)


class TestBackendTransport:
    """Test command construction and process lifecycle"""

    def test_build_command_without_prefix(self, repository):
        transport = BackendTransport()

        assert transport.build_command(GitService.UPLOAD_PACK, repository) == [
            "git-upload-pack",
            str(repository.path),
        ]

    def test_build_command_inside_container(self, repository):
        transport = BackendTransport(
            command_prefix=["docker", "exec", "-i", "ogit"],
            repository_root="/git/",
        )

        assert transport.build_command(GitService.RECEIVE_PACK, repository) == [
            "docker", "exec", "-i", "ogit", "git-receive-pack", "/git/site.git",
        ]

    def test_environment_is_filtered(self, monkeypatch):
        monkeypatch.setenv("PATH", "/usr/bin:/bin")
        monkeypatch.setenv("GIT_PROTOCOL", "version=2")
        monkeypatch.setenv("SSH_AUTH_SOCK", "/tmp/agent")
        monkeypatch.setenv("GITRAF_SECRET", "x")

        env = BackendTransport()._create_environment()

        assert env["PATH"] == "/usr/bin:/bin"
        assert env["GIT_PROTOCOL"] == "version=2"
        assert "SSH_AUTH_SOCK" not in env
        assert "GITRAF_SECRET" not in env

    @pytest.mark.asyncio
    async def test_exit_code_is_returned(self, repository):
        transport = BackendTransport(command_prefix=["sh", "-c", "exit 3", "sh"])

        exit_code = await transport.run(
            GitService.UPLOAD_PACK,
            repository,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
        )

        assert exit_code == 3

    @pytest.mark.asyncio
    async def test_arguments_are_passed_verbatim(self, repository, tmp_path):
        record = tmp_path / "argv.txt"
        transport = BackendTransport(
            command_prefix=["sh", "-c", f'printf "%s\\n" "$@" > {record}', "sh"],
        )

        await transport.run(
            GitService.RECEIVE_PACK,
            repository,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
        )

        assert record.read_text().splitlines() == ["git-receive-pack", str(repository.path)]

    @pytest.mark.asyncio
    async def test_missing_binary(self, repository):
        transport = BackendTransport(command_prefix=["/nonexistent/gitraf-transport"])

        with pytest.raises(TransportError) as exc_info:
            await transport.run(GitService.UPLOAD_PACK, repository)

        assert exc_info.value.exit_code == 127

    @pytest.mark.asyncio
    async def test_cancelled_session_terminates_transport(self, repository):
        transport = BackendTransport(
            command_prefix=["sh", "-c", "sleep 30", "sh"],
            terminate_grace_seconds=2.0,
        )

        task = asyncio.create_task(
            transport.run(
                GitService.UPLOAD_PACK,
                repository,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
            )
        )
        while transport.process is None:
            await asyncio.sleep(0.01)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert transport.process.returncode is not None
