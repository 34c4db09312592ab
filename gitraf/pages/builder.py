"""Build workspace preparation and build execution"""

import shutil
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Tuple

from gitraf.core.exceptions import PagesError
from gitraf.core.git import GitCommandBuilder, GitCommandExecutor, GitError
from gitraf.core.models import Repository
from gitraf.infrastructure.concurrency import run_to_completion
from gitraf.infrastructure.logging import get_logger
from gitraf.infrastructure.process import CommandRunner, ProcessTimeoutError

logger = get_logger(__name__)


# Manifest file -> install commands tried in order until one succeeds
DEPENDENCY_INSTALLERS: Dict[str, List[List[str]]] = {
    "package.json": [
        ["npm", "ci", "--silent"],
        ["npm", "install", "--silent"],
    ],
}


class SiteBuilder:
    """Materializes a branch into a workspace and runs its build"""

    def __init__(
        self,
        executor: Optional[GitCommandExecutor] = None,
        timeout: Optional[float] = 600.0,
        installers: Optional[Dict[str, List[List[str]]]] = None,
    ):
        self.executor = executor or GitCommandExecutor()
        self.timeout = timeout
        self.installers = DEPENDENCY_INSTALLERS if installers is None else installers

    async def materialize(
        self,
        repository: Repository,
        ref: str,
        workspace: Path,
        index_file: Path,
    ) -> None:
        """
        Replace the workspace contents with the full tree of ref

        A private index keeps the bare repository's HEAD and index untouched.
        """
        await run_to_completion(_reset_directory, workspace)
        index_file.unlink(missing_ok=True)

        try:
            await self.executor.execute(
                GitCommandBuilder.checkout_tree(ref),
                cwd=workspace,
                env={
                    "GIT_DIR": str(repository.path),
                    "GIT_WORK_TREE": str(workspace),
                    "GIT_INDEX_FILE": str(index_file),
                },
            )
        except GitError as e:
            raise PagesError("checkout", f"could not check out {ref}: {e}")
        finally:
            index_file.unlink(missing_ok=True)

        logger.info("workspace_materialized", ref=ref, workspace=str(workspace))

    def find_manifest(self, workspace: Path) -> Optional[Tuple[str, List[List[str]]]]:
        for manifest, commands in self.installers.items():
            if (workspace / manifest).is_file():
                return manifest, commands
        return None

    async def install_dependencies(self, workspace: Path, output: Optional[BinaryIO] = None) -> bool:
        """
        Install dependencies when the workspace carries a known manifest

        Returns:
            True if an install ran, False when there was no manifest

        Raises:
            PagesError: If every install command fails or times out
        """
        found = self.find_manifest(workspace)
        if found is None:
            return False

        manifest, commands = found
        runner = CommandRunner(timeout=self.timeout, output=output)
        last_failure = ""

        for command in commands:
            logger.info("dependencies_installing", manifest=manifest, command=" ".join(command))
            try:
                return_code = await runner.execute(command, cwd=workspace)
            except ProcessTimeoutError as e:
                raise PagesError("install", str(e))
            except OSError as e:
                last_failure = f"{command[0]} is not available: {e}"
                continue

            if return_code == 0:
                return True
            last_failure = f"'{' '.join(command)}' exited with status {return_code}"

        raise PagesError("install", last_failure or f"no installer for {manifest}")

    async def run_build(
        self,
        workspace: Path,
        build_command: str,
        output: Optional[BinaryIO] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Run the configured build command through the shell

        Raises:
            PagesError: On nonzero exit or timeout
        """
        runner = CommandRunner(timeout=self.timeout, output=output)

        try:
            return_code = await runner.execute(build_command, cwd=workspace, env=env, shell=True)
        except ProcessTimeoutError as e:
            raise PagesError("build", str(e))

        if return_code != 0:
            raise PagesError("build", f"build command exited with status {return_code}")

    def verify_output(self, workspace: Path, output_dir: str) -> Path:
        """
        Locate the output directory inside the workspace

        Raises:
            PagesError: If it is missing or resolves outside the workspace
        """
        root = workspace.resolve()
        candidate = (root / output_dir).resolve()

        try:
            candidate.relative_to(root)
        except ValueError:
            raise PagesError("verify", f"output directory '{output_dir}' is outside the workspace")

        if not candidate.is_dir():
            raise PagesError("verify", f"output directory '{output_dir}' not found")

        return candidate


def _reset_directory(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)
