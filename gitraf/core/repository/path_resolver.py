"""Repository path calculation and security only"""
import re
from pathlib import Path

from pydantic import ValidationError

from gitraf.core.exceptions import RepositoryPathError
from gitraf.core.models import Repository


class RepositoryPathResolver:
    """Turns a client supplied repository argument into a path inside the store"""

    # Dangerous path patterns
    DANGEROUS_PATTERNS = [
        r'\.\.',  # Parent directory
        r'^~',    # Home directory
        r'^\/',   # Absolute path
        r'\\',    # Backslash (Windows paths)
        r'\/',    # Nested segments
    ]

    def __init__(self, base_path: Path):
        """
        Initialize with base repository path

        Args:
            base_path: Store root holding all bare repositories
        """
        self.base_path = Path(base_path).resolve()

    def normalize_name(self, argument: str) -> str:
        """
        Reduce a repository argument to its bare name

        A single leading slash (ssh:// URL form) is dropped and a trailing
        .git suffix is stripped so 'x', 'x.git' and '/x.git' are one repo.

        Args:
            argument: Repository argument from the SSH command

        Returns:
            Bare repository name

        Raises:
            RepositoryPathError: If the argument is unsafe
        """
        name = argument.strip()
        if name.startswith('/'):
            name = name[1:]

        if name.endswith(Repository.SUFFIX):
            name = name[:-len(Repository.SUFFIX)]

        if not name:
            raise RepositoryPathError(argument, "empty repository name")

        for pattern in self.DANGEROUS_PATTERNS:
            if re.search(pattern, name):
                raise RepositoryPathError(argument, "path traversal is not allowed")

        return name

    def resolve(self, argument: str) -> Repository:
        """
        Resolve a repository argument to a validated Repository

        Args:
            argument: Repository argument from the SSH command

        Returns:
            Repository whose path is guaranteed to be under the store root

        Raises:
            RepositoryPathError: If the name is invalid or escapes the root
        """
        name = self.normalize_name(argument)

        try:
            repository = Repository(
                name=name,
                path=self.base_path / f"{name}{Repository.SUFFIX}",
            )
        except ValidationError as e:
            raise RepositoryPathError(argument, e.errors()[0]["msg"])

        if not self.validate_path_security(repository.path):
            raise RepositoryPathError(argument, "resolves outside the repository root")

        return repository

    def validate_path_security(self, path: Path) -> bool:
        """
        Validate path is within base directory (prevent traversal)

        Args:
            path: Path to validate

        Returns:
            True if path is safe
        """
        try:
            resolved = path.resolve()
            relative = resolved.relative_to(self.base_path)
        except (ValueError, RuntimeError):
            return False

        return relative != Path('.')
