"""Git command construction only"""
from typing import List


class GitCommandBuilder:
    """Handles Git command construction only"""

    @staticmethod
    def most_recent_branch() -> List[str]:
        """
        Build command listing the most recently committed branch

        Returns:
            Command arguments
        """
        return [
            'for-each-ref',
            '--count=1',
            '--sort=-committerdate',
            '--format=%(refname)',
            'refs/heads/',
        ]

    @staticmethod
    def checkout_tree(ref: str) -> List[str]:
        """
        Build command materializing a ref's tree into the work tree

        The caller supplies GIT_DIR, GIT_WORK_TREE and a private
        GIT_INDEX_FILE so the bare repository's HEAD is never moved.

        Args:
            ref: Fully qualified ref name

        Returns:
            Command arguments
        """
        return ['checkout', '--force', ref, '--', '.']
