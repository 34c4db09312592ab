"""Repository store core module"""
from .path_resolver import RepositoryPathResolver
from .store import RepositoryStore

__all__ = [
    'RepositoryPathResolver',
    'RepositoryStore',
]
