"""gitraf command-line interface."""

from gitraf import __version__

__all__ = ["__version__"]
