"""gorelease - versioned, multi-platform release builds for Go projects."""

from gorelease.__version__ import __version__

__all__ = ["__version__"]
