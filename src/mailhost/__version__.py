"""Version information for mailhost."""

__version__ = "0.1.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Release information
__title__ = "mailhost"
__description__ = "Mail host identity discovery and DNS consistency checks"
__author__ = "mailhost developers"
__license__ = "MIT"
__copyright__ = "Copyright 2024-2026 mailhost developers"


def get_version() -> str:
    """Return the current version string."""
    return __version__


def get_version_info() -> tuple[int, ...]:
    """Return the version as a tuple of integers."""
    return __version_info__
