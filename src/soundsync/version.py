"""Version information for SoundSync.

The version is read from the installed distribution metadata, with a
fallback for source checkouts.
"""

from importlib.metadata import PackageNotFoundError, version

__version__ = "0.1.0"  # Fallback version
__license__ = "MIT"


def get_version() -> str:
    """Get the current version string.

    Returns:
        Version string (e.g., "0.1.0").
    """
    try:
        return version("soundsync")
    except PackageNotFoundError:
        return __version__
