"""
Version information for the Gage Guess server.

VERSION is read from the VERSION file at the project root, which is also
the packaging version source. Installs without the source tree fall back
to the installed distribution's metadata.
"""
from importlib import metadata
from pathlib import Path

DISTRIBUTION = "gage-guess-server"


def _get_version_file_path() -> Path:
    """Get the path to the VERSION file."""
    return Path(__file__).parent.parent / "VERSION"


def get_version() -> str:
    """Read and return the version string.

    Returns:
        Version string (e.g., "0.1.0"), or "unknown"
    """
    try:
        version = _get_version_file_path().read_text().strip()
    except OSError:
        version = ""
    if version:
        return version
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "unknown"


# Expose VERSION constant at module level
VERSION = get_version()
