"""ZAFForge package entry."""

from importlib.metadata import PackageNotFoundError, version

__all__ = ["__version__"]

try:
    __version__ = version("zafforge")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.1.0"
