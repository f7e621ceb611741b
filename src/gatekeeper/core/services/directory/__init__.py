"""External directory access."""

from .directory_client import DirectoryClient, HttpDirectoryClient
from .fallback import DevelopmentFallbackDirectory, build_fallback_directory

__all__ = [
    "DevelopmentFallbackDirectory",
    "DirectoryClient",
    "HttpDirectoryClient",
    "build_fallback_directory",
]
