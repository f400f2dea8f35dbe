"""Interface for interacting with the file system.

Defines the contract for reading and writing files, allowing the
core application to be independent of the file system implementation.
"""

import abc
from pathlib import Path


class FileSystem(abc.ABC):
    """Abstract Base Class for file system operations."""

    @abc.abstractmethod
    async def read_file(self, file_path: Path) -> str:
        """Reads the entire content of a file asynchronously.

        Raises:
            FileNotFoundError: If the file does not exist.
            PermissionError: If read permissions are denied.
        """
        pass

    @abc.abstractmethod
    async def write_file(self, file_path: Path, content: str) -> None:
        """Writes content to a file asynchronously, overwriting if it exists.

        Raises:
            PermissionError: If write permissions are denied.
        """
        pass

    @abc.abstractmethod
    async def file_exists(self, file_path: Path) -> bool:
        """Checks if a file exists asynchronously."""
        pass
