"""Concrete implementation of the FileSystem interface for the local disk.

Uses `pathlib` for path handling and `aiofiles` for async I/O.
"""

import asyncio
import logging
from pathlib import Path

import aiofiles

from mpesapy.domain.interfaces.filesystem import FileSystem

logger = logging.getLogger(__name__)


class LocalFileSystem(FileSystem):
    """Implementation of FileSystem for the local disk."""

    async def read_file(self, file_path: Path) -> str:
        """Reads file content asynchronously."""
        path = Path(file_path)
        logger.debug(f"Attempting to read file: {path}")
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")

        try:
            async with aiofiles.open(path, mode='r', encoding='utf-8') as f:
                content = await f.read()
            logger.debug(f"Successfully read {len(content)} characters from {path}")
            return content
        except PermissionError as e:
            logger.error(f"Permission denied reading file: {path}")
            raise PermissionError(f"Permission denied: {file_path}") from e

    async def write_file(self, file_path: Path, content: str) -> None:
        """Writes content to a file asynchronously, creating parent directories."""
        path = Path(file_path)
        logger.debug(f"Attempting to write {len(content)} characters to file: {path}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, mode='w', encoding='utf-8') as f:
                await f.write(content)
            logger.debug(f"Successfully wrote to {path}")
        except PermissionError as e:
            logger.error(f"Permission denied writing file: {path}")
            raise PermissionError(f"Permission denied: {file_path}") from e

    async def file_exists(self, file_path: Path) -> bool:
        """Checks if a file exists asynchronously."""
        path = Path(file_path)
        exists = await asyncio.to_thread(path.is_file)
        logger.debug(f"Checked existence for {path}: {exists}")
        return exists
