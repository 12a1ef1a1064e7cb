"""
File validation and reading services.

Single Responsibility: Each class handles one specific task.
"""
from pathlib import Path
from typing import Iterable, List, Tuple, Optional, Union
import mimetypes
import aiofiles

from ..models import UploadableFile
from ...logging import get_logger


class FileValidator:
    """
    Validates files before they are admitted into an upload.

    Responsibilities:
    - Check file existence
    - Verify file is not a directory
    - Get file size
    """

    def validate(self, file_path: Union[str, Path]) -> Tuple[Path, int]:
        """
        Validate a file for upload.

        Args:
            file_path: Path to the file

        Returns:
            Tuple of (validated Path, file size in bytes)

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If path is not a regular file
        """
        path = Path(file_path) if isinstance(file_path, str) else file_path

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        if not path.is_file():
            raise ValueError(f"Path is not a file: {path}")

        return path, path.stat().st_size

    def validate_count(self, count: int, max_files: Optional[int] = None) -> None:
        """
        Validate the number of files in a batch.

        Raises:
            ValueError: If the batch is empty or larger than allowed
        """
        if count == 0:
            raise ValueError("No files selected")
        if max_files is not None and count > max_files:
            raise ValueError(f"{count} files selected, at most {max_files} allowed")


class AsyncFileReader:
    """
    Asynchronous file reader.

    Uses aiofiles for non-blocking I/O when loading album files from disk.
    """

    def __init__(self, validator: Optional[FileValidator] = None):
        """Initialize file reader."""
        self._validator = validator or FileValidator()
        self._logger = get_logger('albumpy.upload.file')

    @staticmethod
    def guess_mime_type(path: Path) -> str:
        mime_type, _ = mimetypes.guess_type(path.name)
        return mime_type or 'application/octet-stream'

    async def load(self, file_path: Union[str, Path]) -> UploadableFile:
        """
        Load a file from disk into an UploadableFile.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If path is not a file or changed size while reading
        """
        path, size = self._validator.validate(file_path)
        async with aiofiles.open(path, 'rb') as f:
            content = await f.read()

        if len(content) != size:
            raise ValueError(f"File changed while reading: {path}")

        self._logger.debug(f"Loaded {path.name} ({size} bytes)")
        return UploadableFile(
            name=path.name,
            byte_length=size,
            mime_type=self.guess_mime_type(path),
            content=content
        )

    async def load_many(self, paths: Iterable[Union[str, Path]]) -> List[UploadableFile]:
        """Load files sequentially, preserving the given order."""
        files = []
        for path in paths:
            files.append(await self.load(path))
        return files
