import logging
from pathlib import Path

from roadbook.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class PhotoStorage:
    """Photo files on disk, addressed by bare file name."""

    def __init__(self, directory: str | Path | None = None):
        self.directory = Path(directory or settings.photo_dir)

    def path_for(self, file_name: str) -> Path:
        # Only ever a bare name; reject anything that could walk out of the directory
        if not file_name or Path(file_name).name != file_name:
            raise StorageError(f"Invalid photo file name: {file_name!r}")
        return self.directory / file_name

    def save(self, file_name: str, data: bytes) -> Path:
        path = self.path_for(file_name)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write photo {file_name}: {e}") from e
        return path

    def remove(self, file_name: str) -> bool:
        """Delete a stored photo. Returns False if it was already gone."""
        path = self.path_for(file_name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to remove photo {file_name}: {e}") from e
        logger.debug("Removed photo file %s", path)
        return True

    def exists(self, file_name: str) -> bool:
        return self.path_for(file_name).is_file()
