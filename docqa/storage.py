"""Local filesystem blob storage for uploaded files."""
import re
from pathlib import Path
from typing import Optional
import structlog

from docqa import config

logger = structlog.get_logger()

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class LocalBlobStorage:
    """Stores raw document bytes under a flat directory, one file per key."""

    def __init__(self, root: Path = None):
        self.root = Path(root or config.STORAGE_DIR)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key) or ".." in key:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / key

    def upload(self, key: str, data: bytes) -> None:
        """Write bytes under a new key.

        Raises:
            FileExistsError: If the key is already taken
        """
        path = self._path(key)
        with open(path, "xb") as f:
            f.write(data)
        logger.info("blob_uploaded", key=key, size=len(data))

    def download(self, key: str) -> Optional[bytes]:
        """Read the bytes stored under a key, or None if missing."""
        path = self._path(key)
        if not path.exists():
            logger.warning("blob_not_found", key=key)
            return None
        data = path.read_bytes()
        logger.debug("blob_downloaded", key=key, size=len(data))
        return data

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            logger.warning("blob_delete_missing", key=key)
            return False
        path.unlink()
        logger.info("blob_deleted", key=key)
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).exists()
