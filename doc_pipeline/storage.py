import logging
import os
import shutil
import uuid
from typing import Optional

from config import settings

logger = logging.getLogger(__name__)


class UploadStorage:
    """
    Stages uploaded documents in a temporary directory.
    Each request gets its own sub-directory, removed when the request ends;
    ``clear`` empties the whole directory on shutdown.
    """

    def __init__(self, upload_dir: Optional[str] = None):
        self.upload_dir = upload_dir or settings.UPLOAD_DIR
        os.makedirs(self.upload_dir, exist_ok=True)

    def request_dir(self) -> str:
        path = os.path.join(self.upload_dir, f"req_{uuid.uuid4().hex}")
        os.makedirs(path)
        return path

    def save(self, directory: str, data: bytes, filename: str) -> str:
        """Save raw upload bytes under the request directory"""
        safe_name = os.path.basename(filename) or "document"
        path = os.path.join(directory, f"raw_{safe_name}")
        with open(path, "wb") as f:
            f.write(data)
        return path

    def discard(self, directory: str) -> None:
        if directory and os.path.exists(directory):
            shutil.rmtree(directory, ignore_errors=True)

    def clear(self) -> int:
        """Best-effort removal of everything in the upload directory"""
        removed = 0
        if not os.path.isdir(self.upload_dir):
            return removed
        for entry in os.listdir(self.upload_dir):
            path = os.path.join(self.upload_dir, entry)
            try:
                if os.path.isdir(path):
                    shutil.rmtree(path)
                else:
                    os.remove(path)
                removed += 1
            except OSError as e:
                logger.error("Error during cleanup of %s: %s", path, e)
        return removed
