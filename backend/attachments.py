"""Resume file storage.

Uploaded resumes are written to the upload directory under a random key.
Records keep that key, never a path supplied by a client.
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

from .errors import AttachmentTooLarge, InvalidAttachment, StorageFault

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
CHUNK_SIZE = 64 * 1024
DEFAULT_FILE_NAME = "resume.pdf"


@dataclass(frozen=True)
class StoredResume:
    file_name: str
    key: str


class ResumeStore:
    def __init__(self, root: Path, max_bytes: int):
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path.parent != self.root.resolve():
            raise StorageFault("Invalid resume storage reference")
        return path

    def exists(self, key: Optional[str]) -> bool:
        return bool(key) and self.path_for(key).is_file()

    def save(self, file_name: Optional[str], content_type: Optional[str], stream: BinaryIO) -> StoredResume:
        """Write an uploaded PDF into the store.

        Rejected uploads leave nothing behind.
        """
        if content_type != PDF_CONTENT_TYPE:
            logger.warning("Resume upload rejected: content_type=%s", content_type)
            raise InvalidAttachment()

        key = uuid.uuid4().hex
        path = self.path_for(key)
        written = 0
        try:
            with path.open("wb") as handle:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise AttachmentTooLarge(f"Resume file exceeds {self.max_bytes / (1024 * 1024):g}MB limit")
                    handle.write(chunk)
        except AttachmentTooLarge:
            path.unlink(missing_ok=True)
            logger.warning("Resume upload rejected: file=%s size>%s", file_name, self.max_bytes)
            raise
        except OSError as e:
            path.unlink(missing_ok=True)
            logger.exception("Resume upload failed: file=%s", file_name)
            raise StorageFault("Failed to store resume") from e

        logger.info("Resume stored: key=%s file=%s bytes=%s", key, file_name, written)
        return StoredResume(file_name=Path(file_name or DEFAULT_FILE_NAME).name, key=key)

    def release(self, key: Optional[str]) -> None:
        """Delete a stored resume. Missing files are ignored."""
        if not key:
            return
        try:
            self.path_for(key).unlink(missing_ok=True)
        except (OSError, StorageFault):
            logger.exception("Failed to release resume: key=%s", key)
            return
        logger.info("Resume released: key=%s", key)
