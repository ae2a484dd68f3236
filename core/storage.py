"""Object storage for job-card photos, kept on the local filesystem."""
import logging
from pathlib import Path

from core.errors import PhotoUploadFailure

logger = logging.getLogger(__name__)


class LocalObjectStorage:
    """Bucket/path object store rooted at a directory.

    Objects are never overwritten: uploading to an existing path fails.
    """

    def __init__(self, root):
        self.root = Path(root)

    def _resolve(self, bucket: str, path: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        target = (bucket_dir / path).resolve()
        if bucket_dir not in target.parents:
            raise PhotoUploadFailure(path, "path escapes bucket")
        return target

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        """Store `data` and return the object path within the bucket."""
        target = self._resolve(bucket, path)
        if target.exists():
            raise PhotoUploadFailure(path, "object already exists")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as f:
                f.write(data)
        except (OSError, TypeError) as e:
            logger.exception("Upload to %s/%s failed", bucket, path)
            raise PhotoUploadFailure(path, str(e)) from e
        logger.info("Stored %s/%s (%d bytes)", bucket, path, len(data))
        return path

    def url_for(self, bucket: str, path: str) -> str:
        return str(self._resolve(bucket, path))
