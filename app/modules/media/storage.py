import logging
import pathlib
from functools import lru_cache
from typing import Optional

from b2sdk.v2 import InMemoryAccountInfo, B2Api

from app.core.config import settings

logger = logging.getLogger(__name__)

class B2Storage:
    """
    Media storage on Backblaze B2.
    Without credentials it runs in mock mode and writes under LOCAL_UPLOAD_DIR,
    which is served by the /static mount.
    """

    def __init__(self):
        self.info = InMemoryAccountInfo()
        self.b2_api = B2Api(self.info)
        self.application_key_id = settings.B2_APPLICATION_KEY_ID
        self.application_key = settings.B2_APPLICATION_KEY
        self.bucket_name = settings.B2_BUCKET_NAME
        self.local_dir = pathlib.Path(settings.LOCAL_UPLOAD_DIR)

        self.bucket = None
        self.is_mock = False

        if self.application_key_id and self.application_key and self.bucket_name:
            try:
                self.b2_api.authorize_account("production", self.application_key_id, self.application_key)
                self.bucket = self.b2_api.get_bucket_by_name(self.bucket_name)
            except Exception as e:
                logger.warning(f"B2 init failed, falling back to mock storage: {e}")
                self.is_mock = True
        else:
            logger.info("B2 credentials missing, using mock storage.")
            self.is_mock = True

    @property
    def base_url(self) -> str:
        if self.is_mock:
            return "/" + self.local_dir.as_posix().strip("/")
        # CDN override (e.g. Cloudflare) wins over the friendly URL
        if settings.B2_PUBLIC_URL:
            return settings.B2_PUBLIC_URL.rstrip("/")
        return f"{settings.B2_ENDPOINT.rstrip('/')}/file/{self.bucket_name}"

    def public_url(self, file_key: str) -> str:
        return f"{self.base_url}/{file_key}"

    def key_from_url(self, url: str) -> Optional[str]:
        prefix = self.base_url + "/"
        if not url.startswith(prefix):
            return None
        file_key = url[len(prefix):].split("?", 1)[0]
        if not file_key or ".." in file_key.split("/") or "\\" in file_key:
            logger.warning(f"Rejected storage key with path traversal: {file_key}")
            return None
        return file_key

    def local_path(self, file_key: str) -> pathlib.Path:
        root = self.local_dir.resolve()
        full_path = (root / file_key).resolve()
        if not full_path.is_relative_to(root):
            raise ValueError(f"Storage key escapes the upload directory: {file_key}")
        return full_path

    def upload_file(self, file_data: bytes, file_key: str, content_type: str) -> str:
        """
        Uploads bytes and returns the public URL.
        """
        if self.is_mock:
            full_path = self.local_path(file_key)
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with open(full_path, "wb") as f:
                f.write(file_data)
            return self.public_url(file_key)

        if not self.bucket:
            raise ValueError("B2 Bucket not initialized")

        self.bucket.upload_bytes(file_data, file_key, content_type=content_type)
        logger.info(f"Uploaded {file_key} to B2 ({len(file_data)} bytes)")
        return self.public_url(file_key)

    def delete_file(self, url: str) -> bool:
        """
        Deletes the object behind a public URL. Returns False when the URL
        does not point into this storage.
        """
        file_key = self.key_from_url(url)
        if not file_key:
            logger.info(f"Skipping delete, URL not managed by storage: {url}")
            return False

        if self.is_mock:
            full_path = self.local_path(file_key)
            if full_path.exists():
                full_path.unlink()
                return True
            return False

        if not self.bucket:
            raise ValueError("B2 Bucket not initialized")

        file_version = self.bucket.get_file_info_by_name(file_key)
        self.bucket.delete_file_version(file_version.id_, file_key)
        logger.info(f"Deleted {file_key} from B2")
        return True

@lru_cache()
def get_storage() -> B2Storage:
    return B2Storage()
