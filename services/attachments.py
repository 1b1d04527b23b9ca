"""MinIO-backed storage for message image attachments."""
import os
from typing import BinaryIO, Optional, Tuple
from uuid import uuid4
from minio import Minio
from minio.error import S3Error
import logging

logger = logging.getLogger(__name__)

# Allowed image extensions and their MIME types
ALLOWED_EXTENSIONS = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.webp': 'image/webp'
}

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


class AttachmentStore:
    """Stores image blobs and hands out opaque references to them."""

    def __init__(self, client: Optional[Minio] = None, bucket_name: Optional[str] = None):
        """Initialize with an explicit client, or build one from the environment on first use."""
        self._client = client
        self.bucket_name = bucket_name or os.getenv("ATTACHMENT_BUCKET", "attachments")
        self._bucket_ready = False

    @property
    def client(self) -> Minio:
        if self._client is None:
            self._client = Minio(
                endpoint=os.getenv("MINIO_ENDPOINT", "localhost:9000"),
                access_key=os.getenv("MINIO_ACCESS_KEY", "minioadmin"),
                secret_key=os.getenv("MINIO_SECRET_KEY", "minioadmin"),
                secure=os.getenv("MINIO_SECURE", "false").lower() == "true"
            )
        return self._client

    def _ensure_bucket_exists(self) -> None:
        """Ensure the bucket exists, create if it doesn't."""
        if self._bucket_ready:
            return
        try:
            if not self.client.bucket_exists(self.bucket_name):
                self.client.make_bucket(self.bucket_name)
                logger.info(f"Created bucket: {self.bucket_name}")
            self._bucket_ready = True
        except S3Error as e:
            logger.error(f"Error creating bucket {self.bucket_name}: {e}")
            raise

    @staticmethod
    def validate_image(filename: str, file_size: int) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate image type and size.

        Returns:
            Tuple of (is_valid, error_message, file_extension)
        """
        if file_size > MAX_FILE_SIZE:
            return False, f"Image size exceeds maximum allowed size of {MAX_FILE_SIZE // 1024 // 1024}MB", None

        file_extension = os.path.splitext(filename or "")[1].lower() or ".jpg"
        if file_extension not in ALLOWED_EXTENSIONS:
            return False, f"File type {file_extension} is not allowed. Allowed types: {', '.join(ALLOWED_EXTENSIONS.keys())}", None

        return True, None, file_extension

    def upload(self, file_data: BinaryIO, filename: str, file_size: int, content_type: Optional[str] = None) -> str:
        """
        Store an image and return its reference.

        Raises:
            ValueError: If the image is rejected by validation
            S3Error: If the upload fails
        """
        is_valid, error_msg, file_extension = self.validate_image(filename, file_size)
        if not is_valid:
            raise ValueError(error_msg)

        ref = f"{uuid4().hex}{file_extension}"

        self._ensure_bucket_exists()
        self.client.put_object(
            bucket_name=self.bucket_name,
            object_name=ref,
            data=file_data,
            length=file_size,
            content_type=content_type or ALLOWED_EXTENSIONS[file_extension]
        )
        logger.info(f"Stored attachment {ref} in {self.bucket_name}")
        return ref

    def download(self, ref: str) -> Optional[bytes]:
        """Fetch an attachment's bytes, or None if it cannot be read."""
        try:
            response = self.client.get_object(self.bucket_name, os.path.basename(ref))
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()
        except S3Error as e:
            logger.error(f"Error downloading attachment {ref}: {e}")
            return None

    def delete(self, ref: str) -> bool:
        """Remove an attachment. Failures are logged, never raised."""
        try:
            self.client.remove_object(self.bucket_name, os.path.basename(ref))
            logger.info(f"Deleted attachment {ref}")
            return True
        except Exception as e:
            logger.warning(f"Could not delete attachment {ref}: {e}")
            return False

    @staticmethod
    def content_type_for(ref: str) -> str:
        extension = os.path.splitext(ref)[1].lower()
        return ALLOWED_EXTENSIONS.get(extension, "application/octet-stream")
