"""File storage for uploaded documents: S3 when configured, local disk otherwise."""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from simplehire.config import settings
from simplehire.utils.errors import AppError, ValidationFailed

logger = logging.getLogger(__name__)

ID_DOCUMENTS_FOLDER = "id-documents"
VISA_DOCUMENTS_FOLDER = "visa-documents"
SELFIES_FOLDER = "selfies"
RESUMES_FOLDER = "resumes"
COVER_LETTERS_FOLDER = "cover-letters"

DOCUMENT_MIME_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/octet-stream",
}
IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "application/pdf"}


@dataclass
class StoredFile:
    """Location of a stored upload."""
    url: str
    key: str
    size: int
    content_type: str


class StorageService:
    """Writes uploads to S3 or to ``settings.upload_dir``."""

    def __init__(self):
        self._s3_client = None

    @property
    def use_s3(self) -> bool:
        return settings.storage_configured

    @property
    def provider(self) -> str:
        return "s3" if self.use_s3 else "local"

    def _s3(self):
        if self._s3_client is None:
            kwargs = dict(
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
                region_name=settings.aws_region,
            )
            if settings.aws_endpoint:
                kwargs["endpoint_url"] = settings.aws_endpoint
            self._s3_client = boto3.client("s3", **kwargs)
        return self._s3_client

    async def read_upload(self, file: Optional[UploadFile], allowed_types: set, required: bool = True) -> Optional[bytes]:
        """
        Read and validate an uploaded file.

        Args:
            file: The multipart upload
            allowed_types: Accepted content types
            required: Raise when no file was sent

        Returns:
            The file bytes, or None for an optional missing file

        Raises:
            ValidationFailed: Missing, empty, oversize or wrong-type file
        """
        if file is None or not file.filename:
            if required:
                raise ValidationFailed("No file uploaded")
            return None
        if file.content_type not in allowed_types:
            raise ValidationFailed(f"Invalid file type. Content-Type: {file.content_type}", code="INVALID_FILE_TYPE")
        content = await file.read()
        if not content:
            raise ValidationFailed("Uploaded file is empty")
        if len(content) > settings.max_file_size_bytes:
            raise AppError(
                f"File size exceeds maximum limit of {settings.max_file_size_mb}MB",
                413,
                "FILE_TOO_LARGE",
            )
        return content

    def save(self, content: bytes, filename: str, content_type: str, folder: str) -> StoredFile:
        """Store bytes under ``folder`` with a random name, keeping the extension."""
        extension = Path(filename or "").suffix.lower()
        key = f"{folder}/{uuid.uuid4()}{extension}"

        if self.use_s3:
            try:
                self._s3().put_object(
                    Bucket=settings.aws_s3_bucket,
                    Key=key,
                    Body=content,
                    ContentType=content_type,
                )
            except (ClientError, BotoCoreError) as e:
                logger.error(f"S3 upload failed for {key}: {e}")
                raise AppError("File upload failed", 500, "UPLOAD_ERROR")
            if settings.aws_endpoint:
                url = f"{settings.aws_endpoint}/{settings.aws_s3_bucket}/{key}"
            else:
                url = f"https://{settings.aws_s3_bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"
        else:
            path = Path(settings.upload_dir) / key
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
            url = f"/uploads/{key}"

        logger.info(f"Stored {len(content)} bytes at {key} ({self.provider})")
        return StoredFile(url=url, key=key, size=len(content), content_type=content_type)

    def delete(self, key: str) -> None:
        if self.use_s3:
            try:
                self._s3().delete_object(Bucket=settings.aws_s3_bucket, Key=key)
            except (ClientError, BotoCoreError) as e:
                logger.error(f"S3 delete failed for {key}: {e}")
                raise AppError("File deletion failed", 500, "DELETE_ERROR")
        else:
            path = Path(settings.upload_dir) / key
            if path.exists():
                path.unlink()


storage_service = StorageService()
