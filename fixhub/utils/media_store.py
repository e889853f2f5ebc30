"""
Media storage utilities for avatars and service photos.
Uploads to an S3-compatible bucket and returns stable public URLs.
"""

import hashlib
import logging
from datetime import datetime
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import (
    MEDIA_ACCESS_KEY_ID,
    MEDIA_BUCKET_NAME,
    MEDIA_ENDPOINT_URL,
    MEDIA_PUBLIC_BASE_URL,
    MEDIA_SECRET_ACCESS_KEY,
)
from ..errors import DomainError, InvalidInput

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE_BYTES = 5 * 1024 * 1024  # 5MB
ALLOWED_IMAGE_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class MediaStoreError(DomainError):
    """Raised when the object store rejects an upload"""

    kind = "media_store_error"
    status_code = 502


def get_media_client():
    """Get configured boto3 client for the media bucket"""
    return boto3.client(
        "s3",
        endpoint_url=MEDIA_ENDPOINT_URL,
        aws_access_key_id=MEDIA_ACCESS_KEY_ID,
        aws_secret_access_key=MEDIA_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


def validate_image(size_bytes: int, mime_type: Optional[str]) -> str:
    """
    Validate an image before upload.

    Returns:
        The file extension to store it under

    Raises:
        InvalidInput: If the file is too large or not a supported image
    """
    if size_bytes == 0:
        raise InvalidInput("Uploaded file is empty")
    if size_bytes > MAX_IMAGE_SIZE_BYTES:
        raise InvalidInput(
            f"Image exceeds maximum of {MAX_IMAGE_SIZE_BYTES / (1024 * 1024):.0f}MB"
        )
    if mime_type not in ALLOWED_IMAGE_MIME_TYPES:
        raise InvalidInput("Image format not supported. Allowed formats: JPEG, PNG, WebP")
    return ALLOWED_IMAGE_MIME_TYPES[mime_type]


def generate_media_key(folder: str, owner_id: int, extension: str) -> str:
    """
    Generate a unique key for an uploaded file.

    Format: {folder}/{owner_id}/{timestamp}_{hash}.{extension}
    """
    timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S%f")
    file_hash = hashlib.sha256(f"{folder}{owner_id}{timestamp}".encode()).hexdigest()[:10]
    return f"{folder}/{owner_id}/{timestamp}_{file_hash}.{extension}"


def public_url(key: str) -> str:
    if MEDIA_PUBLIC_BASE_URL:
        return f"{MEDIA_PUBLIC_BASE_URL.rstrip('/')}/{key}"
    return f"{(MEDIA_ENDPOINT_URL or '').rstrip('/')}/{MEDIA_BUCKET_NAME}/{key}"


def upload_image(file_content: bytes, folder: str, owner_id: int, mime_type: Optional[str]) -> str:
    """
    Upload an image to the media bucket.

    Returns:
        Public URL of the stored object

    Raises:
        InvalidInput: If the image fails validation
        MediaStoreError: If the upload fails
    """
    extension = validate_image(len(file_content), mime_type)
    key = generate_media_key(folder, owner_id, extension)

    try:
        get_media_client().put_object(
            Bucket=MEDIA_BUCKET_NAME,
            Key=key,
            Body=file_content,
            ContentType=mime_type,
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Error uploading {key} to media store: {e}")
        raise MediaStoreError("Failed to store uploaded file") from e

    logger.info(f"Uploaded {key} ({len(file_content)} bytes)")
    return public_url(key)
