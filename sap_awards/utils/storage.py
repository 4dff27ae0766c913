"""
File storage for nominee photos and certificate PDFs.

Local storage writes under UPLOAD_DIR and returns /uploads/... paths served
by the app. R2 storage uploads to the bucket and returns a public CDN URL.
"""

import logging
import os
import time
import uuid
from typing import Optional, Tuple

import boto3
from botocore.client import Config

from .. import config

logger = logging.getLogger(__name__)

PHOTO_SUBDIR = "awards"
ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"]
ALLOWED_IMAGE_EXTENSIONS = ["jpg", "jpeg", "png", "gif", "webp"]


def get_r2_client():
    """Get configured boto3 client for Cloudflare R2"""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{config.R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=config.R2_ACCESS_KEY_ID,
        aws_secret_access_key=config.R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


def use_r2() -> bool:
    return config.STORAGE_BACKEND == "r2"


def validate_image_file(filename: str, size_bytes: int, mime_type: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate an uploaded nominee photo.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if size_bytes > config.MAX_PHOTO_SIZE:
        return False, f"Photo exceeds the {config.MAX_PHOTO_SIZE / (1024 * 1024):.0f}MB size limit"
    if size_bytes == 0:
        return False, "Photo file is empty"

    ext = filename.lower().rsplit(".", 1)[-1] if filename and "." in filename else ""
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        return False, "Only image files (JPG, JPEG, PNG, GIF, WebP) are allowed"
    if mime_type and mime_type not in ALLOWED_IMAGE_TYPES:
        return False, "Only image files (JPG, JPEG, PNG, GIF, WebP) are allowed"

    return True, None


def _save_local(relative_path: str, contents: bytes) -> str:
    full_path = os.path.join(config.UPLOAD_DIR, relative_path)
    os.makedirs(os.path.dirname(full_path), exist_ok=True)
    with open(full_path, "wb") as f:
        f.write(contents)
    return full_path


def _upload_r2(key: str, contents: bytes, content_type: str) -> str:
    r2 = get_r2_client()
    r2.put_object(Bucket=config.R2_BUCKET_NAME, Key=key, Body=contents, ContentType=content_type)
    logger.info(f"☁️ Uploaded {key} to R2 bucket {config.R2_BUCKET_NAME}")
    return f"{config.R2_PUBLIC_URL.rstrip('/')}/{key}"


def store_photo(contents: bytes, filename: str, content_type: Optional[str]) -> str:
    """Store a nominee photo and return its URL. Raises on storage failure."""
    ext = filename.lower().rsplit(".", 1)[-1]
    name = f"nominee-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.{ext}"
    relative_path = f"{PHOTO_SUBDIR}/{name}"

    if use_r2():
        return _upload_r2(relative_path, contents, content_type or "application/octet-stream")

    _save_local(relative_path, contents)
    logger.info(f"📸 Stored nominee photo at /uploads/{relative_path}")
    return f"/uploads/{relative_path}"


def store_certificate(pdf_bytes: bytes, filename: str) -> str:
    """Store a certificate PDF and return the URL it is downloaded from."""
    if use_r2():
        return _upload_r2(f"certificates/{filename}", pdf_bytes, "application/pdf")

    os.makedirs(config.CERTIFICATES_DIR, exist_ok=True)
    with open(os.path.join(config.CERTIFICATES_DIR, filename), "wb") as f:
        f.write(pdf_bytes)
    logger.info(f"📄 Stored certificate {filename}")
    return f"{config.PUBLIC_API_URL.rstrip('/')}/api/certificates/download/{filename}"


def local_path_for(url: Optional[str]) -> Optional[str]:
    """Map a /uploads/... URL to its file on disk. External URLs map to None."""
    if not url or not url.startswith("/uploads/"):
        return None
    relative = url[len("/uploads/") :]
    full_path = os.path.normpath(os.path.join(config.UPLOAD_DIR, relative))
    if not full_path.startswith(os.path.normpath(config.UPLOAD_DIR) + os.sep):
        return None
    return full_path


def delete_file(url: Optional[str]) -> bool:
    """
    Best-effort removal of a stored file. Only local uploads are deleted;
    CDN URLs are skipped. Failures are logged, never raised.
    """
    if not url:
        return False

    path = local_path_for(url)
    if path is None:
        logger.info(f"⏭️ Skipping deletion of external file: {url}")
        return False

    try:
        os.remove(path)
        logger.info(f"🗑️ Deleted file {path}")
        return True
    except FileNotFoundError:
        logger.warning(f"⚠️ File already missing: {path}")
        return False
    except OSError as e:
        logger.error(f"❌ Failed to delete file {path}: {e}")
        return False


def certificate_path(filename: str) -> Optional[str]:
    """Local path of a stored certificate, or None for unsafe names"""
    if not filename or os.path.basename(filename) != filename or not filename.endswith(".pdf"):
        return None
    return os.path.join(config.CERTIFICATES_DIR, filename)


def load_certificate(filename: str) -> bytes:
    """Read back a stored certificate PDF. Raises when it cannot be read."""
    if use_r2():
        obj = get_r2_client().get_object(Bucket=config.R2_BUCKET_NAME, Key=f"certificates/{filename}")
        return obj["Body"].read()

    path = certificate_path(filename)
    if path is None:
        raise FileNotFoundError(filename)
    with open(path, "rb") as f:
        return f.read()
