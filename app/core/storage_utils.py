# app/core/storage_utils.py
import uuid
from functools import lru_cache

from fastapi import HTTPException, status
from supabase import Client, create_client

from app.core.config import get_settings

settings = get_settings()

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image

# Payment and refund slips: JPEG / PNG only
SLIP_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
}

# Catalog and website images also accept WEBP
IMAGE_CONTENT_TYPES: dict[str, str] = {
    **SLIP_CONTENT_TYPES,
    "image/webp": "webp",
}


@lru_cache
def storage_client() -> Client:
    """
    Supabase client authenticated with the service role key.

    Only the backend holds this key; it writes slips and images
    to the public bucket on behalf of users.

    Raises:
        RuntimeError: SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY missing.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY in .env")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def _bucket():
    return storage_client().storage.from_(settings.STORAGE_BUCKET)


def validate_image(
    content_type: str | None,
    file_bytes: bytes,
    allowed: dict[str, str] = IMAGE_CONTENT_TYPES,
) -> str:
    """
    Validate an uploaded image and return its file extension.

    Raises:
        HTTPException(400): unsupported or missing content type, empty file.
        HTTPException(413): file larger than MAX_IMAGE_BYTES.
    """
    if not content_type or content_type not in allowed:
        allowed_names = ", ".join(ext.upper() for ext in allowed.values())
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported image type. Allowed: {allowed_names}.",
        )

    if not file_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty.",
        )

    if len(file_bytes) > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Image too large (max 5MB).",
        )

    return allowed[content_type]


def upload_to_storage(path: str, file_bytes: bytes, content_type: str) -> str:
    """
    Upload raw bytes to Supabase Storage and return a public URL.

    If a file already exists at this path, it will be overwritten
    thanks to the 'upsert' option.

    Args:
        path: Full object path inside the bucket.
              Example: "slips/order_12/<uuid>.png"
        file_bytes: File content in bytes.
        content_type: MIME type stored with the object.

    Returns:
        Public URL to the uploaded file.
    """
    _bucket().upload(path, file_bytes, {"upsert": "true", "content-type": content_type})
    return _bucket().get_public_url(path)


def delete_from_storage(path: str) -> None:
    """
    Delete a file from Supabase Storage by its object path.

    Example path (relative to bucket):
        'products/12/<uuid>.png'
    """
    _bucket().remove([path])


def extract_path_from_public_url(url: str) -> str | None:
    """
    Given a public URL, extract the object path relative to the bucket.

    Example:
        https://<proj>.supabase.co/storage/v1/object/public/assets/slips/order_1/a.png
        -> 'slips/order_1/a.png'
    """
    marker = f"/storage/v1/object/public/{settings.STORAGE_BUCKET}/"
    idx = url.find(marker)
    if idx == -1:
        return None
    return url[idx + len(marker) :]


def delete_public_url(url: str) -> None:
    """
    Convenience helper: delete a file by its public URL.
    No-op if the URL does not belong to this bucket.
    """
    path = extract_path_from_public_url(url)
    if path:
        delete_from_storage(path)


def generate_filename(ext: str) -> str:
    """
    Generate a random filename using UUID4.

    Args:
        ext: File extension without dot (e.g. "png", "jpg")

    Returns:
        A filename like "<uuid4>.png"
    """
    return f"{uuid.uuid4()}.{ext}"
