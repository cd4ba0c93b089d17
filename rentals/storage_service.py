import logging
from typing import Optional

from .constants import ALLOWED_IMAGE_TYPES, MAX_PROFILE_PICTURE_BYTES, PROFILE_PICTURE_PREFIX
from .firebase_service import get_firebase_app
from .repositories.users import user_repository

logger = logging.getLogger("rentals")


class StorageError(Exception):
    pass


class InvalidUpload(ValueError):
    pass


def profile_picture_path(user_id: str, content_type: str) -> str:
    return f"{PROFILE_PICTURE_PREFIX}/{user_id}.{ALLOWED_IMAGE_TYPES[content_type]}"


def get_bucket():
    app = get_firebase_app()
    if app is None:
        return None
    from firebase_admin import storage
    return storage.bucket(app=app)


def upload_profile_picture(user_id: str, content: bytes, content_type: Optional[str]) -> str:
    """
    Upload a profile picture, make it public and record its URL on the
    user document. Returns the public URL.
    """
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise InvalidUpload(f"Unsupported image type: {content_type}")
    if not content:
        raise InvalidUpload("Empty upload")
    if len(content) > MAX_PROFILE_PICTURE_BYTES:
        raise InvalidUpload("Image too large")

    bucket = get_bucket()
    if bucket is None:
        raise StorageError("Firebase Storage is not configured")

    path = profile_picture_path(user_id, content_type)
    try:
        blob = bucket.blob(path)
        blob.upload_from_string(content, content_type=content_type)
        blob.make_public()
        url = blob.public_url
    except Exception as e:
        logger.error(f"[STORAGE] Upload failed for {path}: {e}")
        raise StorageError(str(e)) from e

    if not user_repository.set_profile_picture(user_id, url):
        raise StorageError(f"Uploaded {path} but failed to update user {user_id}")

    logger.info(f"[STORAGE] Profile picture uploaded: {path}")
    return url
