"""
Visit photo storage.

Uploads go through Django's default storage backend; only the resulting
URL is kept on ``VisitImage``. Files are written before the visit
transaction opens, so callers discard them if that transaction fails.
"""

import logging
import posixpath
import uuid
from dataclasses import dataclass
from typing import Iterable, List

from django.conf import settings
from django.core.files.storage import default_storage

from .exceptions import InvalidImageError, TooManyImagesError

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/webp': '.webp',
    'image/gif': '.gif',
    'image/heic': '.heic',
}


@dataclass(frozen=True)
class StoredImage:
    """A saved blob: its storage name and public URL."""

    name: str
    url: str


def validate_visit_images(files) -> None:
    """
    Check count, content type and size of uploads without saving anything.

    Raises:
        TooManyImagesError: If more than VISITS_MAX_IMAGES files are given
        InvalidImageError: If a file is not an image or is too large
    """
    if len(files) > settings.VISITS_MAX_IMAGES:
        raise TooManyImagesError(
            f"A visit can have at most {settings.VISITS_MAX_IMAGES} images"
        )

    for upload in files:
        content_type = getattr(upload, 'content_type', None)
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise InvalidImageError(f"{upload.name} is not a supported image type")
        if upload.size > settings.VISITS_MAX_IMAGE_SIZE:
            raise InvalidImageError(
                f"{upload.name} exceeds the maximum image size of "
                f"{settings.VISITS_MAX_IMAGE_SIZE // (1024 * 1024)} MB"
            )


def store_visit_images(files) -> List[StoredImage]:
    """
    Save uploaded photos and return where they ended up.

    If saving one file fails, the files already saved in this call are
    removed before the error propagates.
    """
    files = list(files)
    validate_visit_images(files)

    stored = []
    try:
        for upload in files:
            extension = ALLOWED_CONTENT_TYPES[upload.content_type]
            name = posixpath.join(settings.VISITS_IMAGE_DIR, f"{uuid.uuid4().hex}{extension}")
            saved_name = default_storage.save(name, upload)
            stored.append(StoredImage(name=saved_name, url=default_storage.url(saved_name)))
    except Exception:
        discard_visit_images(stored)
        raise

    return stored


def discard_visit_images(images: Iterable[StoredImage]) -> None:
    """Best-effort removal of blobs that no visit references."""
    for image in images:
        try:
            default_storage.delete(image.name)
        except OSError:
            logger.warning("Could not delete orphaned visit image %s", image.name, exc_info=True)
