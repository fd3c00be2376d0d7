from __future__ import annotations

import base64
import binascii
import logging
import re
import time

from dolks_api.services.supabase import SupabaseClient

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX_RE = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,", re.IGNORECASE)
JPEG_CONTENT_TYPE = "image/jpeg"


class InvalidImageError(ValueError):
    """Raised when an uploaded image payload is not valid base64."""


def decode_base64_image(payload: str) -> bytes:
    data = _DATA_URL_PREFIX_RE.sub("", payload.strip(), count=1)
    try:
        decoded = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageError("image payload is not valid base64") from exc
    if not decoded:
        raise InvalidImageError("image payload is empty")
    return decoded


def build_object_path(user_id: str, *, index: int | None = None, now_ms: int | None = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = f"_{index}" if index is not None else ""
    return f"{user_id}/{stamp}{suffix}.jpg"


async def upload_post_image(
    supabase: SupabaseClient,
    *,
    bucket: str,
    user_id: str,
    image_base64: str,
    token: str | None = None,
) -> str:
    content = decode_base64_image(image_base64)
    path = build_object_path(user_id)
    url = await supabase.upload_object(
        bucket=bucket,
        path=path,
        content=content,
        content_type=JPEG_CONTENT_TYPE,
        token=token,
    )
    logger.info("post image uploaded user_id=%s path=%s", user_id, path)
    return url


async def upload_job_documents(
    supabase: SupabaseClient,
    *,
    bucket: str,
    user_id: str,
    images_base64: list[str],
    token: str | None = None,
) -> list[str]:
    """Upload each image, skipping (and logging) the ones that fail."""
    now_ms = int(time.time() * 1000)
    urls: list[str] = []
    for index, image_base64 in enumerate(images_base64):
        path = build_object_path(user_id, index=index, now_ms=now_ms)
        try:
            content = decode_base64_image(image_base64)
            url = await supabase.upload_object(
                bucket=bucket,
                path=path,
                content=content,
                content_type=JPEG_CONTENT_TYPE,
                token=token,
            )
        except Exception:
            logger.exception("job document upload failed user_id=%s index=%s", user_id, index)
            continue
        urls.append(url)
    return urls
