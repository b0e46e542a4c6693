"""
Image upload adapter for portal profile images.

Files are base64-encoded and posted to an ImgBB-compatible host. Limits are
checked before any network call. The host is never asked to delete a binary
(its free tier has no delete API); removed images simply stop being
referenced and expire host-side.
"""

from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone

import httpx

from clinicdesk.db.repositories import AccountRepository
from clinicdesk.errors import ImageUploadError, NotFoundError, ValidationError
from clinicdesk.models import Account, ImageRef, MAX_IMAGES_PER_ACCOUNT

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024


def validate_image(
    content_type: str | None,
    size: int,
    current_count: int,
    replacing: bool = False,
) -> None:
    """
    Check an image against the portal limits.

    Raises ValidationError for a non-image MIME type, a file over 5MB, or a
    fourth image when not replacing an existing one.
    """
    if size <= 0:
        raise ValidationError("Please select an image first.")
    if not (content_type or "").startswith("image/"):
        raise ValidationError("Please select an image file.")
    if size > MAX_IMAGE_BYTES:
        raise ValidationError("Image size should not exceed 5MB.")
    if current_count >= MAX_IMAGES_PER_ACCOUNT and not replacing:
        raise ValidationError(
            f"Maximum {MAX_IMAGES_PER_ACCOUNT} images allowed. Please delete an existing image first."
        )


class ImageHostClient:
    """
    Client for the image host's upload endpoint.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.imgbb.com",
        http_client: httpx.Client | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def _error_message(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return "Failed to upload image."
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        return "Failed to upload image."

    def upload(self, data: bytes, filename: str) -> ImageRef:
        """Upload raw image bytes and map the host response to an ImageRef."""
        if not self.api_key:
            raise ImageUploadError("Image host API key not configured")

        encoded = base64.b64encode(data).decode("ascii")

        try:
            response = self._http.post(
                f"{self.api_url}/1/upload",
                params={"key": self.api_key},
                files={"image": (None, encoded), "name": (None, filename)},
            )
        except httpx.HTTPError as e:
            logger.error("Image upload transport error for %s: %s", filename, e)
            raise ImageUploadError() from e

        if response.is_error:
            message = self._error_message(response)
            logger.error("Image host rejected %s (%s): %s", filename, response.status_code, message)
            raise ImageUploadError(message, details={"status_code": response.status_code})

        payload = response.json()
        if not payload.get("success"):
            raise ImageUploadError(self._error_message(response))

        body = payload["data"]
        return ImageRef(
            url=body["url"],
            display_url=body.get("display_url"),
            thumb_url=(body.get("thumb") or {}).get("url"),
            medium_url=(body.get("medium") or {}).get("url"),
            delete_url=body.get("delete_url"),
            image_id=str(body["id"]),
            uploaded_at=datetime.now(timezone.utc).isoformat(),
            filename=filename,
        )


def find_image(account: Account, image_id: str) -> ImageRef | None:
    """First image on the account with this host id."""
    for image in account.images:
        if image.image_id == image_id:
            return image
    return None


def upload_image(
    accounts: AccountRepository,
    host: ImageHostClient,
    account: Account,
    data: bytes,
    filename: str,
    content_type: str | None,
    replace_image_id: str | None = None,
) -> list[ImageRef]:
    """
    Validate, upload and attach an image to an account.

    With replace_image_id the matching image is swapped for the new one in a
    single write; otherwise the image is appended.
    """
    replacing = None
    if replace_image_id:
        replacing = find_image(account, replace_image_id)
        if replacing is None:
            raise NotFoundError(f"Image {replace_image_id} not found")

    validate_image(content_type, len(data), len(account.images), replacing=replacing is not None)

    image = host.upload(data, filename)

    if replacing is not None:
        logger.info("Replacing image %s on account %s", replacing.image_id, account.id)
        return accounts.replace_image(account.id, replacing, image)
    return accounts.add_image(account.id, image)


def delete_image(accounts: AccountRepository, account: Account, image_id: str) -> list[ImageRef]:
    """Stop referencing an image. The hosted file is left to expire."""
    image = find_image(account, image_id)
    if image is None:
        raise NotFoundError(f"Image {image_id} not found")

    images = accounts.remove_image(account.id, image)
    if image.delete_url:
        logger.info("Image %s removed; manual delete URL: %s", image.image_id, image.delete_url)
    return images
