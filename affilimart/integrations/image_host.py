"""Image hosting on Cloudinary."""

import logging

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from affilimart import config
from affilimart.errors import UpstreamError
from affilimart.integrations.qr import to_data_url

logger = logging.getLogger(__name__)

_configured = False


def _configure() -> None:
    global _configured
    if _configured:
        return
    cloudinary.config(
        cloud_name=config.CLOUDINARY_CLOUD_NAME,
        api_key=config.CLOUDINARY_API_KEY,
        api_secret=config.CLOUDINARY_API_SECRET,
        secure=True,
    )
    _configured = True


def upload(image: bytes, folder: str) -> str:
    """
    Upload a PNG image and return its public URL.

    Args:
        image: PNG image bytes
        folder: Target folder on the image host

    Returns:
        str: HTTPS URL of the hosted image

    Raises:
        UpstreamError: If the upload fails or returns no URL
    """
    _configure()
    try:
        result = cloudinary.uploader.upload(to_data_url(image), folder=folder, resource_type="image")
    except cloudinary.exceptions.Error as e:
        logger.error(f"Cloudinary upload error: {str(e)}")
        raise UpstreamError(f"Image upload failed: {str(e)}")

    url = (result or {}).get("secure_url")
    if not url:
        raise UpstreamError("Image upload returned no URL")
    return url
