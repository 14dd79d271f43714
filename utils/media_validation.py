"""Validation helpers for image references handed to the vision model."""

from urllib.parse import urlparse

ALLOWED_IMAGE_SCHEMES = {"http", "https"}

ALLOWED_DATA_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
}


def validate_image_url(url: str) -> str:
    """Return the stripped URL if the model can fetch it, else raise ValueError.

    Accepts absolute http(s) URLs (as produced by the upload service) and
    base64 ``data:image/...`` URLs for the formats the vision model reads.
    """
    value = (url or "").strip()
    if not value:
        raise ValueError("Image URL is required.")

    if value.lower().startswith("data:"):
        header, _, payload = value.partition(",")
        media_type = header[5:].split(";", 1)[0].strip().lower()
        if media_type not in ALLOWED_DATA_IMAGE_TYPES:
            raise ValueError(f"Unsupported image data type: {media_type or 'missing'}")
        if ";base64" not in header.lower() or not payload:
            raise ValueError("Image data URLs must carry a base64 payload.")
        return value

    parsed = urlparse(value)
    if parsed.scheme.lower() not in ALLOWED_IMAGE_SCHEMES or not parsed.netloc:
        raise ValueError(f"Image URL must be an absolute http(s) or data URL: {value[:80]}")
    return value
