"""QR code encoding for affiliate referral links."""

import base64
from io import BytesIO

import qrcode


def encode(text: str) -> bytes:
    """
    Generate a QR code image for ``text``.

    Returns PNG image bytes.
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(text)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def to_data_url(png_bytes: bytes) -> str:
    """Wrap PNG bytes in a data URL the image host accepts as an upload."""
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
