"""QR rendering for ticket tokens."""

import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.image.pil import PilImage


def encode_qr(text: str, box_size: int = 8) -> bytes:
    """Render ``text`` as a PNG QR code."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=box_size, border=4)
    qr.add_data(text)
    qr.make(fit=True)
    image = qr.make_image(image_factory=PilImage)
    buffer = io.BytesIO()
    image.save(buffer)
    return buffer.getvalue()


def png_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def qr_data_url(text: str) -> str:
    """Same PNG, inlined as a data URL for HTML emails."""
    return png_data_url(encode_qr(text))
