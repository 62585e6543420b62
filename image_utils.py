import base64
import binascii
import io
import re
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from errors import ValidationError

DEFAULT_MIME = "image/jpeg"

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]*)(?:;[^,]*)?,(?P<payload>.*)$", re.DOTALL)


@dataclass(frozen=True)
class ImageRef:
    """Image bytes plus the media type they were declared (or detected) as."""

    data: bytes
    mime_type: str
    filename: str | None = None

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


def detect_mime(raw_bytes):
    """Return the media type Pillow detects for `raw_bytes`, or raise ValidationError."""
    try:
        with Image.open(io.BytesIO(raw_bytes)) as img:
            img.verify()
            fmt = img.format
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise ValidationError("The uploaded file is not a valid image.") from e
    return Image.MIME.get(fmt, DEFAULT_MIME)


def read_upload(file_storage) -> ImageRef:
    """Turn a werkzeug FileStorage from a multipart upload into an ImageRef."""
    if file_storage is None or not file_storage.filename:
        raise ValidationError("Please choose an image to upload.")

    raw_bytes = file_storage.read()
    if not raw_bytes:
        raise ValidationError("The uploaded file is empty.")

    detected = detect_mime(raw_bytes)
    declared = (file_storage.mimetype or "").lower()
    mime = declared if declared.startswith("image/") else detected
    return ImageRef(raw_bytes, mime, file_storage.filename)


def parse_data_url(data_url, filename=None) -> ImageRef:
    """Decode a `data:<mime>;base64,<payload>` URL."""
    match = _DATA_URL_RE.match((data_url or "").strip())
    if not match:
        raise ValidationError("Invalid image data")

    try:
        raw_bytes = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Invalid image data") from e
    if not raw_bytes:
        raise ValidationError("Invalid image data")

    mime = match.group("mime") or DEFAULT_MIME
    detect_mime(raw_bytes)
    return ImageRef(raw_bytes, mime, filename)


def to_generative_part(image_ref):
    """Return the (base64 payload, mime type) pair sent to the edit model."""
    return image_ref.to_base64(), image_ref.mime_type


def extension_for(mime_type):
    if "png" in mime_type:
        return "png"
    if "webp" in mime_type:
        return "webp"
    if "jpeg" in mime_type or "jpg" in mime_type:
        return "jpg"
    return "png"
