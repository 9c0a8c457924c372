"""Upload validation and image normalization before model calls."""

import base64
import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from nutrition_chat.errors import ProcessingError, ValidationError

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_DIMENSION = 1200
JPEG_QUALITY = 85

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
}


@dataclass(frozen=True)
class ImagePreprocessor:
    """Validates uploads and re-encodes them as bounded JPEGs."""

    max_upload_bytes: int = MAX_UPLOAD_BYTES
    max_dimension: int = MAX_DIMENSION
    jpeg_quality: int = JPEG_QUALITY

    def validate_upload(self, content_type: str | None, size: int) -> None:
        """Reject unsupported MIME types and oversized files."""
        if (content_type or "").lower() not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                "Only image files (jpg, jpeg, png, webp) are allowed"
            )
        if size > self.max_upload_bytes:
            raise ValidationError("File too large")

    def preprocess(self, data: bytes) -> bytes:
        """Scale the image to fit the dimension bound and encode it as JPEG."""
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ProcessingError("Invalid image format or corrupted file") from exc

        original_size = image.size
        rgb_image = _to_rgb(image)
        rgb_image.thumbnail(
            (self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS
        )

        output = io.BytesIO()
        rgb_image.save(output, format="JPEG", quality=self.jpeg_quality)
        logger.info(
            "Preprocessed upload",
            extra={"original_size": original_size, "final_size": rgb_image.size},
        )
        return output.getvalue()


def to_base64(data: bytes) -> str:
    """Encode bytes as base64 text for embedding in a data URL."""
    return base64.b64encode(data).decode("utf-8")


def _to_rgb(image: Image.Image) -> Image.Image:
    """Flatten transparency onto white and drop any non-RGB mode."""
    if image.mode == "P":
        image = image.convert("RGBA")
    if image.mode in ("RGBA", "LA"):
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[-1])
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image.copy()
