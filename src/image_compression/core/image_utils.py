"""Image processing utilities for the image compression pipeline."""

import io

from PIL import Image

from .exceptions import ImageProcessingError
from .models import Dimensions, ImageMetadata

MAX_DIMENSION = 4096
DEFAULT_QUALITY = 80

CONTENT_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}


def calculate_target_dimensions(
    width: int, height: int, max_dimension: int = MAX_DIMENSION
) -> Dimensions:
    """
    Fit an image inside a ``max_dimension`` square, preserving aspect ratio.

    Images already within bounds are returned unchanged; images are never
    upscaled. The longer side is clamped to ``max_dimension`` and the shorter
    side is rounded to the nearest integer.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        max_dimension: Upper bound for either side

    Returns:
        Target dimensions

    Raises:
        ImageProcessingError: If either side is not a positive integer
    """
    if width <= 0 or height <= 0:
        raise ImageProcessingError(f"Invalid image dimensions: {width}x{height}")

    if width <= max_dimension and height <= max_dimension:
        return Dimensions(width=width, height=height)

    aspect_ratio = width / height
    if width > height:
        return Dimensions(
            width=max_dimension,
            height=max(1, round(max_dimension / aspect_ratio)),
        )
    return Dimensions(
        width=max(1, round(max_dimension * aspect_ratio)),
        height=max_dimension,
    )


def extract_image_metadata(img: Image.Image, size: int) -> ImageMetadata:
    """Describe a decoded image and the byte size it was decoded from."""
    return ImageMetadata(
        width=img.width,
        height=img.height,
        format=img.format or "unknown",
        size=size,
        mode=img.mode,
    )


def resize_and_encode(
    img: Image.Image,
    dimensions: Dimensions,
    quality: int = DEFAULT_QUALITY,
    output_format: str = "JPEG",
) -> bytes:
    """
    Resize ``img`` to ``dimensions`` and encode it as a progressive, optimized image.

    Modes other than RGB and L (palette, alpha, CMYK) are converted to RGB,
    which JPEG can hold.
    """
    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    if (img.width, img.height) != (dimensions.width, dimensions.height):
        img = img.resize(
            (dimensions.width, dimensions.height), Image.Resampling.LANCZOS
        )

    output_stream = io.BytesIO()
    img.save(
        output_stream,
        format=output_format,
        quality=quality,
        optimize=True,
        progressive=True,
    )
    return output_stream.getvalue()


def compression_ratio(original_size: int, new_size: int) -> float:
    """Fraction of bytes saved, negative when the output grew."""
    if original_size <= 0:
        return 0.0
    return (original_size - new_size) / original_size


def content_type_for(output_format: str) -> str:
    return CONTENT_TYPES.get(output_format.upper(), "application/octet-stream")


def calculate_dest_key(source_key: str) -> str:
    """
    Destination key for a processed image.

    The source key is kept unchanged so repeated invocations for the same
    object overwrite the same destination object.
    """
    return source_key


def build_public_url(bucket: str, key: str) -> str:
    return f"https://{bucket}.s3.amazonaws.com/{key}"
