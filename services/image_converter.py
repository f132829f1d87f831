"""
Image format conversion service

Turns uploaded files (including HEIC from iPhones) into displayable data
URLs that the chat stores and the model APIs accept.
"""

import io
import logging
import mimetypes
import os
from pathlib import Path
from typing import Optional

from PIL import Image

from .utils import encode_data_url

logger = logging.getLogger(__name__)

# Register HEIF/HEIC support
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
except ImportError:
    logger.debug("pillow-heif not installed; HEIC uploads will be rejected")

MAX_DIMENSION = 10000
MIN_DIMENSION = 10
# longest side of images embedded into the chat
EMBED_MAX_SIDE = 1536


def detect_image_type(filepath: str) -> str:
    """
    Detect image MIME type from file.

    Args:
        filepath: Path to image file

    Returns:
        MIME type string (e.g., 'image/jpeg')
    """
    mime_type, _ = mimetypes.guess_type(filepath)

    if not mime_type:
        try:
            with Image.open(filepath) as img:
                format_to_mime = {
                    'JPEG': 'image/jpeg',
                    'PNG': 'image/png',
                    'GIF': 'image/gif',
                    'BMP': 'image/bmp',
                    'WEBP': 'image/webp',
                    'HEIC': 'image/heic',
                    'HEIF': 'image/heif'
                }
                mime_type = format_to_mime.get(img.format, 'image/jpeg')
        except OSError:
            mime_type = 'image/jpeg'

    return mime_type


def needs_conversion(mime_type: str) -> bool:
    """
    Check if an image format must be re-encoded before display or upload.

    Args:
        mime_type: MIME type of the image

    Returns:
        True if conversion needed, False otherwise
    """
    return mime_type.lower() in {
        'image/heic',
        'image/heif',
        'image/tiff',
        'image/x-icon',
        'image/bmp',
        'image/x-ms-bmp',
    }


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white and force RGB mode"""
    if img.mode in ('RGBA', 'LA', 'P'):
        if img.mode == 'P':
            img = img.convert('RGBA')
        background = Image.new('RGB', img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != 'RGB':
        return img.convert('RGB')
    return img


def convert_to_jpeg_bytes(input_path: str, quality: int = 90, max_side: Optional[int] = EMBED_MAX_SIDE) -> bytes:
    """
    Re-encode any image as JPEG in memory, shrinking it to ``max_side``.

    Raises:
        ValueError: If the image cannot be decoded
    """
    try:
        with Image.open(input_path) as img:
            img = _to_rgb(img)
            if max_side:
                img.thumbnail((max_side, max_side))
            buffer = io.BytesIO()
            img.save(buffer, 'JPEG', quality=quality, optimize=True)
            return buffer.getvalue()
    except OSError as e:
        raise ValueError(f"Failed to convert image to JPEG: {e}")


def convert_to_jpeg(input_path: str, output_path: Optional[str] = None, quality: int = 95) -> str:
    """
    Convert any image format to a JPEG file.

    Returns:
        Path to converted JPEG file
    """
    if output_path is None:
        output_path = str(Path(input_path).with_suffix('.jpg'))

    data = convert_to_jpeg_bytes(input_path, quality=quality, max_side=None)
    with open(output_path, 'wb') as f:
        f.write(data)

    return output_path


def validate_and_prepare_image(filepath: str) -> tuple[str, str]:
    """
    Validate an uploaded image and convert it when the format needs it.

    Returns:
        Tuple of (final_filepath, mime_type)

    Raises:
        ValueError: If image is invalid or cannot be processed
    """
    if not os.path.exists(filepath):
        raise ValueError(f"Image file not found: {filepath}")

    try:
        with Image.open(filepath) as img:
            img.verify()

        # Re-open (verify closes the file)
        with Image.open(filepath) as img:
            width, height = img.size
    except OSError as e:
        raise ValueError(f"Invalid image file: {e}")

    if width < MIN_DIMENSION or height < MIN_DIMENSION:
        raise ValueError("Image dimensions too small")
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise ValueError("Image dimensions too large")

    mime_type = detect_image_type(filepath)
    if needs_conversion(mime_type):
        converted_path = convert_to_jpeg(filepath)
        if converted_path != filepath:
            os.remove(filepath)
        return converted_path, 'image/jpeg'

    return filepath, mime_type


def file_to_data_url(filepath: str) -> str:
    """
    Convert an image file into a data URL suitable for a chat message.

    Large or exotic images are re-encoded as JPEG; small common formats are
    embedded as-is.

    Raises:
        ValueError: If the file is missing or not a readable image
    """
    prepared_path, mime_type = validate_and_prepare_image(filepath)

    with Image.open(prepared_path) as img:
        oversized = max(img.size) > EMBED_MAX_SIDE

    if oversized:
        return encode_data_url(convert_to_jpeg_bytes(prepared_path), 'image/jpeg')

    with open(prepared_path, 'rb') as f:
        return encode_data_url(f.read(), mime_type)
