"""
Utility functions for image handling

Images travel through the chat as references: data URLs for user uploads,
``/output/<file>`` URLs for generated images. These helpers turn references
back into bytes for the model APIs.
"""

import base64
import binascii
import logging
import mimetypes
import os
import re

import requests

logger = logging.getLogger(__name__)

VALID_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.heic', '.heif'}

_DATA_URL_RE = re.compile(r'^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<b64>;base64)?,(?P<data>.*)$', re.DOTALL)


def read_local_image(image_path):
    """
    Reads a local image file and returns the bytes and mime type.

    Args:
        image_path: Path to the image file

    Returns:
        tuple: (image_bytes, mime_type)

    Raises:
        FileNotFoundError: If the image doesn't exist
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Could not find image at: {image_path}")

    mime_type, _ = mimetypes.guess_type(image_path)
    if mime_type is None:
        mime_type = "image/jpeg"  # Default fallback

    with open(image_path, "rb") as f:
        image_bytes = f.read()

    return image_bytes, mime_type


def save_binary_file(file_name, data):
    """
    Saves binary data to a file.

    Returns:
        str: The file path where data was saved
    """
    with open(file_name, "wb") as f:
        f.write(data)
    logger.info("File saved to: %s", file_name)
    return file_name


def validate_image_path(image_path):
    """
    Validates that an image path exists and is a valid image format.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file is not a valid image format
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Image not found: {image_path}")

    _, ext = os.path.splitext(image_path.lower())

    if ext not in VALID_EXTENSIONS:
        raise ValueError(f"Invalid image format: {ext}. Supported: {sorted(VALID_EXTENSIONS)}")

    return True


def encode_data_url(image_bytes, mime_type="image/jpeg"):
    """Encode raw image bytes as a base64 data URL"""
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_url(data_url):
    """
    Decode a base64 data URL.

    Returns:
        tuple: (image_bytes, mime_type)

    Raises:
        ValueError: If the string is not a base64 data URL
    """
    match = _DATA_URL_RE.match(data_url or "")
    if not match or not match.group("b64"):
        raise ValueError("Not a base64 data URL")
    try:
        image_bytes = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}")
    return image_bytes, match.group("mime") or "image/jpeg"


def load_image_reference(image_ref, output_dir="output", timeout=10):
    """
    Resolve an image reference to bytes.

    Args:
        image_ref: data URL, ``/output/<file>`` URL or http(s) URL
        output_dir: Folder generated images are served from

    Returns:
        tuple: (image_bytes, mime_type)

    Raises:
        ValueError: If the reference is empty or a bare filesystem path
    """
    if not image_ref:
        raise ValueError("Empty image reference")

    if image_ref.startswith("data:"):
        return decode_data_url(image_ref)

    if image_ref.startswith("/output/"):
        return read_local_image(os.path.join(output_dir, os.path.basename(image_ref)))

    if image_ref.startswith(("http://", "https://")):
        response = requests.get(image_ref, timeout=timeout)
        response.raise_for_status()
        mime_type = response.headers.get("Content-Type", "image/jpeg").split(";")[0]
        return response.content, mime_type

    raise ValueError(f"Unsupported image reference: {image_ref[:40]}")
