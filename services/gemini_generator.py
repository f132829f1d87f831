"""
Gemini Image Generation Service

Renders a textual outfit suggestion as an image with Google's Gemini
NanoBanana model, optionally dressing the user's own profile photo.
"""

import logging
import mimetypes
import os
from datetime import datetime

from google import genai
from google.genai import types

from .utils import load_image_reference, save_binary_file

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "gemini-3-pro-image-preview"


def build_outfit_prompt(suggestion, gender, height="", weight="", with_person=False):
    """Image prompt for an outfit suggestion"""
    gender_text = gender if gender in ("male", "female") else "unisex"

    body = ""
    if height or weight:
        parts = []
        if height:
            parts.append(f"height {height}cm")
        if weight:
            parts.append(f"weight {weight}kg")
        body = f"\nBody reference: {', '.join(parts)}. Keep proportions realistic for this body."

    if with_person:
        header = (
            "You are given a photo of a person. Generate a realistic full-body fashion photo of "
            f"THIS SAME PERSON wearing the outfit described below. Style: modern Korean fashion, {gender_text} clothing."
        )
        layout = "- Keep the person's face and hair recognisable\n- Full-body shot, natural pose"
    else:
        header = (
            "A clean, professional fashion outfit photo on white background. "
            f"Style: modern Korean fashion, {gender_text} clothing."
        )
        layout = "- Clothing laid out flat or on a mannequin"

    return f"""{header}

Outfit description: {suggestion}{body}

Requirements:
- Clean white or minimal background
- Professional fashion photography style
- Modern and trendy Korean fashion aesthetic
{layout}
- Well-lit, high quality
- Focus on the outfit items mentioned"""


def image_url_for(image_path):
    """URL under which a generated image file is served"""
    return f"/output/{os.path.basename(image_path)}"


def generate_outfit_image(suggestion, gender, height="", weight="", profile_image=None,
                          output_dir="output", api_key=None, model=DEFAULT_IMAGE_MODEL):
    """
    Generate an outfit image from a suggestion.

    Args:
        suggestion: Outfit description text
        gender: "male", "female" or anything else for unisex
        height: Optional height in cm
        weight: Optional weight in kg
        profile_image: Optional image reference of the user
        output_dir: Directory to save generated images (default: "output")
        api_key: Google API key (optional, reads from env)

    Returns:
        str: Path to the generated image file

    Raises:
        ValueError: If the suggestion is empty or the API key missing
        RuntimeError: If the model returned no image
    """
    if not suggestion:
        raise ValueError("No outfit suggestion provided for image generation")

    if api_key is None:
        api_key = os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise ValueError("GOOGLE_API_KEY not found in environment variables")

    os.makedirs(output_dir, exist_ok=True)

    client = genai.Client(api_key=api_key)

    parts = []
    if profile_image:
        try:
            image_bytes, mime_type = load_image_reference(profile_image, output_dir)
            parts.append(types.Part.from_bytes(data=image_bytes, mime_type=mime_type))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable profile image: %s", e)

    prompt = build_outfit_prompt(suggestion, gender, height, weight, with_person=bool(parts))
    parts.append(types.Part.from_text(text=prompt))

    contents = [types.Content(role="user", parts=parts)]

    generate_content_config = types.GenerateContentConfig(
        response_modalities=["IMAGE", "TEXT"],
        image_config=types.ImageConfig(
            image_size="1K",  # 1024x1024 resolution
        ),
    )

    logger.info("Generating outfit image with %s", model)

    generated_file_path = None
    file_index = 0
    text_responses = []

    for chunk in client.models.generate_content_stream(
        model=model,
        contents=contents,
        config=generate_content_config,
    ):
        if (
            chunk.candidates is None
            or not chunk.candidates
            or chunk.candidates[0].content is None
            or chunk.candidates[0].content.parts is None
        ):
            continue

        part = chunk.candidates[0].content.parts[0]

        if part.inline_data and part.inline_data.data:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            file_name = f"outfit_{timestamp}_{os.getpid()}_{file_index}"
            file_index += 1

            inline_data = part.inline_data
            file_extension = mimetypes.guess_extension(inline_data.mime_type) or ".png"

            full_path = os.path.join(output_dir, f"{file_name}{file_extension}")
            generated_file_path = save_binary_file(full_path, inline_data.data)
        elif getattr(chunk, 'text', None):
            text_responses.append(chunk.text)

    if generated_file_path:
        logger.info("Outfit image generated: %s", generated_file_path)
        return generated_file_path

    error_msg = "Failed to generate outfit image. No image returned by API."
    if text_responses:
        error_msg += f" Text response: {' '.join(text_responses)[:100]}"
    raise RuntimeError(error_msg)
