"""
Image Processing Service

Uses Gemini Vision to critique outfit photos and to describe liked outfit
images as text for the styling agent.
"""

import logging
import os
import time

from google import genai
from google.genai import types

from .prompts import get_tone_prompt
from .utils import load_image_reference

logger = logging.getLogger(__name__)

DEFAULT_VISION_MODEL = "gemini-2.5-flash"


def _gemini_client(api_key=None):
    if api_key is None:
        api_key = os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise ValueError("GOOGLE_API_KEY not found in environment variables")
    return genai.Client(api_key=api_key)


def _describe(image_bytes, mime_type, prompt, api_key=None, model=DEFAULT_VISION_MODEL, temperature=0.3):
    client = _gemini_client(api_key)

    contents = [
        types.Content(
            role="user",
            parts=[
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                types.Part.from_text(text=prompt),
            ],
        )
    ]

    generate_content_config = types.GenerateContentConfig(
        response_modalities=["TEXT"],
        temperature=temperature,
    )

    response = client.models.generate_content(
        model=model,
        contents=contents,
        config=generate_content_config,
    )

    description = (response.text or "").strip()
    if not description:
        raise ValueError("Empty response from Gemini Vision")
    return description


def analyze_outfit_photo(image_bytes, mime_type, text, profile, api_key=None, model=DEFAULT_VISION_MODEL):
    """
    Critique the outfit in a user's photo.

    Args:
        image_bytes: Photo bytes
        mime_type: Photo MIME type
        text: Optional question sent with the photo
        profile: ProfileSettings (for the tone)

    Returns:
        str: 2-3 sentence analysis
    """
    prompt = f"""당신은 패션 전문가입니다. 이 사진을 분석하고 평가해주세요.

다음 스타일로 답변해주세요:
{get_tone_prompt(profile.tone)}

사진 속 옷차림에 대해 2-3문장으로 분석하고 간단한 평가를 해주세요."""
    if text:
        prompt += f"\n\n추가 질문: {text}"

    return _describe(image_bytes, mime_type, prompt, api_key=api_key, model=model, temperature=0.7)


def describe_outfit_image(image_bytes, mime_type, api_key=None, model=DEFAULT_VISION_MODEL):
    """
    Describe the outfit in an image concisely.

    Returns:
        str: One sentence listing items, colors and mood
    """
    prompt = """이 이미지 속 코디를 한 문장으로 간결하게 묘사해주세요. 다음을 포함하세요:
- 상의, 하의, 아우터, 신발 등 아이템 종류
- 색상
- 소재나 핏 (보이는 경우)
- 전체적인 분위기 (캐주얼, 포멀, 스트릿 등)

40자 내외로 작성해주세요."""

    return _describe(image_bytes, mime_type, prompt, api_key=api_key, model=model)


def describe_liked_images(image_refs, output_dir="output", api_key=None, model=DEFAULT_VISION_MODEL,
                          rate_limit_delay=0.2, progress_callback=None):
    """
    Describe several liked outfit images.

    Images that cannot be loaded or described are skipped; a rate-limit error
    is retried once after a pause.

    Args:
        image_refs: Image references (data URLs or /output/ URLs)
        output_dir: Folder generated images live in
        rate_limit_delay: Seconds to wait between API calls
        progress_callback: Optional callback function(idx, total, description)

    Returns:
        list[str]: Descriptions for the images that succeeded
    """
    descriptions = []
    total = len(image_refs)

    for idx, image_ref in enumerate(image_refs, start=1):
        logger.info("Describing liked image %d/%d", idx, total)

        try:
            image_bytes, mime_type = load_image_reference(image_ref, output_dir)
        except (OSError, ValueError) as e:
            logger.warning("Skipping liked image %d: %s", idx, e)
            continue

        try:
            description = describe_outfit_image(image_bytes, mime_type, api_key, model)
        except Exception as e:
            error_str = str(e).lower()
            if "rate" not in error_str and "quota" not in error_str and "429" not in error_str:
                logger.warning("Could not describe liked image %d: %s", idx, e)
                continue

            logger.info("Rate limit detected. Waiting 5 seconds before retry...")
            time.sleep(5)
            try:
                description = describe_outfit_image(image_bytes, mime_type, api_key, model)
            except Exception as retry_e:
                logger.warning("Retry failed for liked image %d: %s", idx, retry_e)
                continue

        descriptions.append(description)

        if progress_callback:
            progress_callback(idx, total, description)

        if idx < total:
            time.sleep(rate_limit_delay)

    return descriptions
