"""
Query Handler Service

Decides whether a user message asks to see the last suggested outfit as an
image, or is a regular styling question for the recommendation agent.
"""

IMAGE_REQUEST_PHRASES = frozenset([
    "코디 이미지 보여줘",
    "이 코디 이미지로 보여줘",
    "제안된 코디 이미지로 보여줘",
])


def is_image_request(text):
    """True when the trimmed text is exactly one of the image request phrases"""
    return (text or "").strip() in IMAGE_REQUEST_PHRASES


def handle_query(text, pending_suggestion="", has_image=False):
    """
    Classify a user message.

    Args:
        text: Raw user text (may be empty)
        pending_suggestion: Last outfit suggestion eligible for image generation
        has_image: Whether a photo is attached to the message

    Returns:
        dict: {
            "type": "image_request", "recommendation" or "empty",
            "text": trimmed text
        }

    An image request phrase without a pending suggestion is treated as a
    regular recommendation question.
    """
    text = (text or "").strip()

    if is_image_request(text) and pending_suggestion:
        return {"type": "image_request", "text": text}

    if not text and not has_image:
        return {"type": "empty", "text": text}

    return {"type": "recommendation", "text": text}
