"""
Quick-reply policy

Follow-up suggestions are decided by which turn branch ran; nothing is
merged or ranked, the last set written wins.
"""

WEATHER_REPLIES = ["코디 이미지 보여줘", "활동량 많은 날엔?", "저녁 약속엔 뭐 입지?"]
WEATHER_RETRY_REPLIES = ["날씨 알려줘"]

TEXT_RECOMMENDATION_REPLIES = ["이 코디 이미지로 보여줘", "더 캐주얼하게", "조금 더 격식있게"]
IMAGE_RECOMMENDATION_REPLIES = ["제안된 코디 이미지로 보여줘", "좀 더 단순하게", "계절감 더 살려줘"]
ALTERNATIVE_REPLIES = ["이 코디 이미지로 보여줘", "다른 스타일 보여줘", "좀 더 단순하게"]


def for_weather(success):
    """Replies after a weather turn: the fixed trio, or a single retry prompt"""
    return list(WEATHER_REPLIES if success else WEATHER_RETRY_REPLIES)


def from_service(replies, default=()):
    """Replies returned by a recommendation service, falling back to ``default``"""
    cleaned = [r.strip() for r in (replies or []) if isinstance(r, str) and r.strip()]
    return cleaned or list(default)
