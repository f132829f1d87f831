"""
Tone-specific chat strings

Each function maps (tone, category) to the literal text shown in the chat.
Unknown or unset tones fall back to the friendly variant.
"""

CRITICAL = "critical"
WITTY = "witty"
FRIENDLY = "friendly"


def weather_report(tone, region, summary, min_temp, max_temp):
    if tone == CRITICAL:
        return f"{region} 날씨. {summary}. 최저 {min_temp}°C, 최고 {max_temp}°C. 됐지?"
    if tone == WITTY:
        return (
            f"오늘 {region} 날씨는 말이야~ {summary}에 최저 {min_temp}°C, "
            f"최고 {max_temp}°C까지 오르락내리락 할 예정! ㅋㅋ"
        )
    return f"{region}의 오늘 날씨는 {summary} (최저 {min_temp}°C / 최고 {max_temp}°C) 예요."


def weather_error(tone, error):
    if tone == CRITICAL:
        return f"날씨 보다가 에러남. ({error})"
    if tone == WITTY:
        return f"날씨의 신이 노하셨나... 에러...😱 ({error})"
    return f"날씨 확인 중 오류가 발생했어요: {error}"


def image_generation_placeholder(tone):
    if tone == CRITICAL:
        return "이미지 만드는 중. 재촉 마."
    if tone == WITTY:
        return "예술혼 불태우는 중... 잠시만. 🎨"
    return "제안된 코디 이미지를 만들고 있어요... 🎨"


def image_generation_success(tone):
    if tone == CRITICAL:
        return "자, 보던가."
    if tone == WITTY:
        return "훗, 이 몸이 좀 감각있지. 😎"
    return "짠! 요청하신 코디 이미지예요. ✨"


def image_generation_error(tone, error):
    if tone == CRITICAL:
        return f"이미지 만들다 에러남. 알아서 해. ({error})"
    if tone == WITTY:
        return f"아놔, 내 예술혼이 거부 반응을... 🤯 에러: {error}"
    return f"이미지 생성 중 오류가 발생했어요: {error}"


def analysis_placeholder(is_image, tone):
    """Placeholder while a photo (is_image) or a text question is being answered"""
    if is_image:
        if tone == CRITICAL:
            return "사진 보는 중. 평가해주지."
        if tone == WITTY:
            return "어디보자... 패션 감별 들어갑니다~ 🕵️"
        return "사진을 분석하고 있어요... 📸"
    if tone == CRITICAL:
        return "...생각 중."
    if tone == WITTY:
        return "흐음... 기가 막힌 추천을 위한 빌드업 중... 🤔"
    return "코디를 추천하고 있어요... ✍️"


def analysis_error(is_image, tone, error):
    if is_image:
        if tone == CRITICAL:
            return f"사진 보다 에러남. ({error})"
        if tone == WITTY:
            return f"이런, 사진이 너무 눈부셨나... 에러! ✨ ({error})"
        return f"이미지 처리 중 오류가 발생했어요: {error}"
    if tone == CRITICAL:
        return f"추천하다 에러남. ({error})"
    if tone == WITTY:
        return f"뇌세포 과부하! 추천 엔진 터짐... 🤯 ({error})"
    return f"오류가 발생했어요: {error}"


def weather_progress_steps(tone, region):
    """
    Progress lines played into the weather placeholder.

    Returns:
        list[tuple[str, int]]: (text, delay in ms to hold it)
    """
    if tone == CRITICAL:
        return [
            (f"📍 {region}이라... 알았어.", 700),
            ("🌦️ 날씨 정보? 가져오면 될 거 아냐.", 1000),
            ("🤔 대충 보고 있으니 기다려.", 0),
        ]
    if tone == WITTY:
        return [
            (f"📍 {region}(으)로 순간이동! 슝~", 700),
            ('🌦️ 하늘에다 물어보는 중... "오늘 날씨 뭐냐!"', 1000),
            ("🤔 내 패션 AI가 열일하는 중이니 잠시만!", 0),
        ]
    return [
        (f"📍 {region} 지역에 접속하고 있어요.", 700),
        ("🌦️ 오늘의 날씨 정보를 가져오는 중...", 1000),
        ("🤔 날씨를 분석해 코디를 짜고 있어요...", 0),
    ]
