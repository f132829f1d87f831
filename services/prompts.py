"""
Shared prompt fragments for the styling agent and the vision model
"""


def get_tone_prompt(tone):
    """Speaking-style instruction appended to every styling prompt"""
    if tone == "critical":
        return '말투는 까칠하고 퉁명스럽게. 짧고 직설적으로 말해. 예: "그냥 이거 입어.", "날씨? 추워."'
    if tone == "witty":
        return ('말투는 쾌활하고 재치있게. 이모지를 적절히 사용하고 유머러스하게. '
                '예: "오케이~ 내 감각을 믿어봐! ✨", "찌리릿... 추천 들어갑니다! ⚡"')
    return ('말투는 친절하고 따뜻하게. 자세히 설명해주고 이모지를 적절히 사용. '
            '예: "오늘 날씨를 고려하면 이런 옷차림이 좋을 것 같아요! 😊"')


def gender_text(gender):
    if gender == "male":
        return "남성"
    if gender == "female":
        return "여성"
    return "남녀 공용"


def profile_lines(profile, weather_line=None):
    """
    Bullet list describing the user for a prompt.

    Optional fields (colors, height, weight, weather) are left out when empty.
    """
    lines = [
        f"- 지역: {profile.region}",
        f"- 성별: {gender_text(profile.gender)}",
    ]
    if profile.preferred_colors:
        lines.append(f"- 선호 색상: {', '.join(profile.preferred_colors)}")
    if profile.height:
        lines.append(f"- 키: {profile.height}cm")
    if profile.weight:
        lines.append(f"- 몸무게: {profile.weight}kg")
    if weather_line:
        lines.append(f"- 현재 날씨: {weather_line}")
    return "\n".join(lines)
