"""
Fixed option lists shared by the settings flow, prompts and the CLI
"""

REGIONS = [
    "서울", "부산", "대구", "인천", "광주", "대전", "울산", "세종",
    "경기", "강원", "충북", "충남", "전북", "전남", "경북", "경남", "제주",
]

GENDERS = ("male", "female", "unisex")
TONES = ("friendly", "witty", "critical")

GENDER_LABELS = {
    "male": "남성",
    "female": "여성",
    "unisex": "상관없음",
}

TONE_LABELS = {
    "friendly": "친절한 튜터",
    "witty": "쾌활한 친구",
    "critical": "까칠한 친구",
}

# name -> swatch hex, in palette order
COLOR_PALETTE = {
    "블랙": "#2F2F2F", "차콜": "#36454F", "그레이": "#808080", "실버": "#C0C0C0",
    "화이트": "#FFFFFF", "크림": "#FFFDD0",
    "베이지": "#F5F5DC", "브라운": "#A52A2A", "카키": "#C3B091", "올리브": "#808000",
    "네이비": "#000080", "블루": "#ADD8E6", "스카이블루": "#87CEEB", "민트": "#3EB489",
    "그린": "#90EE90",
    "라벤더": "#E6E6FA", "퍼플": "#DA70D6", "핑크": "#FFC0CB", "버건디": "#800020",
    "레드": "#FF6347", "코랄": "#FF7F50",
    "옐로우": "#FFFFE0", "머스타드": "#FFDB58",
}

GREETING_TEXT = (
    "안녕하세요! 저는 웨어리예요. '설정'에서 지역, 성별, 말투를 선택하시거나, "
    "위치 정보 제공에 동의하시면 날씨에 딱 맞는 코디를 추천해드릴게요!"
)

UNKNOWN_ERROR_TEXT = "알 수 없는 오류가 발생했습니다."
IMAGE_NOT_GENERATED_TEXT = "이미지를 생성하지 못했습니다."


def gender_label(gender):
    """Korean label for a gender value; anything unset reads as 상관없음"""
    return GENDER_LABELS.get(gender, "상관없음")


def tone_label(tone):
    """Korean label for a tone value; anything unset reads as the friendly tutor"""
    return TONE_LABELS.get(tone, "친절한 튜터")
