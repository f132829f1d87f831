"""
DigitalOcean Gradient Agent Service

Writes every textual outfit recommendation: weather-based, question-based,
photo improvements, alternatives to a disliked look and styles combined
from liked images.
"""

import logging
import os
import re

from gradient import Gradient

from .prompts import get_tone_prompt, gender_text, profile_lines

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama3.3-70b-instruct"

QUICK_REPLIES_MARKER = "QUICK_REPLIES:"

QUICK_REPLIES_INSTRUCTION = f"""

마지막 줄에는 사용자가 이어서 물어볼 만한 짧은 후속 질문 3개를 다음 형식으로 적어주세요:
{QUICK_REPLIES_MARKER} 질문1 | 질문2 | 질문3"""


def _agent_client(agent_access_key=None, agent_endpoint=None):
    if agent_access_key is None:
        agent_access_key = os.getenv("GRADIENT_AGENT_ACCESS_KEY")
    if agent_endpoint is None:
        agent_endpoint = os.getenv("GRADIENT_AGENT_ENDPOINT")

    if not agent_access_key or not agent_endpoint:
        raise ValueError(
            "Agent credentials not found. Set GRADIENT_AGENT_ACCESS_KEY and "
            "GRADIENT_AGENT_ENDPOINT in your .env file"
        )

    return Gradient(
        agent_access_key=agent_access_key,
        agent_endpoint=agent_endpoint
    )


def clean_response(response_text):
    """Strip <think> blocks some models emit before the answer"""
    response_text = re.sub(r'<think>.*?</think>', '', response_text or '', flags=re.DOTALL)
    return response_text.strip()


def split_quick_replies(response_text):
    """
    Separate the trailing quick-reply line from the answer body.

    Returns:
        tuple: (body, list of up to 3 replies; empty when the line is missing)
    """
    lines = response_text.strip().split('\n')
    replies = []
    body_lines = []

    for line in lines:
        stripped = line.strip()
        if stripped.upper().startswith(QUICK_REPLIES_MARKER):
            raw = stripped[len(QUICK_REPLIES_MARKER):]
            replies = [r.strip().strip('"') for r in raw.split('|') if r.strip()]
        else:
            body_lines.append(line)

    return '\n'.join(body_lines).strip(), replies[:3]


def complete(prompt, agent_access_key=None, agent_endpoint=None, model=DEFAULT_MODEL, temperature=0.7):
    """
    Send a single-turn prompt to the agent.

    Returns:
        str: Cleaned response text

    Raises:
        ValueError: If credentials are missing or the agent answers with nothing
    """
    agent_client = _agent_client(agent_access_key, agent_endpoint)

    response = agent_client.agents.chat.completions.create(
        messages=[{"role": "user", "content": prompt}],
        model=model,
        temperature=temperature,
    )

    response_text = clean_response(response.choices[0].message.content)
    if not response_text:
        raise ValueError("Empty response from agent")

    logger.debug("Agent response: %s", response_text[:200])
    return response_text


def recommend_for_weather(weather, profile, **agent_options):
    """
    Suggest an outfit for today's weather.

    Args:
        weather: dict from weather.get_weather()
        profile: ProfileSettings

    Returns:
        str: 2-3 sentence suggestion
    """
    prompt = f"""당신은 패션 코디네이터입니다. 다음 날씨 정보를 바탕으로 {gender_text(profile.gender)}을 위한 옷차림을 추천해주세요.

지역: {weather['region']}
날씨: {weather['summary']}
현재 기온: {weather['temp']}°C
최저/최고: {weather['min_temp']}°C / {weather['max_temp']}°C

사용자 정보:
{profile_lines(profile)}

다음 스타일로 답변해주세요:
{get_tone_prompt(profile.tone)}

구체적인 아이템들을 언급하면서 2-3문장으로 추천해주세요. 날씨와 기온을 고려한 실용적인 조언을 해주세요. 선호 색상이 있다면 반영해주세요."""

    return complete(prompt, **agent_options)


def recommend_from_text(text, profile, weather_line=None, **agent_options):
    """
    Answer a styling question.

    Returns:
        dict: {"advice": str, "quick_replies": list[str]}
    """
    prompt = f"""당신은 패션 코디네이터입니다. 사용자의 질문에 답변해주세요.

사용자 정보:
{profile_lines(profile, weather_line)}

사용자 질문: {text}

다음 스타일로 답변해주세요:
{get_tone_prompt(profile.tone)}

구체적인 옷 아이템과 조합을 언급하면서 답변해주세요. 키와 몸무게가 있다면 체형에 맞는 핏을 고려해주세요.{QUICK_REPLIES_INSTRUCTION}"""

    advice, replies = split_quick_replies(complete(prompt, **agent_options))
    return {"advice": advice, "quick_replies": replies}


def suggest_improvement(analysis, profile, weather_line=None, **agent_options):
    """
    Propose an improved or alternative outfit after a photo analysis.

    Returns:
        str: 2-3 sentence suggestion
    """
    prompt = f"""당신은 패션 코디네이터입니다. 앞서 분석한 옷차림을 개선하거나 대안을 제시해주세요.

사용자 정보:
{profile_lines(profile, weather_line)}

다음 스타일로 답변해주세요:
{get_tone_prompt(profile.tone)}

이전 분석: {analysis}

개선 방안이나 대안 코디를 구체적인 아이템 언급과 함께 2-3문장으로 제안해주세요."""

    return complete(prompt, **agent_options)


def suggest_alternative(disliked_prompt, profile, weather_line=None, **agent_options):
    """
    Suggest a clearly different look after the user disliked a generated one.

    Returns:
        dict: {"suggestion": str, "quick_replies": list[str]}
    """
    prompt = f"""당신은 패션 코디네이터입니다. 사용자가 아래 코디를 마음에 들어하지 않았습니다.

마음에 들지 않은 코디: {disliked_prompt}

사용자 정보:
{profile_lines(profile, weather_line)}

다음 스타일로 답변해주세요:
{get_tone_prompt(profile.tone)}

분위기, 실루엣, 색 조합이 확실히 다른 새로운 코디를 구체적인 아이템 언급과 함께 2-3문장으로 제안해주세요.{QUICK_REPLIES_INSTRUCTION}"""

    suggestion, replies = split_quick_replies(complete(prompt, **agent_options))
    return {"suggestion": suggestion, "quick_replies": replies}


def combine_liked_styles(descriptions, profile, weather_line=None, **agent_options):
    """
    Blend the user's liked outfits into one new outfit description.

    Args:
        descriptions: list[str] describing each liked outfit

    Returns:
        str: outfit description usable as an image prompt
    """
    if not descriptions:
        raise ValueError("No liked outfit descriptions provided")

    items_text = "\n".join(
        f"{idx}. {description}" for idx, description in enumerate(descriptions, start=1)
    )

    prompt = f"""당신은 패션 코디네이터입니다. 사용자가 좋아요를 누른 코디들은 다음과 같습니다:

{items_text}

사용자 정보:
{profile_lines(profile, weather_line)}

다음 스타일로 답변해주세요:
{get_tone_prompt(profile.tone)}

이 코디들에서 공통된 취향(색감, 핏, 분위기)을 찾아 그 취향을 살린 새로운 코디 하나를 구체적인 아이템 언급과 함께 2-3문장으로 제안해주세요."""

    return complete(prompt, **agent_options)
