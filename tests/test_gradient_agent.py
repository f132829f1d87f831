from types import SimpleNamespace

import pytest

from models.schemas import ProfileSettings
from services import gradient_agent

PROFILE = ProfileSettings(region="서울", gender="female", tone="witty", preferred_colors=("베이지",), height="162")


class FakeAgent:
    def __init__(self, answer):
        self.answer = answer
        self.requests = []
        self.agents = SimpleNamespace(chat=SimpleNamespace(completions=self))

    def create(self, messages, model, temperature):
        self.requests.append({"messages": messages, "model": model, "temperature": temperature})
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.answer))])


@pytest.fixture
def agent(monkeypatch):
    fake = FakeAgent("")
    monkeypatch.setattr(gradient_agent, "_agent_client", lambda *args: fake)
    return fake


def prompt_of(agent):
    return agent.requests[-1]["messages"][0]["content"]


def test_clean_response_strips_think_blocks():
    assert gradient_agent.clean_response("<think>hmm\nok</think>\n  답변  ") == "답변"
    assert gradient_agent.clean_response(None) == ""


def test_split_quick_replies():
    body, replies = gradient_agent.split_quick_replies(
        "니트를 추천해요.\n\nQUICK_REPLIES: 더 캐주얼하게 | \"색 바꿔줘\" | 신발은? | 가방은?"
    )

    assert body == "니트를 추천해요."
    assert replies == ["더 캐주얼하게", "색 바꿔줘", "신발은?"]


def test_split_quick_replies_without_marker():
    assert gradient_agent.split_quick_replies("그냥 답변") == ("그냥 답변", [])


def test_missing_credentials(monkeypatch):
    monkeypatch.delenv("GRADIENT_AGENT_ACCESS_KEY", raising=False)
    monkeypatch.delenv("GRADIENT_AGENT_ENDPOINT", raising=False)

    with pytest.raises(ValueError):
        gradient_agent._agent_client()


def test_empty_answer_raises(agent):
    agent.answer = "<think>...</think>"

    with pytest.raises(ValueError):
        gradient_agent.complete("질문")


def test_recommend_for_weather_prompt(agent):
    agent.answer = "트렌치코트를 입어보세요!"
    weather = {"region": "서울", "summary": "흐림", "temp": 14, "min_temp": 10, "max_temp": 17}

    assert gradient_agent.recommend_for_weather(weather, PROFILE, model="test-model") == "트렌치코트를 입어보세요!"
    prompt = prompt_of(agent)
    assert "여성을 위한 옷차림" in prompt
    assert "최저/최고: 10°C / 17°C" in prompt
    assert "- 선호 색상: 베이지" in prompt
    assert "- 키: 162cm" in prompt
    assert agent.requests[-1]["model"] == "test-model"


def test_recommend_from_text_splits_replies(agent):
    agent.answer = "데님 셔츠 어때요?\nQUICK_REPLIES: 이 코디 이미지로 보여줘 | 더 캐주얼하게 | 조금 더 격식있게"

    result = gradient_agent.recommend_from_text("주말 데이트룩", PROFILE, "맑음, 20°C")

    assert result["advice"] == "데님 셔츠 어때요?"
    assert result["quick_replies"][0] == "이 코디 이미지로 보여줘"
    assert "- 현재 날씨: 맑음, 20°C" in prompt_of(agent)
    assert "사용자 질문: 주말 데이트룩" in prompt_of(agent)


def test_suggest_alternative_mentions_disliked_look(agent):
    agent.answer = "스트릿 룩!"

    result = gradient_agent.suggest_alternative("미니멀 니트 코디", PROFILE)

    assert result == {"suggestion": "스트릿 룩!", "quick_replies": []}
    assert "마음에 들지 않은 코디: 미니멀 니트 코디" in prompt_of(agent)


def test_combine_liked_styles(agent):
    agent.answer = "베이지 톤 레이어드 룩"

    assert gradient_agent.combine_liked_styles(["니트", "코트"], PROFILE) == "베이지 톤 레이어드 룩"
    assert "1. 니트\n2. 코트" in prompt_of(agent)

    with pytest.raises(ValueError):
        gradient_agent.combine_liked_styles([], PROFILE)
