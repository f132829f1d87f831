import os
import tempfile

# no real delays and a scratch folder for anything the web app writes
_scratch = tempfile.mkdtemp(prefix="wearly-tests-")
os.environ.setdefault("DELAY_SCALE", "0")
os.environ.setdefault("SUGGESTION_DELAY_MS", "0")
os.environ.setdefault("UPLOAD_FOLDER", os.path.join(_scratch, "uploads"))
os.environ.setdefault("OUTPUT_FOLDER", os.path.join(_scratch, "output"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from config import AppConfig
from models.schemas import ChatSession, ProfileSettings
from services.turn_controller import TurnController

FAKE_IMAGE_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


class FakeStylingService:
    """
    Stands in for StylingService.

    ``results`` holds the value each coroutine returns; putting an exception
    in ``errors`` makes that coroutine raise it instead. Every call is
    recorded in ``calls`` as (name, args).
    """

    def __init__(self):
        self.calls = []
        self.errors = {}
        self.results = {
            "get_weather_and_recommendation": {
                "summary": "맑음", "temp": 20, "min_temp": 15, "max_temp": 24,
                "suggestion": "가벼운 니트에 슬랙스를 추천해요.",
            },
            "get_text_recommendation": {
                "advice": "데님 재킷에 흰 티셔츠를 매치해보세요.",
                "quick_replies": ["이 코디 이미지로 보여줘", "더 캐주얼하게", "조금 더 격식있게"],
            },
            "get_image_recommendation": {
                "analysis": "전체적으로 차분한 톤이 잘 어울려요.",
                "suggestion": "밝은 색 스니커즈로 포인트를 주세요.",
                "quick_replies": ["제안된 코디 이미지로 보여줘", "좀 더 단순하게", "계절감 더 살려줘"],
            },
            "generate_outfit_image": "/output/outfit_1.png",
            "generate_outfit_from_liked_images": {
                "image_url": "/output/outfit_2.png",
                "suggestion": "내코디 스타일을 섞은 미니멀 룩",
            },
            "get_alternative_outfit_suggestion": {
                "suggestion": "스트릿 무드의 오버핏 후드를 추천해요.",
                "quick_replies": ["이 코디 이미지로 보여줘", "다른 스타일 보여줘", "좀 더 단순하게"],
            },
            "get_region_from_coords": "서울",
        }

    def called(self, name):
        return [args for call, args in self.calls if call == name]

    async def _respond(self, name, *args):
        self.calls.append((name, args))
        if name in self.errors:
            raise self.errors[name]
        return self.results[name]

    async def get_weather_and_recommendation(self, profile):
        return await self._respond("get_weather_and_recommendation", profile)

    async def get_text_recommendation(self, text, profile):
        return await self._respond("get_text_recommendation", text, profile)

    async def get_image_recommendation(self, image_ref, text, profile):
        return await self._respond("get_image_recommendation", image_ref, text, profile)

    async def generate_outfit_image(self, suggestion, profile):
        return await self._respond("generate_outfit_image", suggestion, profile)

    async def generate_outfit_from_liked_images(self, image_refs, profile):
        return await self._respond("generate_outfit_from_liked_images", image_refs, profile)

    async def get_alternative_outfit_suggestion(self, disliked_prompt, profile):
        return await self._respond("get_alternative_outfit_suggestion", disliked_prompt, profile)

    async def get_region_from_coords(self, latitude, longitude):
        return await self._respond("get_region_from_coords", latitude, longitude)


@pytest.fixture
def config():
    return AppConfig(delay_scale=0, suggestion_delay_ms=0)


@pytest.fixture
def services():
    return FakeStylingService()


@pytest.fixture
def events():
    return []


@pytest.fixture
def controller(services, config, events):
    return TurnController(
        services, config,
        on_event=events.append,
        image_loader=lambda path: FAKE_IMAGE_DATA_URL,
    )


@pytest.fixture
def ready_settings():
    return ProfileSettings(region="서울", gender="male", tone="friendly")


@pytest.fixture
def session(ready_settings):
    return ChatSession(session_id="test-session", settings=ready_settings)


@pytest.fixture
def empty_session():
    return ChatSession(session_id="empty-session")
