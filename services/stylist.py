"""
Styling Service

Async facade over the external collaborators (weather, Gradient agent,
Gemini vision and image generation). Blocking SDK calls run in the default
thread pool. Failures are logged and re-raised as StylingServiceError with a
message fit for the chat.
"""

import asyncio
import functools
import logging

import requests

from config import AppConfig
from . import quick_replies
from .errors import StylingServiceError
from .gemini_generator import generate_outfit_image as render_outfit_image, image_url_for
from .gradient_agent import (
    combine_liked_styles,
    recommend_for_weather,
    recommend_from_text,
    suggest_alternative,
    suggest_improvement,
)
from .image_processor import analyze_outfit_photo, describe_liked_images
from .utils import load_image_reference
from .weather import get_region_from_coords, get_weather, weather_context

logger = logging.getLogger(__name__)


class StylingService:
    """Outfit recommendation and image generation for a chat turn"""

    def __init__(self, config=None):
        self.config = config or AppConfig()

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    @property
    def _agent_options(self):
        return {
            "agent_access_key": self.config.gradient_access_key or None,
            "agent_endpoint": self.config.gradient_endpoint or None,
            "model": self.config.gradient_model,
        }

    @property
    def _google_api_key(self):
        return self.config.google_api_key or None

    async def _weather_line(self, region):
        return await self._run(weather_context, region, self.config.weather_provider)

    async def get_weather_and_recommendation(self, profile):
        """
        Returns:
            dict: {"summary", "temp", "min_temp", "max_temp", "suggestion"}
        """
        try:
            weather = await self._run(get_weather, profile.region, self.config.weather_provider)
            suggestion = await self._run(recommend_for_weather, weather, profile, **self._agent_options)
        except Exception as e:
            logger.exception("Weather recommendation for %s failed: %s", profile.region, e)
            raise StylingServiceError("날씨 정보를 가져오는데 실패했습니다.")

        return {
            "summary": weather["summary"],
            "temp": weather["temp"],
            "min_temp": weather["min_temp"],
            "max_temp": weather["max_temp"],
            "suggestion": suggestion,
        }

    async def get_text_recommendation(self, text, profile):
        """
        Returns:
            dict: {"advice", "quick_replies"}
        """
        try:
            weather_line = await self._weather_line(profile.region)
            result = await self._run(recommend_from_text, text, profile, weather_line, **self._agent_options)
        except Exception as e:
            logger.exception("Text recommendation failed: %s", e)
            raise StylingServiceError("추천을 생성하는데 실패했습니다.")

        return {
            "advice": result["advice"],
            "quick_replies": quick_replies.from_service(
                result["quick_replies"], quick_replies.TEXT_RECOMMENDATION_REPLIES
            ),
        }

    async def get_image_recommendation(self, image_ref, text, profile):
        """
        Returns:
            dict: {"analysis", "suggestion", "quick_replies"}
        """
        try:
            image_bytes, mime_type = await self._run(
                load_image_reference, image_ref, self.config.output_folder
            )
            analysis = await self._run(
                analyze_outfit_photo, image_bytes, mime_type, text, profile,
                api_key=self._google_api_key, model=self.config.gemini_vision_model,
            )
            weather_line = await self._weather_line(profile.region)
            suggestion = await self._run(
                suggest_improvement, analysis, profile, weather_line, **self._agent_options
            )
        except Exception as e:
            logger.exception("Image recommendation failed: %s", e)
            raise StylingServiceError("이미지 분석에 실패했습니다.")

        return {
            "analysis": analysis,
            "suggestion": suggestion,
            "quick_replies": list(quick_replies.IMAGE_RECOMMENDATION_REPLIES),
        }

    async def generate_outfit_image(self, suggestion, profile):
        """
        Returns:
            str | None: URL of the generated image, None when generation failed
        """
        try:
            image_path = await self._run(
                render_outfit_image,
                suggestion,
                profile.gender,
                profile.height,
                profile.weight,
                profile.profile_image,
                output_dir=self.config.output_folder,
                api_key=self._google_api_key,
                model=self.config.gemini_image_model,
            )
        except Exception as e:
            logger.exception("Outfit image generation failed: %s", e)
            return None

        return image_url_for(image_path)

    async def generate_outfit_from_liked_images(self, image_refs, profile):
        """
        Describe the liked images, blend them into one suggestion and render it.

        Returns:
            dict: {"image_url": str | None, "suggestion": str}
        """
        try:
            descriptions = await self._run(
                describe_liked_images, image_refs, self.config.output_folder,
                api_key=self._google_api_key, model=self.config.gemini_vision_model,
            )
            weather_line = await self._weather_line(profile.region)
            suggestion = await self._run(
                combine_liked_styles, descriptions, profile, weather_line, **self._agent_options
            )
        except Exception as e:
            logger.exception("Liked-image recommendation failed: %s", e)
            raise StylingServiceError("내코디 기반 추천에 실패했습니다.")

        image_url = await self.generate_outfit_image(suggestion, profile)
        return {"image_url": image_url, "suggestion": suggestion}

    async def get_alternative_outfit_suggestion(self, disliked_prompt, profile):
        """
        Returns:
            dict: {"suggestion", "quick_replies"}
        """
        try:
            weather_line = await self._weather_line(profile.region)
            result = await self._run(
                suggest_alternative, disliked_prompt, profile, weather_line, **self._agent_options
            )
        except Exception as e:
            logger.exception("Alternative suggestion failed: %s", e)
            raise StylingServiceError("다른 스타일 추천에 실패했습니다.")

        return {
            "suggestion": result["suggestion"],
            "quick_replies": quick_replies.from_service(
                result["quick_replies"], quick_replies.ALTERNATIVE_REPLIES
            ),
        }

    async def get_region_from_coords(self, latitude, longitude):
        """
        Returns:
            str | None: Region name, None when outside the known regions
        """
        try:
            return await self._run(get_region_from_coords, latitude, longitude)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Reverse geocoding failed: %s", e)
            raise StylingServiceError("지역을 변환하는 중 오류가 발생했습니다.")
