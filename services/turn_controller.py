"""
Turn Controller

Runs one request/response cycle per user action: a placeholder message is
appended, the styling service is awaited, and the placeholder is patched to
the final content or to a tone-flavored error. Turns on one session are
serialised by the session's lock; listeners get a SessionEvent for every
state change.
"""

import asyncio
import logging
from enum import Enum

from models.constants import (
    IMAGE_NOT_GENERATED_TEXT,
    UNKNOWN_ERROR_TEXT,
    gender_label,
    tone_label,
)
from models.schemas import (
    ASSISTANT,
    DISLIKE,
    FEEDBACK_VALUES,
    LIKE,
    USER,
    Conversation,
    ProfileSettings,
    SessionEvent,
)
from . import quick_replies, tone
from .image_converter import file_to_data_url
from .query_handler import handle_query

logger = logging.getLogger(__name__)

WEATHER_PLACEHOLDER_TEXT = "..."
SETTINGS_UPDATED_TEXT = "설정이 업데이트되었어요! 앞으로 추천에 반영할게요. 😉"
DIFFERENT_STYLE_TEXT = "다른 스타일 보여줘"
ATTACHMENT_ERROR_TEXT = "이미지를 처리하는 데 오류가 발생했습니다."
HISTORY_ADD_ERROR_TEXT = "이미지를 내코디에 추가하는 데 실패했습니다."

HISTORY_SOURCES = ("selected", "all")


class TurnStatus(Enum):
    COMPLETED = "completed"
    SETTINGS_REQUIRED = "settings_required"
    IGNORED = "ignored"


def error_text(exc):
    """User-facing text of a caught exception"""
    return str(exc) or UNKNOWN_ERROR_TEXT


def settings_summary(new, old):
    """User message describing an applied settings change"""
    colors = f", 선호색: {', '.join(new.preferred_colors)}" if new.preferred_colors else ""
    physical = ", 신체정보 변경" if new.height or new.weight else ""
    profile = ", 프로필 사진 변경" if new.profile_image != old.profile_image else ""
    return (
        f"설정 변경: {new.region}, {gender_label(new.gender)}, {tone_label(new.tone)}"
        f"{colors}{physical}{profile}"
    )


def history_request_text(source, count):
    if source == "selected":
        return f"{count}개의 선택한 코디로 새로운 스타일 추천!"
    return "내코디 전체 스타일로 새로운 추천!"


class TurnController:
    """Drives chat turns against a StylingService"""

    ACTIONS = {
        "apply_settings": "apply_settings",
        "send": "send",
        "feedback": "feedback",
        "recommend_from_history": "recommend_from_history",
        "add_image_to_history": "add_image_to_history",
        "remove_from_history": "remove_from_history",
        "reset": "reset",
    }

    def __init__(self, services, config, on_event=None, image_loader=file_to_data_url):
        """
        Args:
            services: StylingService (or any object with the same coroutines)
            config: AppConfig providing the delays
            on_event: Optional callback receiving every SessionEvent
            image_loader: Converts an image file path into a data URL
        """
        self.services = services
        self.config = config
        self.on_event = on_event
        self.image_loader = image_loader

    # --- state helpers ---

    def _emit(self, session, event, /, **data):
        if self.on_event:
            self.on_event(SessionEvent(event=event, session_id=session.session_id, data=data))

    def _add(self, session, role, text="", **extra):
        message = session.add_message(role, text, **extra)
        self._emit(session, "message_added", message=message.to_dict())
        return message

    def _patch(self, session, message_id, **changes):
        # False once the message is gone (the session was reset mid-turn)
        if not session.conversation.patch(message_id, **changes):
            logger.debug("Message %s no longer exists; patch dropped", message_id)
            return False
        session.touch()
        self._emit(session, "message_updated", message=session.conversation.get(message_id).to_dict())
        return True

    def _set_quick_replies(self, session, replies):
        session.quick_replies = list(replies)
        self._emit(session, "quick_replies", quick_replies=list(replies))

    def _set_loading(self, session, value):
        session.is_loading = value
        self._emit(session, "loading", is_loading=value)

    async def _sleep(self, delay_ms):
        if delay_ms > 0:
            await asyncio.sleep(self.config.delay_seconds(delay_ms))

    async def _load_image(self, image_path):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.image_loader, image_path)

    def _require_settings(self, session):
        if session.settings.is_complete():
            return True
        self._emit(session, "settings_required")
        return False

    # --- entry points ---

    async def dispatch(self, session, action, **params):
        """
        Run the operation named by ``action`` with keyword ``params``.

        Raises:
            ValueError: If the action is unknown
        """
        handler_name = self.ACTIONS.get(action)
        if handler_name is None:
            raise ValueError(f"Unknown action: {action}")
        return await getattr(self, handler_name)(session, **params)

    async def apply_settings(self, session, settings):
        """
        Commit new profile settings.

        A changed region triggers a weather turn; any other change only
        acknowledges. Identical settings are ignored.
        """
        if isinstance(settings, dict):
            settings = ProfileSettings.from_dict(settings)

        async with session.turn_lock:
            old = session.settings
            changed = settings.changed_fields(old)
            if not changed:
                return TurnStatus.IGNORED

            logger.info("Session %s settings changed: %s", session.session_id, ", ".join(changed))
            self._add(session, USER, settings_summary(settings, old))
            session.settings = settings
            self._emit(session, "settings_updated", settings=settings.to_dict())

            if "region" in changed:
                await self._weather_turn(session, settings)
            else:
                self._add(session, ASSISTANT, SETTINGS_UPDATED_TEXT)
                self._set_quick_replies(session, [])

        return TurnStatus.COMPLETED

    async def _weather_turn(self, session, profile):
        self._set_quick_replies(session, [])
        self._set_loading(session, True)
        placeholder = self._add(session, ASSISTANT, WEATHER_PLACEHOLDER_TEXT)

        try:
            for text, delay_ms in tone.weather_progress_steps(profile.tone, profile.region):
                self._patch(session, placeholder.id, text=text)
                await self._sleep(delay_ms)
            data = await self.services.get_weather_and_recommendation(profile)
        except Exception as e:
            logger.warning("Weather turn failed: %s", e)
            if self._patch(session, placeholder.id, text=tone.weather_error(profile.tone, error_text(e))):
                self._set_quick_replies(session, quick_replies.for_weather(False))
        else:
            report = tone.weather_report(
                profile.tone, profile.region, data["summary"], data["min_temp"], data["max_temp"]
            )
            if self._patch(
                session, placeholder.id,
                text=f"{report}\n\n{data['suggestion']}", generated_image=None,
            ):
                session.pending_suggestion = data["suggestion"]
                self._set_quick_replies(session, quick_replies.for_weather(True))
        finally:
            self._set_loading(session, False)

    async def send(self, session, text="", image_path=None):
        """
        Send a user message (typed text, a quick reply, and/or a photo).

        Args:
            session: ChatSession
            text: Message text
            image_path: Optional path of an attached photo
        """
        async with session.turn_lock:
            if not self._require_settings(session):
                return TurnStatus.SETTINGS_REQUIRED

            query = handle_query(text, session.pending_suggestion, has_image=bool(image_path))

            if query["type"] == "image_request":
                await self._image_generation_turn(session, query["text"])
                return TurnStatus.COMPLETED

            if query["type"] == "empty" or session.is_loading:
                return TurnStatus.IGNORED

            await self._recommendation_turn(session, query["text"], image_path)
            return TurnStatus.COMPLETED

    async def _image_generation_turn(self, session, text):
        profile = session.settings
        self._add(session, USER, text)
        self._set_quick_replies(session, [])
        self._set_loading(session, True)

        placeholder = self._add(
            session, ASSISTANT, tone.image_generation_placeholder(profile.tone), loading_image=True
        )
        suggestion = session.pending_suggestion
        session.pending_suggestion = ""

        try:
            image_url = await self.services.generate_outfit_image(suggestion, profile)
        except Exception as e:
            logger.warning("Image generation failed: %s", e)
            self._patch(
                session, placeholder.id,
                text=tone.image_generation_error(profile.tone, error_text(e)), loading_image=False,
            )
        else:
            self._resolve_image_placeholder(session, placeholder.id, image_url, suggestion, profile)
        finally:
            self._set_loading(session, False)

    def _resolve_image_placeholder(self, session, placeholder_id, image_url, suggestion, profile):
        if image_url:
            if not self._patch(
                session, placeholder_id,
                text="", generated_image=image_url, loading_image=False, image_prompt=suggestion,
            ):
                return
            self._add(session, ASSISTANT, tone.image_generation_success(profile.tone))
        else:
            self._patch(
                session, placeholder_id,
                text=tone.image_generation_error(profile.tone, IMAGE_NOT_GENERATED_TEXT),
                loading_image=False,
            )

    async def _recommendation_turn(self, session, text, image_path):
        profile = session.settings
        has_image = bool(image_path)

        user_image = None
        if has_image:
            try:
                user_image = await self._load_image(image_path)
            except (OSError, ValueError) as e:
                logger.warning("Could not read attached image %s: %s", image_path, e)
                self._add(session, ASSISTANT, ATTACHMENT_ERROR_TEXT)
                return
            self._add(session, USER, "", user_image=user_image)
        if text:
            self._add(session, USER, text)

        self._set_quick_replies(session, [])
        self._set_loading(session, True)
        placeholder = self._add(session, ASSISTANT, tone.analysis_placeholder(has_image, profile.tone))

        try:
            if has_image:
                data = await self.services.get_image_recommendation(user_image, text, profile)
                if not self._patch(session, placeholder.id, text=data["analysis"]):
                    return
                await self._sleep(self.config.suggestion_delay_ms)
                if session.conversation.get(placeholder.id) is None:
                    return
                self._add(session, ASSISTANT, data["suggestion"])
                session.pending_suggestion = data["suggestion"]
            else:
                data = await self.services.get_text_recommendation(text, profile)
                if not self._patch(session, placeholder.id, text=data["advice"], generated_image=None):
                    return
                session.pending_suggestion = data["advice"]
            self._set_quick_replies(session, quick_replies.from_service(data.get("quick_replies")))
        except Exception as e:
            logger.warning("Recommendation turn failed: %s", e)
            self._patch(
                session, placeholder.id,
                text=tone.analysis_error(has_image, profile.tone, error_text(e)),
            )
        finally:
            self._set_loading(session, False)

    async def feedback(self, session, message_id, value):
        """
        Toggle like/dislike on a message; selecting the same value twice clears it.

        Disliking a generated image starts a turn asking for a different style.

        Raises:
            ValueError: If ``value`` is not like, dislike or None
        """
        if value not in FEEDBACK_VALUES:
            raise ValueError(f"Unknown feedback: {value}")

        message = session.conversation.get(int(message_id))
        if message is None:
            return TurnStatus.IGNORED

        new_value = None if message.feedback == value else value
        self._patch(session, message.id, feedback=new_value)

        if new_value == DISLIKE and message.generated_image and message.image_prompt:
            async with session.turn_lock:
                await self._alternative_turn(session, message.image_prompt)

        return TurnStatus.COMPLETED

    async def _alternative_turn(self, session, disliked_prompt):
        profile = session.settings
        self._set_loading(session, True)
        self._set_quick_replies(session, [])
        self._add(session, USER, DIFFERENT_STYLE_TEXT)
        placeholder = self._add(session, ASSISTANT, tone.analysis_placeholder(False, profile.tone))

        try:
            data = await self.services.get_alternative_outfit_suggestion(disliked_prompt, profile)
        except Exception as e:
            logger.warning("Alternative suggestion failed: %s", e)
            self._patch(session, placeholder.id, text=tone.analysis_error(False, profile.tone, error_text(e)))
        else:
            if not self._patch(session, placeholder.id, text=data["suggestion"]):
                return
            session.pending_suggestion = data["suggestion"]
            self._set_quick_replies(session, quick_replies.from_service(data.get("quick_replies")))
        finally:
            self._set_loading(session, False)

    def liked_images(self, session, message_ids=None):
        """Image references of liked messages, optionally limited to ``message_ids``"""
        items = session.conversation.liked_items()
        if message_ids is not None:
            wanted = set(message_ids)
            items = [m for m in items if m.id in wanted]
        return [m.image for m in items]

    async def recommend_from_history(self, session, images, source="selected"):
        """
        Generate a new outfit image from liked images.

        Args:
            images: Image references to blend
            source: "selected" or "all"; only changes the user message

        Raises:
            ValueError: If ``source`` is unknown
        """
        if source not in HISTORY_SOURCES:
            raise ValueError(f"Unknown history source: {source}")

        async with session.turn_lock:
            if not self._require_settings(session):
                return TurnStatus.SETTINGS_REQUIRED

            images = [image for image in images if image]
            if not images:
                return TurnStatus.IGNORED

            profile = session.settings
            self._add(session, USER, history_request_text(source, len(images)))
            self._set_loading(session, True)
            self._set_quick_replies(session, [])
            placeholder = self._add(
                session, ASSISTANT, tone.image_generation_placeholder(profile.tone), loading_image=True
            )

            try:
                data = await self.services.generate_outfit_from_liked_images(images, profile)
            except Exception as e:
                logger.warning("History recommendation failed: %s", e)
                self._patch(
                    session, placeholder.id,
                    text=tone.image_generation_error(profile.tone, error_text(e)), loading_image=False,
                )
            else:
                self._resolve_image_placeholder(
                    session, placeholder.id, data.get("image_url"), data.get("suggestion"), profile
                )
            finally:
                self._set_loading(session, False)

        return TurnStatus.COMPLETED

    async def add_image_to_history(self, session, image_path):
        """Add a photo straight to the liked list, without any network call"""
        try:
            data_url = await self._load_image(image_path)
        except (OSError, ValueError) as e:
            logger.warning("Could not add %s to history: %s", image_path, e)
            self._add(session, ASSISTANT, HISTORY_ADD_ERROR_TEXT)
            return TurnStatus.COMPLETED

        self._add(session, USER, "", user_image=data_url, feedback=LIKE, history_only=True)
        return TurnStatus.COMPLETED

    async def remove_from_history(self, session, message_id):
        """Drop a message from the liked list by clearing its feedback"""
        message = session.conversation.get(int(message_id))
        if message is None or message.feedback != LIKE:
            return TurnStatus.IGNORED
        self._patch(session, message.id, feedback=None)
        return TurnStatus.COMPLETED

    async def reset(self, session):
        """
        Start the conversation over.

        In-flight turns are not cancelled; their patches target messages that
        no longer exist and are dropped. Message ids keep counting.
        """
        session.conversation = Conversation.initial()
        session.settings = ProfileSettings()
        session.pending_suggestion = ""
        session.quick_replies = []
        session.touch()
        self._emit(session, "session_reset", session=session.to_dict())
        return TurnStatus.COMPLETED
