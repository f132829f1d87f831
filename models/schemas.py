"""
Data models for the Wearly chat session

Messages, the conversation store, the user's profile settings and the
per-session state the turn controller works on.
"""

import asyncio
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .constants import GENDERS, GREETING_TEXT, TONES

USER = "user"
ASSISTANT = "assistant"

LIKE = "like"
DISLIKE = "dislike"
FEEDBACK_VALUES = (LIKE, DISLIKE, None)


@dataclass
class SessionEvent:
    """A state change pushed to listeners (Socket.IO room, CLI printer)"""
    event: str
    session_id: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.event, "session_id": self.session_id, "data": self.data}


@dataclass
class Message:
    """A single chat bubble"""
    id: int
    role: str
    text: str = ""
    user_image: Optional[str] = None
    generated_image: Optional[str] = None
    image_prompt: Optional[str] = None
    loading_image: bool = False
    feedback: Optional[str] = None
    history_only: bool = False

    @property
    def image(self) -> Optional[str]:
        """The image shown for this message, generated first"""
        return self.generated_image or self.user_image

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Conversation:
    """Ordered message store: append-only, with in-place patching by id"""

    def __init__(self, messages: Optional[List[Message]] = None):
        self._messages: List[Message] = list(messages or [])

    @classmethod
    def initial(cls) -> "Conversation":
        """A conversation holding only the greeting (id 1)"""
        return cls([Message(id=1, role=ASSISTANT, text=GREETING_TEXT)])

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)

    def append(self, message: Message) -> Message:
        if self._messages and message.id <= self._messages[-1].id:
            raise ValueError(
                f"Message id {message.id} must be greater than {self._messages[-1].id}"
            )
        self._messages.append(message)
        return message

    def get(self, message_id: int) -> Optional[Message]:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def patch(self, message_id: int, **changes) -> bool:
        """
        Update fields of the message with the given id.

        Returns:
            bool: False when no such message exists (e.g. after a reset)
        """
        message = self.get(message_id)
        if message is None:
            return False
        valid = {f.name for f in fields(Message)} - {"id"}
        for name, value in changes.items():
            if name not in valid:
                raise AttributeError(f"Message has no field '{name}'")
            setattr(message, name, value)
        return True

    def liked_items(self) -> List[Message]:
        """Liked messages carrying an image, in conversation order"""
        return [m for m in self._messages if m.feedback == LIKE and m.image]

    def to_list(self) -> List[Dict[str, Any]]:
        return [m.to_dict() for m in self._messages]


@dataclass(frozen=True)
class ProfileSettings:
    """User profile; replaced wholesale, never partially mutated"""
    region: str = ""
    gender: str = ""
    tone: str = ""
    preferred_colors: Tuple[str, ...] = ()
    height: str = ""
    weight: str = ""
    profile_image: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProfileSettings":
        """
        Build settings from a client payload.

        Accepts ``colors`` as an alias of ``preferred_colors``.

        Raises:
            ValueError: If gender or tone is not a known value
        """
        gender = (data.get("gender") or "").strip()
        tone = (data.get("tone") or "").strip()
        if gender and gender not in GENDERS:
            raise ValueError(f"Unknown gender: {gender}")
        if tone and tone not in TONES:
            raise ValueError(f"Unknown tone: {tone}")

        colors = data.get("preferred_colors", data.get("colors")) or []
        if isinstance(colors, str):
            colors = [c.strip() for c in colors.split(",")]

        return cls(
            region=(data.get("region") or "").strip(),
            gender=gender,
            tone=tone,
            preferred_colors=tuple(c for c in colors if c),
            height=_as_text(data.get("height")),
            weight=_as_text(data.get("weight")),
            profile_image=data.get("profile_image") or None,
        )

    def is_complete(self) -> bool:
        """Region, gender and tone are all required before any turn"""
        return bool(self.region and self.gender and self.tone)

    def changed_fields(self, other: "ProfileSettings") -> List[str]:
        """Names of the fields that differ from ``other`` (colors compared as a set)"""
        changed = []
        for f in fields(self):
            mine, theirs = getattr(self, f.name), getattr(other, f.name)
            if f.name == "preferred_colors":
                mine, theirs = sorted(mine), sorted(theirs)
            if mine != theirs:
                changed.append(f.name)
        return changed

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["preferred_colors"] = list(self.preferred_colors)
        return data


def _as_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass
class ChatSession:
    """All state of one chat: conversation, settings and turn bookkeeping"""
    session_id: str
    settings: ProfileSettings = field(default_factory=ProfileSettings)
    conversation: Conversation = field(default_factory=Conversation.initial)
    pending_suggestion: str = ""
    quick_replies: List[str] = field(default_factory=list)
    is_loading: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    last_updated: datetime = field(default_factory=datetime.now)
    last_message_id: int = 1
    turn_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def next_message_id(self) -> int:
        self.last_message_id += 1
        return self.last_message_id

    def add_message(self, role: str, text: str = "", **extra) -> Message:
        """Create a message with a fresh id and append it"""
        message = Message(id=self.next_message_id(), role=role, text=text, **extra)
        self.conversation.append(message)
        self.touch()
        return message

    def touch(self) -> None:
        self.last_updated = datetime.now()

    def get_context_summary(self) -> Dict[str, Any]:
        """Short description of the session for status endpoints"""
        user_count = sum(1 for m in self.conversation if m.role == USER and not m.history_only)
        return {
            "message_count": len(self.conversation),
            "user_message_count": user_count,
            "liked_count": len(self.conversation.liked_items()),
            "settings_complete": self.settings.is_complete(),
            "region": self.settings.region,
            "has_pending_suggestion": bool(self.pending_suggestion),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "settings": self.settings.to_dict(),
            "messages": self.conversation.to_list(),
            "quick_replies": list(self.quick_replies),
            "is_loading": self.is_loading,
            "created_at": self.created_at.isoformat(),
            "last_updated": self.last_updated.isoformat(),
        }
