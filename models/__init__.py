"""
Data models for the Wearly application
"""

from .schemas import (
    SessionEvent,
    Message,
    Conversation,
    ProfileSettings,
    ChatSession,
)

__all__ = [
    'SessionEvent',
    'Message',
    'Conversation',
    'ProfileSettings',
    'ChatSession',
]
