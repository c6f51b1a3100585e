# choirhub/models/__init__.py
# Central import surface for SQLModel table registration.
# Keeping these imports ensures init_db() sees all models and creates tables.

from .choir import Choir, MembershipType
from .voice import VoiceCategory, VoiceGroup, VoiceType
from .member import Member

# Events + attendance
from .event import AttendanceMode, Event
from .attendance import ActualStatus, EventAttendance, IntendedStatus

# Messaging
from .info_feed import InfoFeedPost
from .chat import Chat, ChatMessage, ChatType

__all__ = [
    "Choir",
    "MembershipType",
    "VoiceCategory",
    "VoiceGroup",
    "VoiceType",
    "Member",
    "AttendanceMode",
    "Event",
    "ActualStatus",
    "EventAttendance",
    "IntendedStatus",
    "InfoFeedPost",
    "Chat",
    "ChatMessage",
    "ChatType",
]
