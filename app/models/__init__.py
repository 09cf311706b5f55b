from app.models.block import Block
from app.models.chat_room import ChatRoom, RoomKind, RoomStatus
from app.models.invitation import Invitation, InvitationStatus
from app.models.message import Message
from app.models.notification import Notification, NotificationType
from app.models.profile import Profile

__all__ = [
    "Profile",
    "Invitation",
    "InvitationStatus",
    "ChatRoom",
    "RoomKind",
    "RoomStatus",
    "Message",
    "Notification",
    "NotificationType",
    "Block",
]
