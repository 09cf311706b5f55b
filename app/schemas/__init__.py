from app.schemas.block import BlockCreate, BlockListResponse, BlockResponse
from app.schemas.chat import (
    ChatListResponse,
    ChatPreview,
    ChatRequestCreate,
    ChatRequestResponse,
    ChatRoomResponse,
    RevealAcceptResponse,
)
from app.schemas.invitation import (
    InvitationCreate,
    InvitationPublicResponse,
    InvitationResponse,
)
from app.schemas.message import (
    MarkReadResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
    SendMessageResponse,
)
from app.schemas.photo import PhotoProcessRequest, PhotoProcessResponse
from app.schemas.profile import (
    Gender,
    ProfileCreate,
    ProfileResponse,
    PublicProfileResponse,
    RevealedProfile,
)
from app.schemas.realtime import RealtimeEvent
from app.schemas.user import CurrentUser, TokenPayload

__all__ = [
    "CurrentUser",
    "TokenPayload",
    "Gender",
    "ProfileCreate",
    "ProfileResponse",
    "PublicProfileResponse",
    "RevealedProfile",
    "InvitationCreate",
    "InvitationResponse",
    "InvitationPublicResponse",
    "ChatRequestCreate",
    "ChatRequestResponse",
    "ChatRoomResponse",
    "ChatPreview",
    "ChatListResponse",
    "RevealAcceptResponse",
    "MessageCreate",
    "MessageResponse",
    "SendMessageResponse",
    "MessageListResponse",
    "MarkReadResponse",
    "BlockCreate",
    "BlockResponse",
    "BlockListResponse",
    "PhotoProcessRequest",
    "PhotoProcessResponse",
    "RealtimeEvent",
]
