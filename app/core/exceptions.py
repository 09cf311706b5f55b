"""
Custom exception classes for the Mannam application.
Provides structured error handling with machine-readable error codes.

Every expected, user-facing failure of a chat or profile operation is one of
these classes; nothing outside this hierarchy should reach the generic
handler during normal operation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes matching frontend for consistency"""

    # Authentication errors (401)
    AUTH_NOT_AUTHENTICATED = "AUTH_NOT_AUTHENTICATED"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"

    # Authorization errors (403)
    AUTHZ_FORBIDDEN = "AUTHZ_FORBIDDEN"
    AUTHZ_NOT_PARTICIPANT = "AUTHZ_NOT_PARTICIPANT"
    AUTHZ_OWN_PROFILE = "AUTHZ_OWN_PROFILE"
    AUTHZ_OWN_REVEAL_REQUEST = "AUTHZ_OWN_REVEAL_REQUEST"
    AUTHZ_BLOCKED = "AUTHZ_BLOCKED"
    AUTHZ_STORAGE_PATH = "AUTHZ_STORAGE_PATH"
    AUTHZ_OWN_INVITATION = "AUTHZ_OWN_INVITATION"

    # Resource errors (404, 409)
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_ALREADY_EXISTS = "RESOURCE_ALREADY_EXISTS"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"

    # State machine errors (400)
    PROFILE_INACTIVE = "PROFILE_INACTIVE"
    PROFILE_ALREADY_ACTIVE = "PROFILE_ALREADY_ACTIVE"
    PROFILE_NOT_INVITED = "PROFILE_NOT_INVITED"
    INVITATION_ALREADY_USED = "INVITATION_ALREADY_USED"
    INVITATION_EXPIRED = "INVITATION_EXPIRED"
    CHAT_ALREADY_REQUESTED = "CHAT_ALREADY_REQUESTED"
    CHAT_ALREADY_ACTIVE = "CHAT_ALREADY_ACTIVE"
    CHAT_PREVIOUSLY_REJECTED = "CHAT_PREVIOUSLY_REJECTED"
    CHAT_ALREADY_HANDLED = "CHAT_ALREADY_HANDLED"
    CHAT_ROOM_NOT_ACTIVE = "CHAT_ROOM_NOT_ACTIVE"
    CHAT_ROOM_EXPIRED = "CHAT_ROOM_EXPIRED"
    CHAT_SUPPORT_ROOM = "CHAT_SUPPORT_ROOM"
    REVEAL_NOT_ACTIVE = "REVEAL_NOT_ACTIVE"
    REVEAL_ALREADY_REQUESTED = "REVEAL_ALREADY_REQUESTED"
    REVEAL_ALREADY_DONE = "REVEAL_ALREADY_DONE"
    REVEAL_NOT_REQUESTED = "REVEAL_NOT_REQUESTED"
    REVEAL_NOT_DONE = "REVEAL_NOT_DONE"

    # Validation errors (422)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    VALIDATION_INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"
    VALIDATION_MESSAGE_LENGTH = "VALIDATION_MESSAGE_LENGTH"

    # Quotas (429)
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"

    # Server / upstream errors (500+)
    SERVER_ERROR = "SERVER_ERROR"
    SERVER_UNAVAILABLE = "SERVER_UNAVAILABLE"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"


class AppException(Exception):
    """
    Base exception class for application errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SERVER_ERROR,
        status_code: int = 500,
        field: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.field = field
        self.metadata = metadata or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to response dictionary"""
        response = {
            "detail": self.message,
            "code": self.code.value,
        }
        if self.field:
            response["field"] = self.field
        if self.metadata:
            response["metadata"] = self.metadata
        return response


# Authentication Errors (401)


class AuthenticationError(AppException):
    """No identity could be resolved for the caller"""

    def __init__(
        self,
        message: str = "로그인이 필요해요",
        code: ErrorCode = ErrorCode.AUTH_NOT_AUTHENTICATED,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=401,
        )


# Authorization Errors (403)


class AuthorizationError(AppException):
    """Caller is not a permitted party for the action"""

    def __init__(
        self,
        message: str = "권한이 없어요",
        code: ErrorCode = ErrorCode.AUTHZ_FORBIDDEN,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=403,
            metadata=metadata,
        )


# Resource Errors (404, 409)


class NotFoundError(AppException):
    """Resource not found"""

    def __init__(
        self,
        message: str = "요청한 정보를 찾을 수 없어요",
        resource: str | None = None,
    ):
        metadata = {"resource": resource} if resource else None
        super().__init__(
            message=message,
            code=ErrorCode.RESOURCE_NOT_FOUND,
            status_code=404,
            metadata=metadata,
        )


class AlreadyExistsError(AppException):
    """Resource already exists"""

    def __init__(
        self,
        message: str = "이미 존재하는 정보예요",
        field: str | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.RESOURCE_ALREADY_EXISTS,
            status_code=409,
            field=field,
        )


class ConflictError(AppException):
    """A concurrent request changed the row first"""

    def __init__(
        self,
        message: str = "다른 요청이 먼저 처리되었어요. 새로고침 후 다시 확인해주세요",
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.RESOURCE_CONFLICT,
            status_code=409,
            metadata=metadata,
        )


# State machine errors (400)


class InvalidStateError(AppException):
    """Action attempted against the wrong state; code names the expected state"""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=400,
            metadata=metadata,
        )


# Validation Errors (422)


class ValidationError(AppException):
    """Validation error"""

    def __init__(
        self,
        message: str = "입력한 내용을 확인해주세요",
        field: str | None = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=422,
            field=field,
        )


class InvalidFormatError(ValidationError):
    """Invalid data format"""

    def __init__(
        self,
        message: str = "형식이 올바르지 않아요",
        field: str | None = None,
    ):
        super().__init__(
            message=message,
            field=field,
            code=ErrorCode.VALIDATION_INVALID_FORMAT,
        )


# Quotas (429)


class QuotaExceededError(AppException):
    """Daily quota exceeded"""

    def __init__(
        self,
        message: str = "오늘은 더 이상 요청할 수 없어요. 내일 다시 시도해주세요!",
        limit: int | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.QUOTA_EXCEEDED,
            status_code=429,
            metadata={"limit": limit} if limit is not None else None,
        )


# Server Errors (500, 502)


class ServerError(AppException):
    """Internal server error"""

    def __init__(
        self,
        message: str = "알 수 없는 오류가 발생했어요",
        code: ErrorCode = ErrorCode.SERVER_ERROR,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=500,
        )


class UpstreamError(AppException):
    """Store, blob storage or image filter failed; safe to retry"""

    def __init__(
        self,
        message: str = "요청을 처리하지 못했어요. 잠시 후 다시 시도해주세요",
    ):
        super().__init__(
            message=message,
            code=ErrorCode.UPSTREAM_FAILURE,
            status_code=502,
        )
