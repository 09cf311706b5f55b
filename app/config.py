from uuid import UUID

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    APP_NAME: str = "Mannam API"
    APP_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = "http://localhost:3000"

    # Local day boundary for daily quotas
    TIMEZONE: str = "Asia/Seoul"

    # Lifetimes
    PROFILE_EXPIRY_HOURS: int = 24
    CHAT_ROOM_EXPIRY_HOURS: int = 48
    INVITATION_EXPIRY_DAYS: int = 7

    # Daily quotas
    MAX_DAILY_CHAT_REQUESTS: int = 10
    MAX_DAILY_PROFILE_CREATIONS: int = 10
    MAX_DAILY_INVITATIONS: int = 10

    MESSAGE_MAX_LENGTH: int = 500

    # Operator account behind the always-open support room
    SUPPORT_USER_ID: UUID | None = None

    # Blob storage (Supabase storage compatible)
    STORAGE_URL: str = ""
    STORAGE_SERVICE_KEY: str = ""
    STORAGE_BUCKET: str = "profiles"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
