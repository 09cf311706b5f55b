from typing import Any, Literal

from pydantic import BaseModel


class RealtimeEvent(BaseModel):
    """Row change pushed to subscribers; record is always a full snapshot."""

    event: Literal["INSERT", "UPDATE"]
    table: Literal["chat_rooms", "messages"]
    record: dict[str, Any]
    client_id: str | None = None
