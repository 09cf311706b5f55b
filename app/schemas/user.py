from uuid import UUID

from pydantic import BaseModel


class TokenPayload(BaseModel):
    sub: str
    exp: int


class CurrentUser(BaseModel):
    """Acting principal resolved from the identity broker's token"""

    id: UUID
