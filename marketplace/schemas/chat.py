from typing import Literal

from pydantic import BaseModel, Field, field_validator


class StartChatRequest(BaseModel):
    receiver_id: str
    message: str = Field(..., max_length=1000)

    @field_validator('receiver_id', 'message')
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('must not be empty')
        return v


class UpdateMessageStatusRequest(BaseModel):
    status: Literal['delivered', 'read']


class ChatPaginationQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)
