from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.domain.enums import ConversationStatus
from app.schemas.common import ApiModel


class CreateConversationRequest(ApiModel):
    title: str = Field(min_length=1, max_length=200)
    initial_message: str | None = Field(default=None, max_length=4000)


class ConversationResponse(ApiModel):
    id: UUID
    title: str
    status: ConversationStatus
    questioner_id: UUID
    questioner_username: str
    assigned_expert_id: UUID | None
    assigned_expert_username: str | None
    created_at: datetime
    updated_at: datetime
    last_message_at: datetime | None
    unread_count: int = Field(ge=0)
