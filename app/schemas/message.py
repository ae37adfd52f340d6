from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.domain.enums import SenderRole
from app.schemas.common import ApiModel


class SendMessageRequest(ApiModel):
    conversation_id: UUID
    content: str = Field(min_length=1, max_length=4000)


class MessageResponse(ApiModel):
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    sender_role: SenderRole
    sender_username: str
    content: str
    timestamp: datetime
    is_read: bool
