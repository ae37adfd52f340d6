from datetime import datetime
from uuid import UUID

from pydantic import Field, HttpUrl, field_validator

from app.domain.enums import AssignmentStatus
from app.schemas.common import ApiModel
from app.schemas.conversation import ConversationResponse


class ExpertQueueResponse(ApiModel):
    waiting_conversations: list[ConversationResponse]
    assigned_conversations: list[ConversationResponse]


class ExpertAssignmentResponse(ApiModel):
    id: UUID
    conversation_id: UUID
    expert_id: UUID
    assigned_at: datetime
    unassigned_at: datetime | None = None
    status: AssignmentStatus


class AssignmentActionResponse(ApiModel):
    success: bool = True
    conversation: ConversationResponse
    assignment: ExpertAssignmentResponse


class ExpertProfileResponse(ApiModel):
    id: UUID
    user_id: UUID
    bio: str = ""
    knowledge_base_links: list[str] = Field(default_factory=list)

    @field_validator("bio", mode="before")
    @classmethod
    def _default_bio(cls, value: str | None) -> str:
        return value or ""

    @field_validator("knowledge_base_links", mode="before")
    @classmethod
    def _default_links(cls, value: list[str] | None) -> list[str]:
        return list(value or [])


class UpdateExpertProfileRequest(ApiModel):
    bio: str | None = Field(default=None, max_length=2000)
    knowledge_base_links: list[HttpUrl] | None = Field(default=None, max_length=50)
