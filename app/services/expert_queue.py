from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.enums import ConversationStatus
from app.domain.principal import Principal
from app.infra.db.models import Conversation
from app.infra.db.repositories import (
    ConversationFilter,
    ConversationRepository,
    ExpertProfileRepository,
)
from app.services.expert_profile_service import require_expert
from app.services.storage import storage_guard


@dataclass(slots=True)
class ExpertQueue:
    waiting_conversations: list[Conversation]
    assigned_conversations: list[Conversation]


class ExpertQueueProjection:
    """Read-only queue views computed from the conversation store on every call."""

    def __init__(
        self,
        session: AsyncSession,
        conversations: ConversationRepository | None = None,
        profiles: ExpertProfileRepository | None = None,
    ) -> None:
        self.session = session
        self.conversations = conversations or ConversationRepository(session)
        self.profiles = profiles or ExpertProfileRepository(session)

    async def waiting_queue(self) -> list[Conversation]:
        with storage_guard("waiting_queue"):
            return await self.conversations.list_by_filter(
                ConversationFilter(status=ConversationStatus.WAITING, oldest_first=True)
            )

    async def assigned_queue(self, expert_id: UUID) -> list[Conversation]:
        with storage_guard("assigned_queue"):
            return await self.conversations.list_by_filter(
                ConversationFilter(
                    status=ConversationStatus.ACTIVE,
                    assigned_expert_id=expert_id,
                )
            )

    async def queue(self, principal: Principal) -> ExpertQueue:
        with storage_guard("queue"):
            await require_expert(principal, self.profiles)
        return ExpertQueue(
            waiting_conversations=await self.waiting_queue(),
            assigned_conversations=await self.assigned_queue(principal.user_id),
        )
