import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from app.core.config import get_settings
from app.domain.enums import AssignmentAction, AssignmentStatus, ConversationStatus
from app.domain.exceptions import InvalidAssignmentTransition
from app.domain.principal import Principal
from app.domain.state_machine import AssignmentLifecycle
from app.infra.db.errors import VersionConflictError
from app.infra.db.models import Conversation, ExpertAssignment
from app.infra.db.repositories import (
    AssignmentLedgerRepository,
    ConversationMutation,
    ConversationRepository,
    ExpertProfileRepository,
)
from app.infra.db.unit_of_work import SqlAlchemyUnitOfWork
from app.services.errors import (
    AlreadyClaimedError,
    ContentionError,
    ConversationAccessDeniedError,
    ConversationNotFoundError,
    InvalidTransitionError,
    NotOwnerError,
)
from app.services.expert_profile_service import require_expert
from app.services.storage import storage_guard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AssignmentResult:
    conversation: Conversation
    assignment: ExpertAssignment


class AssignmentCoordinator:
    """Claim, unclaim and resolve conversations.

    The conversation row's ``version`` column is the only serialization point:
    every transition is a compare-and-set on it, committed in the same
    transaction as the matching ledger write. No application lock is taken.
    """

    def __init__(
        self,
        session: AsyncSession,
        conversations: ConversationRepository | None = None,
        ledger: AssignmentLedgerRepository | None = None,
        profiles: ExpertProfileRepository | None = None,
        unit_of_work: SqlAlchemyUnitOfWork | None = None,
        max_claim_attempts: int | None = None,
    ) -> None:
        self.session = session
        self.conversations = conversations or ConversationRepository(session)
        self.ledger = ledger or AssignmentLedgerRepository(session)
        self.profiles = profiles or ExpertProfileRepository(session)
        self.unit_of_work = unit_of_work or SqlAlchemyUnitOfWork(session)
        self.max_claim_attempts = max_claim_attempts or get_settings().claim_max_attempts

    async def claim(self, principal: Principal, conversation_id: UUID) -> AssignmentResult:
        with storage_guard("claim"):
            await require_expert(principal, self.profiles)

        # Only a lost version race is retried; guard errors from the re-read escape at once.
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_claim_attempts),
            retry=retry_if_exception_type(VersionConflictError),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._claim_once(principal, conversation_id)
        except RetryError as exc:
            logger.warning(
                "Claim on conversation %s by expert %s gave up after %d attempts",
                conversation_id,
                principal.user_id,
                self.max_claim_attempts,
            )
            raise ContentionError(conversation_id, self.max_claim_attempts) from exc

        logger.info("Expert %s claimed conversation %s", principal.user_id, conversation_id)
        return result

    async def _claim_once(self, principal: Principal, conversation_id: UUID) -> AssignmentResult:
        conversation = await self._get_conversation_or_raise(conversation_id, "claim")
        self._assert_claimable(conversation)

        expected_version = conversation.version
        mutation = ConversationMutation(
            status=self._next_status(conversation, AssignmentAction.CLAIM),
            assigned_expert_id=principal.user_id,
            assigned_expert_username=principal.username,
        )
        async with self._atomic("claim"):
            updated = await self.conversations.compare_and_set(
                conversation_id, expected_version, mutation
            )
            entry = await self.ledger.append(
                conversation_id,
                principal.user_id,
                AssignmentStatus.ACTIVE,
                assigned_at=updated.updated_at,
            )
        return AssignmentResult(conversation=updated, assignment=entry)

    async def unclaim(self, principal: Principal, conversation_id: UUID) -> AssignmentResult:
        return await self._release(principal, conversation_id, AssignmentAction.UNCLAIM)

    async def resolve(self, principal: Principal, conversation_id: UUID) -> AssignmentResult:
        return await self._release(principal, conversation_id, AssignmentAction.RESOLVE)

    async def history(
        self, principal: Principal, conversation_id: UUID
    ) -> list[ExpertAssignment]:
        conversation = await self._get_conversation_or_raise(conversation_id, "history")
        if not principal.is_expert and conversation.questioner_id != principal.user_id:
            raise ConversationAccessDeniedError(conversation_id, principal.user_id)
        with storage_guard("history"):
            return await self.ledger.history(conversation_id)

    async def expert_history(self, principal: Principal) -> list[ExpertAssignment]:
        with storage_guard("expert_history"):
            await require_expert(principal, self.profiles)
            return await self.ledger.list_for_expert(principal.user_id)

    async def _release(
        self,
        principal: Principal,
        conversation_id: UUID,
        action: AssignmentAction,
    ) -> AssignmentResult:
        with storage_guard(action.value):
            await require_expert(principal, self.profiles)

        conversation = await self._get_conversation_or_raise(conversation_id, action.value)
        next_status = self._next_status(conversation, action)
        if conversation.assigned_expert_id != principal.user_id:
            raise NotOwnerError(conversation_id, principal.user_id)

        keep_assignee = AssignmentLifecycle.keeps_assignee(next_status)
        mutation = ConversationMutation(
            status=next_status,
            assigned_expert_id=conversation.assigned_expert_id if keep_assignee else None,
            assigned_expert_username=(
                conversation.assigned_expert_username if keep_assignee else None
            ),
        )
        expected_version = conversation.version
        try:
            async with self._atomic(action.value):
                updated = await self.conversations.compare_and_set(
                    conversation_id, expected_version, mutation
                )
                entry = await self.ledger.close_active(
                    conversation_id,
                    AssignmentLifecycle.ledger_close_status(action),
                    updated.updated_at,
                )
        except VersionConflictError as exc:
            # Only the owner can move an active conversation, so this is the
            # same expert racing themselves; report it rather than retry.
            raise ContentionError(conversation_id, 1) from exc

        logger.info(
            "Expert %s %s conversation %s",
            principal.user_id,
            "resolved" if action == AssignmentAction.RESOLVE else "released",
            conversation_id,
        )
        return AssignmentResult(conversation=updated, assignment=entry)

    async def _get_conversation_or_raise(
        self, conversation_id: UUID, operation: str
    ) -> Conversation:
        with storage_guard(operation):
            conversation = await self.conversations.get_by_id(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    @staticmethod
    def _assert_claimable(conversation: Conversation) -> None:
        if AssignmentLifecycle.is_claimable(conversation.status):
            return
        if AssignmentLifecycle.is_terminal(conversation.status):
            raise InvalidTransitionError(
                conversation.id, conversation.status, AssignmentAction.CLAIM
            )
        if conversation.status == ConversationStatus.ACTIVE:
            raise AlreadyClaimedError(conversation.id, conversation.assigned_expert_username)

    @staticmethod
    def _next_status(
        conversation: Conversation, action: AssignmentAction
    ) -> ConversationStatus:
        try:
            return AssignmentLifecycle.transition(conversation.status, action)
        except InvalidAssignmentTransition as exc:
            raise InvalidTransitionError(conversation.id, conversation.status, action) from exc

    @asynccontextmanager
    async def _atomic(self, operation: str) -> AsyncIterator[None]:
        with storage_guard(operation):
            async with self.unit_of_work.atomic():
                yield
