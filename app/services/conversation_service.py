import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.enums import ConversationStatus, SenderRole
from app.domain.principal import Principal
from app.domain.state_machine import AssignmentLifecycle
from app.infra.db.models import Conversation, Message
from app.infra.db.repositories import (
    ConversationFilter,
    ConversationRepository,
    MessageRepository,
)
from app.services.errors import (
    ConversationAccessDeniedError,
    ConversationClosedError,
    ConversationNotFoundError,
    MessageNotFoundError,
    NotOwnerError,
    RoleNotAllowedError,
)
from app.services.storage import storage_guard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ConversationMessages:
    conversation: Conversation
    messages: list[Message]


class ConversationService:
    """Conversation and message operations outside the assignment lifecycle.

    ``Conversation.unread_count`` counts messages not yet read by their
    recipient: every new message adds one, and only a participant other than
    the sender can mark it read.
    """

    def __init__(
        self,
        session: AsyncSession,
        conversations: ConversationRepository | None = None,
        messages: MessageRepository | None = None,
    ) -> None:
        self.session = session
        self.conversations = conversations or ConversationRepository(session)
        self.messages = messages or MessageRepository(session)

    async def create_conversation(
        self,
        principal: Principal,
        title: str,
        initial_message: str | None = None,
    ) -> Conversation:
        if principal.is_expert:
            raise RoleNotAllowedError(principal.user_id, "open conversations")

        cleaned_title = title.strip()
        if not cleaned_title:
            raise ValueError("Conversation title cannot be empty.")

        cleaned_message = initial_message.strip() if initial_message else ""
        with storage_guard("create_conversation"):
            conversation = await self.conversations.create(
                title=cleaned_title,
                questioner_id=principal.user_id,
                questioner_username=principal.username,
            )
            if cleaned_message:
                await self._append_message(
                    conversation.id, principal, SenderRole.INITIATOR, cleaned_message
                )

            await self.session.commit()
            await self.session.refresh(conversation)
        logger.info("Questioner %s opened conversation %s", principal.user_id, conversation.id)
        return conversation

    async def list_conversations(self, principal: Principal) -> list[Conversation]:
        with storage_guard("list_conversations"):
            if principal.is_expert:
                return await self.conversations.list_for_expert(principal.user_id)
            return await self.conversations.list_by_filter(
                ConversationFilter(questioner_id=principal.user_id)
            )

    async def get_conversation(
        self,
        principal: Principal,
        conversation_id: UUID,
    ) -> Conversation:
        return await self._get_visible_conversation(principal, conversation_id)

    async def list_messages(
        self,
        principal: Principal,
        conversation_id: UUID,
    ) -> ConversationMessages:
        conversation = await self._get_visible_conversation(principal, conversation_id)
        with storage_guard("list_messages"):
            messages = await self.messages.list_by_conversation(conversation.id)
        return ConversationMessages(conversation=conversation, messages=messages)

    async def send_message(
        self,
        principal: Principal,
        conversation_id: UUID,
        content: str,
    ) -> Message:
        conversation = await self._get_visible_conversation(principal, conversation_id)
        if AssignmentLifecycle.is_terminal(conversation.status):
            raise ConversationClosedError(conversation.id)

        if principal.is_expert:
            if (
                conversation.status != ConversationStatus.ACTIVE
                or conversation.assigned_expert_id != principal.user_id
            ):
                raise NotOwnerError(conversation.id, principal.user_id)
            sender_role = SenderRole.EXPERT
        else:
            sender_role = SenderRole.INITIATOR

        cleaned_content = content.strip()
        if not cleaned_content:
            raise ValueError("Message content cannot be empty.")

        with storage_guard("send_message"):
            message = await self._append_message(
                conversation.id, principal, sender_role, cleaned_content
            )
            await self.session.commit()
            await self.session.refresh(message)
        return message

    async def mark_message_read(self, principal: Principal, message_id: UUID) -> Message:
        with storage_guard("mark_message_read"):
            message = await self.messages.get_by_id(message_id)
        if message is None:
            raise MessageNotFoundError(message_id)

        await self._get_visible_conversation(principal, message.conversation_id)
        if message.is_read or message.sender_id == principal.user_id:
            return message

        with storage_guard("mark_message_read"):
            await self.messages.mark_read(message)
            await self.conversations.mark_read(message.conversation_id)
            await self.session.commit()
            await self.session.refresh(message)
        return message

    async def _append_message(
        self,
        conversation_id: UUID,
        principal: Principal,
        sender_role: SenderRole,
        content: str,
    ) -> Message:
        sent_at = datetime.now(UTC)
        message = await self.messages.create(
            conversation_id=conversation_id,
            sender_id=principal.user_id,
            sender_role=sender_role,
            sender_username=principal.username,
            content=content,
            timestamp=sent_at,
        )
        await self.conversations.record_message(conversation_id, sent_at)
        return message

    async def _get_visible_conversation(
        self,
        principal: Principal,
        conversation_id: UUID,
    ) -> Conversation:
        with storage_guard("get_conversation"):
            conversation = await self.conversations.get_by_id(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        if not principal.is_expert and conversation.questioner_id != principal.user_id:
            raise ConversationAccessDeniedError(conversation_id, principal.user_id)
        return conversation
