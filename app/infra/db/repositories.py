from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import Select, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.enums import AssignmentStatus, ConversationStatus, SenderRole, UserRole
from app.infra.db.errors import NoActiveAssignmentError, VersionConflictError
from app.infra.db.models import (
    Conversation,
    ExpertAssignment,
    ExpertProfile,
    Message,
    User,
)


@dataclass(frozen=True, slots=True)
class ConversationMutation:
    status: ConversationStatus
    assigned_expert_id: UUID | None
    assigned_expert_username: str | None


@dataclass(frozen=True, slots=True)
class ConversationFilter:
    status: ConversationStatus | None = None
    questioner_id: UUID | None = None
    assigned_expert_id: UUID | None = None
    oldest_first: bool = False
    limit: int = 200


class ConversationRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        # populate_existing so a retried claim never sees a stale identity-map row
        stmt: Select[tuple[Conversation]] = (
            select(Conversation)
            .where(Conversation.id == conversation_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_filter(self, conversation_filter: ConversationFilter) -> list[Conversation]:
        stmt: Select[tuple[Conversation]] = select(Conversation)
        if conversation_filter.status is not None:
            stmt = stmt.where(Conversation.status == conversation_filter.status)
        if conversation_filter.questioner_id is not None:
            stmt = stmt.where(Conversation.questioner_id == conversation_filter.questioner_id)
        if conversation_filter.assigned_expert_id is not None:
            stmt = stmt.where(
                Conversation.assigned_expert_id == conversation_filter.assigned_expert_id
            )

        if conversation_filter.oldest_first:
            stmt = stmt.order_by(Conversation.created_at.asc(), Conversation.id.asc())
        else:
            stmt = stmt.order_by(Conversation.updated_at.desc(), Conversation.id.asc())

        result = await self.session.execute(stmt.limit(conversation_filter.limit))
        return list(result.scalars().all())

    async def list_for_expert(self, expert_id: UUID, limit: int = 200) -> list[Conversation]:
        stmt: Select[tuple[Conversation]] = (
            select(Conversation)
            .where(
                or_(
                    Conversation.assigned_expert_id == expert_id,
                    Conversation.status == ConversationStatus.WAITING,
                )
            )
            .order_by(Conversation.updated_at.desc(), Conversation.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(
        self,
        title: str,
        questioner_id: UUID,
        questioner_username: str,
    ) -> Conversation:
        conversation = Conversation(
            title=title,
            questioner_id=questioner_id,
            questioner_username=questioner_username,
            status=ConversationStatus.WAITING,
            assigned_expert_id=None,
            assigned_expert_username=None,
            unread_count=0,
            version=1,
        )
        self.session.add(conversation)
        await self.session.flush()
        await self.session.refresh(conversation)
        return conversation

    async def compare_and_set(
        self,
        conversation_id: UUID,
        expected_version: int,
        mutation: ConversationMutation,
    ) -> Conversation:
        stmt = (
            update(Conversation)
            .where(
                Conversation.id == conversation_id,
                Conversation.version == expected_version,
            )
            .values(
                status=mutation.status,
                assigned_expert_id=mutation.assigned_expert_id,
                assigned_expert_username=mutation.assigned_expert_username,
                version=expected_version + 1,
                updated_at=datetime.now(UTC),
            )
            .returning(Conversation)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await self.session.execute(stmt)
        conversation = result.scalar_one_or_none()
        if conversation is None:
            raise VersionConflictError(conversation_id, expected_version)
        return conversation

    async def record_message(self, conversation_id: UUID, at: datetime) -> None:
        stmt = (
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(
                last_message_at=at,
                updated_at=at,
                unread_count=Conversation.unread_count + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def mark_read(self, conversation_id: UUID, count: int = 1) -> None:
        stmt = (
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(
                unread_count=case(
                    (Conversation.unread_count > count, Conversation.unread_count - count),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)


class AssignmentLedgerRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def append(
        self,
        conversation_id: UUID,
        expert_id: UUID,
        status: AssignmentStatus = AssignmentStatus.ACTIVE,
        assigned_at: datetime | None = None,
    ) -> ExpertAssignment:
        entry = ExpertAssignment(
            conversation_id=conversation_id,
            expert_id=expert_id,
            status=status,
            assigned_at=assigned_at or datetime.now(UTC),
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def close_active(
        self,
        conversation_id: UUID,
        new_status: AssignmentStatus,
        at: datetime,
    ) -> ExpertAssignment:
        if new_status == AssignmentStatus.ACTIVE:
            raise ValueError("An assignment cannot be closed as 'active'.")

        stmt: Select[tuple[ExpertAssignment]] = (
            select(ExpertAssignment)
            .where(
                ExpertAssignment.conversation_id == conversation_id,
                ExpertAssignment.status == AssignmentStatus.ACTIVE,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        entry = result.scalar_one_or_none()
        if entry is None:
            raise NoActiveAssignmentError(conversation_id)

        entry.status = new_status
        entry.unassigned_at = at
        await self.session.flush()
        return entry

    async def history(self, conversation_id: UUID) -> list[ExpertAssignment]:
        stmt: Select[tuple[ExpertAssignment]] = (
            select(ExpertAssignment)
            .where(ExpertAssignment.conversation_id == conversation_id)
            .order_by(ExpertAssignment.assigned_at.asc(), ExpertAssignment.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_expert(self, expert_id: UUID, limit: int = 200) -> list[ExpertAssignment]:
        stmt: Select[tuple[ExpertAssignment]] = (
            select(ExpertAssignment)
            .where(ExpertAssignment.expert_id == expert_id)
            .order_by(ExpertAssignment.assigned_at.desc(), ExpertAssignment.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class MessageRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        return await self.session.get(Message, message_id)

    async def create(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        sender_role: SenderRole,
        sender_username: str,
        content: str,
        timestamp: datetime | None = None,
    ) -> Message:
        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            sender_role=sender_role,
            sender_username=sender_username,
            content=content,
            is_read=False,
            timestamp=timestamp or datetime.now(UTC),
        )
        self.session.add(message)
        await self.session.flush()
        await self.session.refresh(message)
        return message

    async def list_by_conversation(self, conversation_id: UUID) -> list[Message]:
        stmt: Select[tuple[Message]] = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.timestamp.asc(), Message.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_read(self, message: Message) -> None:
        message.is_read = True
        await self.session.flush()


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        return await self.session.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        stmt: Select[tuple[User]] = (
            select(User).where(func.lower(User.username) == username.strip().lower()).limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, username: str, password_hash: str, role: UserRole) -> User:
        user = User(
            username=username,
            password_hash=password_hash,
            role=role,
            is_active=True,
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def touch_last_active(self, user: User) -> None:
        user.last_active_at = datetime.now(UTC)
        await self.session.flush()


class ExpertProfileRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_user_id(self, user_id: UUID) -> ExpertProfile | None:
        stmt: Select[tuple[ExpertProfile]] = (
            select(ExpertProfile).where(ExpertProfile.user_id == user_id).limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, user_id: UUID) -> ExpertProfile:
        profile = ExpertProfile(user_id=user_id, bio="", knowledge_base_links=[])
        self.session.add(profile)
        await self.session.flush()
        await self.session.refresh(profile)
        return profile

    async def update(
        self,
        profile: ExpertProfile,
        bio: str | None = None,
        knowledge_base_links: list[str] | None = None,
    ) -> ExpertProfile:
        if bio is not None:
            profile.bio = bio
        if knowledge_base_links is not None:
            profile.knowledge_base_links = list(knowledge_base_links)
        await self.session.flush()
        await self.session.refresh(profile)
        return profile
