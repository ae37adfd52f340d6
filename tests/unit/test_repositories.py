from collections.abc import AsyncIterator
from datetime import UTC, datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.domain.enums import AssignmentStatus, ConversationStatus, UserRole
from app.domain.principal import Principal
from app.infra.db.errors import NoActiveAssignmentError, VersionConflictError
from app.infra.db.models import Base
from app.infra.db.repositories import (
    AssignmentLedgerRepository,
    ConversationMutation,
    ConversationRepository,
    ExpertProfileRepository,
    UserRepository,
)
from app.infra.db.unit_of_work import SqlAlchemyUnitOfWork
from app.services.assignment_coordinator import AssignmentCoordinator
from app.services.errors import (
    AlreadyClaimedError,
    InvalidTransitionError,
    NotOwnerError,
    StorageFailureError,
)
from app.services.expert_queue import ExpertQueueProjection
from tests.unit.fakes import storage_outage


class UnavailableLedgerRepository(AssignmentLedgerRepository):
    async def append(self, *args, **kwargs):
        raise storage_outage("INSERT INTO expert_assignments")


@pytest_asyncio.fixture
async def session() -> AsyncIterator[AsyncSession]:
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, autoflush=False, expire_on_commit=False)
    async with session_factory() as db_session:
        yield db_session
    await engine.dispose()


async def create_user(session: AsyncSession, username: str, role: UserRole) -> Principal:
    user = await UserRepository(session).create(
        username=username, password_hash="not-used", role=role
    )
    if role == UserRole.EXPERT:
        await ExpertProfileRepository(session).create(user.id)
    await session.commit()
    return Principal(user_id=user.id, username=user.username, role=user.role)


async def create_waiting_conversation(session: AsyncSession, questioner: Principal):
    conversation = await ConversationRepository(session).create(
        title="Why is my index not used?",
        questioner_id=questioner.user_id,
        questioner_username=questioner.username,
    )
    await session.commit()
    return conversation.id


def build_coordinator(session: AsyncSession, **overrides) -> AssignmentCoordinator:
    return AssignmentCoordinator(session=session, max_claim_attempts=3, **overrides)


@pytest.mark.asyncio
async def test_lifecycle_against_sql_store(session: AsyncSession) -> None:
    first = await create_user(session, "ada.expert", UserRole.EXPERT)
    second = await create_user(session, "linus.expert", UserRole.EXPERT)
    questioner = await create_user(session, "grace.asks", UserRole.QUESTIONER)
    conversation_id = await create_waiting_conversation(session, questioner)
    coordinator = build_coordinator(session)

    claimed = await coordinator.claim(first, conversation_id)
    assert claimed.conversation.status == ConversationStatus.ACTIVE
    assert claimed.conversation.version == 2
    assert claimed.assignment.status == AssignmentStatus.ACTIVE

    with pytest.raises(AlreadyClaimedError):
        await coordinator.claim(second, conversation_id)
    with pytest.raises(NotOwnerError):
        await coordinator.unclaim(second, conversation_id)

    released = await coordinator.unclaim(first, conversation_id)
    assert released.conversation.status == ConversationStatus.WAITING
    assert released.conversation.assigned_expert_id is None
    assert released.assignment.status == AssignmentStatus.UNASSIGNED

    # The partial unique index admits a new open entry once the previous one closed.
    await coordinator.claim(second, conversation_id)
    resolved = await coordinator.resolve(second, conversation_id)
    assert resolved.conversation.status == ConversationStatus.RESOLVED
    assert resolved.conversation.assigned_expert_id == second.user_id
    assert resolved.conversation.version == 5

    with pytest.raises(InvalidTransitionError):
        await coordinator.claim(first, conversation_id)

    history = await coordinator.history(questioner, conversation_id)
    assert [entry.expert_id for entry in history] == [first.user_id, second.user_id]
    assert [entry.status for entry in history] == [
        AssignmentStatus.UNASSIGNED,
        AssignmentStatus.RESOLVED,
    ]


@pytest.mark.asyncio
async def test_compare_and_set_rejects_stale_version(session: AsyncSession) -> None:
    expert = await create_user(session, "ada.expert", UserRole.EXPERT)
    questioner = await create_user(session, "grace.asks", UserRole.QUESTIONER)
    conversation_id = await create_waiting_conversation(session, questioner)
    conversations = ConversationRepository(session)
    mutation = ConversationMutation(
        status=ConversationStatus.ACTIVE,
        assigned_expert_id=expert.user_id,
        assigned_expert_username=expert.username,
    )

    updated = await conversations.compare_and_set(conversation_id, 1, mutation)
    assert updated.version == 2

    with pytest.raises(VersionConflictError):
        await conversations.compare_and_set(conversation_id, 1, mutation)


@pytest.mark.asyncio
async def test_close_active_requires_open_entry(session: AsyncSession) -> None:
    questioner = await create_user(session, "grace.asks", UserRole.QUESTIONER)
    conversation_id = await create_waiting_conversation(session, questioner)
    ledger = AssignmentLedgerRepository(session)

    with pytest.raises(NoActiveAssignmentError):
        await ledger.close_active(conversation_id, AssignmentStatus.UNASSIGNED, datetime.now(UTC))
    with pytest.raises(ValueError):
        await ledger.close_active(conversation_id, AssignmentStatus.ACTIVE, datetime.now(UTC))


@pytest.mark.asyncio
async def test_ledger_failure_rolls_back_compare_and_set(session: AsyncSession) -> None:
    expert = await create_user(session, "ada.expert", UserRole.EXPERT)
    questioner = await create_user(session, "grace.asks", UserRole.QUESTIONER)
    conversation_id = await create_waiting_conversation(session, questioner)
    coordinator = build_coordinator(session, ledger=UnavailableLedgerRepository(session))

    with pytest.raises(StorageFailureError):
        await coordinator.claim(expert, conversation_id)

    stored = await ConversationRepository(session).get_by_id(conversation_id)
    assert stored is not None
    assert stored.status == ConversationStatus.WAITING
    assert stored.assigned_expert_id is None
    assert stored.version == 1
    assert await AssignmentLedgerRepository(session).history(conversation_id) == []


@pytest.mark.asyncio
async def test_unit_of_work_rolls_back_on_error(session: AsyncSession) -> None:
    expert = await create_user(session, "ada.expert", UserRole.EXPERT)
    questioner = await create_user(session, "grace.asks", UserRole.QUESTIONER)
    conversation_id = await create_waiting_conversation(session, questioner)
    conversations = ConversationRepository(session)

    with pytest.raises(RuntimeError):
        async with SqlAlchemyUnitOfWork(session).atomic():
            await conversations.compare_and_set(
                conversation_id,
                1,
                ConversationMutation(
                    status=ConversationStatus.ACTIVE,
                    assigned_expert_id=expert.user_id,
                    assigned_expert_username=expert.username,
                ),
            )
            raise RuntimeError("abort")

    stored = await conversations.get_by_id(conversation_id)
    assert stored is not None
    assert stored.version == 1
    assert stored.status == ConversationStatus.WAITING


@pytest.mark.asyncio
async def test_message_counters_leave_version_alone(session: AsyncSession) -> None:
    questioner = await create_user(session, "grace.asks", UserRole.QUESTIONER)
    conversation_id = await create_waiting_conversation(session, questioner)
    conversations = ConversationRepository(session)

    await conversations.record_message(conversation_id, datetime.now(UTC))
    await conversations.record_message(conversation_id, datetime.now(UTC))
    stored = await conversations.get_by_id(conversation_id)
    assert stored is not None
    assert stored.unread_count == 2
    assert stored.last_message_at is not None
    assert stored.version == 1

    await conversations.mark_read(conversation_id, count=5)
    stored = await conversations.get_by_id(conversation_id)
    assert stored is not None
    assert stored.unread_count == 0


@pytest.mark.asyncio
async def test_queue_projection_reads_sql_store(session: AsyncSession) -> None:
    expert = await create_user(session, "ada.expert", UserRole.EXPERT)
    questioner = await create_user(session, "grace.asks", UserRole.QUESTIONER)
    waiting_id = await create_waiting_conversation(session, questioner)
    claimed_id = await create_waiting_conversation(session, questioner)
    await build_coordinator(session).claim(expert, claimed_id)

    queue = await ExpertQueueProjection(session=session).queue(expert)

    assert [item.id for item in queue.waiting_conversations] == [waiting_id]
    assert [item.id for item in queue.assigned_conversations] == [claimed_id]
