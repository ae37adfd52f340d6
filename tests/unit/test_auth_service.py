import pytest

from app.core.config import get_settings
from app.core.security import decode_access_token
from app.domain.enums import UserRole
from app.domain.principal import Principal
from app.services.auth_service import AuthService
from app.services.errors import AuthenticationError, UsernameTakenError
from tests.unit.fakes import DummySession, FakeExpertProfileRepository, FakeUserRepository


def build_service(
    users: FakeUserRepository,
    profiles: FakeExpertProfileRepository,
) -> AuthService:
    return AuthService(
        session=DummySession(),  # type: ignore[arg-type]
        users=users,  # type: ignore[arg-type]
        profiles=profiles,  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_register_questioner_issues_token() -> None:
    users = FakeUserRepository()
    profiles = FakeExpertProfileRepository()
    service = build_service(users, profiles)

    result = await service.register("  Grace.Asks ", "QuestionPass123!")

    assert result.user.username == "grace.asks"
    assert result.user.role == UserRole.QUESTIONER
    assert result.token_type == "bearer"
    assert profiles.profiles == {}

    claims = decode_access_token(result.access_token, get_settings().auth_secret)
    assert claims.user_id == result.user.id
    assert claims.role == UserRole.QUESTIONER


@pytest.mark.asyncio
async def test_register_expert_creates_profile() -> None:
    users = FakeUserRepository()
    profiles = FakeExpertProfileRepository()
    service = build_service(users, profiles)

    result = await service.register("ada.expert", "ExpertPass123!", role=UserRole.EXPERT)

    assert result.user.id in profiles.profiles


@pytest.mark.asyncio
async def test_duplicate_username_is_rejected() -> None:
    service = build_service(FakeUserRepository(), FakeExpertProfileRepository())
    await service.register("grace.asks", "QuestionPass123!")

    with pytest.raises(UsernameTakenError):
        await service.register("GRACE.ASKS", "OtherPass123!")


@pytest.mark.asyncio
async def test_login_checks_password_and_active_flag() -> None:
    users = FakeUserRepository()
    service = build_service(users, FakeExpertProfileRepository())
    registered = await service.register("grace.asks", "QuestionPass123!")

    result = await service.login("Grace.Asks", "QuestionPass123!")
    assert result.user.id == registered.user.id

    with pytest.raises(AuthenticationError):
        await service.login("grace.asks", "wrong-password")
    with pytest.raises(AuthenticationError):
        await service.login("nobody", "QuestionPass123!")

    users.users[registered.user.id].is_active = False
    with pytest.raises(AuthenticationError):
        await service.login("grace.asks", "QuestionPass123!")


@pytest.mark.asyncio
async def test_current_user_requires_existing_account() -> None:
    users = FakeUserRepository()
    service = build_service(users, FakeExpertProfileRepository())
    registered = await service.register("grace.asks", "QuestionPass123!")
    principal = Principal(
        user_id=registered.user.id,
        username=registered.user.username,
        role=registered.user.role,
    )

    assert (await service.current_user(principal)).id == registered.user.id

    users.users.clear()
    with pytest.raises(AuthenticationError):
        await service.current_user(principal)
