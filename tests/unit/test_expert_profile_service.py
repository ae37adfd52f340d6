import pytest

from app.services.errors import NotExpertError
from app.services.expert_profile_service import ExpertProfileService
from tests.unit.fakes import (
    DummySession,
    FakeExpertProfileRepository,
    make_expert,
    make_questioner,
)


def build_service(profiles: FakeExpertProfileRepository) -> ExpertProfileService:
    return ExpertProfileService(
        session=DummySession(),  # type: ignore[arg-type]
        profiles=profiles,  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_update_profile_strips_values_and_drops_blank_links() -> None:
    profiles = FakeExpertProfileRepository()
    service = build_service(profiles)
    expert = make_expert("ada.expert", profiles)

    profile = await service.update_profile(
        expert,
        bio="  Postgres and SQLAlchemy.  ",
        knowledge_base_links=[" https://docs.sqlalchemy.org/ ", "  "],
    )

    assert profile.bio == "Postgres and SQLAlchemy."
    assert profile.knowledge_base_links == ["https://docs.sqlalchemy.org/"]


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields() -> None:
    profiles = FakeExpertProfileRepository()
    service = build_service(profiles)
    expert = make_expert("ada.expert", profiles)
    await service.update_profile(expert, bio="Databases", knowledge_base_links=["https://a.example"])

    profile = await service.update_profile(expert, bio="Databases and queues")

    assert profile.bio == "Databases and queues"
    assert profile.knowledge_base_links == ["https://a.example"]


@pytest.mark.asyncio
async def test_profile_requires_expert() -> None:
    service = build_service(FakeExpertProfileRepository())

    with pytest.raises(NotExpertError):
        await service.get_profile(make_questioner())
    with pytest.raises(NotExpertError):
        await service.get_profile(make_expert("no.profile"))
