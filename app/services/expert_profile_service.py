from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.principal import Principal
from app.infra.db.models import ExpertProfile
from app.infra.db.repositories import ExpertProfileRepository
from app.services.errors import NotExpertError
from app.services.storage import storage_guard


async def require_expert(
    principal: Principal,
    profiles: ExpertProfileRepository,
) -> ExpertProfile:
    """Return the caller's expert profile, or raise if the caller is not an expert."""
    if not principal.is_expert:
        raise NotExpertError(principal.user_id)
    profile = await profiles.get_by_user_id(principal.user_id)
    if profile is None:
        raise NotExpertError(principal.user_id)
    return profile


class ExpertProfileService:
    def __init__(
        self,
        session: AsyncSession,
        profiles: ExpertProfileRepository | None = None,
    ) -> None:
        self.session = session
        self.profiles = profiles or ExpertProfileRepository(session)

    async def get_profile(self, principal: Principal) -> ExpertProfile:
        with storage_guard("get_profile"):
            return await require_expert(principal, self.profiles)

    async def update_profile(
        self,
        principal: Principal,
        bio: str | None = None,
        knowledge_base_links: list[str] | None = None,
    ) -> ExpertProfile:
        with storage_guard("update_profile"):
            profile = await require_expert(principal, self.profiles)

        cleaned_links: list[str] | None = None
        if knowledge_base_links is not None:
            cleaned_links = [link.strip() for link in knowledge_base_links if link.strip()]

        with storage_guard("update_profile"):
            profile = await self.profiles.update(
                profile,
                bio=bio.strip() if bio is not None else None,
                knowledge_base_links=cleaned_links,
            )
            await self.session.commit()
            await self.session.refresh(profile)
        return profile
