from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.domain.enums import UserRole
from app.infra.db.models import ExpertProfile, User

DEFAULT_ACCOUNTS: list[dict[str, str | list[str]]] = [
    {
        "username": "ada.expert",
        "password": "ExpertPass123!",
        "role": UserRole.EXPERT.value,
        "bio": "Backend and databases.",
        "knowledge_base_links": ["https://docs.sqlalchemy.org/"],
    },
    {
        "username": "linus.expert",
        "password": "ExpertPass123!",
        "role": UserRole.EXPERT.value,
        "bio": "",
        "knowledge_base_links": [],
    },
    {
        "username": "grace.asks",
        "password": "QuestionPass123!",
        "role": UserRole.QUESTIONER.value,
    },
]


async def seed_default_accounts(session: AsyncSession) -> None:
    existing_rows = await session.execute(select(User.username))
    existing_usernames = {
        username.strip().lower() for username in existing_rows.scalars().all()
    }

    for item in DEFAULT_ACCOUNTS:
        username = str(item["username"]).strip().lower()
        if username in existing_usernames:
            continue

        role = UserRole(str(item["role"]))
        user = User(
            username=username,
            password_hash=hash_password(str(item["password"])),
            role=role,
            is_active=True,
        )
        session.add(user)
        await session.flush()

        if role == UserRole.EXPERT:
            links = item.get("knowledge_base_links", [])
            session.add(
                ExpertProfile(
                    user_id=user.id,
                    bio=str(item.get("bio", "")),
                    knowledge_base_links=[str(link) for link in links],
                )
            )
            await session.flush()
