from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.db import get_db_session
from app.core.security import InvalidTokenError, decode_access_token
from app.domain.principal import Principal
from app.infra.db.repositories import UserRepository

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Missing or invalid authorization credentials")

    try:
        claims = decode_access_token(
            credentials.credentials,
            get_settings().auth_secret,
        )
    except InvalidTokenError as exc:
        raise _unauthorized("Invalid or expired session") from exc

    user = await UserRepository(session).get_by_id(claims.user_id)
    if user is None or not user.is_active or user.role != claims.role:
        raise _unauthorized("Invalid or expired session")

    return Principal(user_id=user.id, username=user.username, role=user.role)
