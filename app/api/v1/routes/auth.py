import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_principal
from app.api.errors import SERVICE_ERRORS, raise_for_service_error
from app.core.config import get_settings
from app.core.db import get_db_session
from app.core.rate_limit import InMemoryRateLimiter, RateLimitRule
from app.domain.principal import Principal
from app.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from app.schemas.common import StatusMessage
from app.services.auth_service import AuthResult, AuthService

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()
auth_limiter = InMemoryRateLimiter()


async def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
) -> AuthService:
    return AuthService(session=session)


async def enforce_auth_rate_limit(request: Request) -> None:
    client_host = request.client.host if request.client is not None else "unknown"
    rule = RateLimitRule(
        limit=settings.login_rate_limit,
        window_seconds=settings.login_rate_window_seconds,
    )
    decision = await auth_limiter.check(f"auth:{client_host}", rule)
    if not decision.allowed:
        logger.warning("Auth rate limit exceeded for %s", client_host)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many authentication attempts. Try again later.",
            headers={"Retry-After": str(decision.retry_after_seconds)},
        )


def _to_auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        token=result.access_token,
        token_type=result.token_type,
        expires_at=result.expires_at,
        user=UserResponse.model_validate(result.user),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def register(
    payload: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    try:
        result = await service.register(
            username=payload.username,
            password=payload.password,
            role=payload.role,
        )
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return _to_auth_response(result)


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def login(
    payload: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    try:
        result = await service.login(
            username=payload.username,
            password=payload.password,
        )
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return _to_auth_response(result)


@router.post("/logout", response_model=StatusMessage)
async def logout(principal: Principal = Depends(get_principal)) -> StatusMessage:
    # Tokens are stateless; the client drops its copy.
    logger.info("User %s logged out", principal.user_id)
    return StatusMessage(message="Logged out")


@router.get("/me", response_model=UserResponse)
async def get_current_user(
    service: AuthService = Depends(get_auth_service),
    principal: Principal = Depends(get_principal),
) -> UserResponse:
    try:
        user = await service.current_user(principal)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return UserResponse.model_validate(user)
