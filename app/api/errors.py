from fastapi import HTTPException, status

from app.services.errors import (
    AlreadyClaimedError,
    AuthenticationError,
    ContentionError,
    ConversationAccessDeniedError,
    ConversationClosedError,
    ConversationNotFoundError,
    InvalidTransitionError,
    MessageNotFoundError,
    NotExpertError,
    NotOwnerError,
    RoleNotAllowedError,
    StorageFailureError,
    UsernameTakenError,
)

SERVICE_ERRORS: tuple[type[Exception], ...] = (
    AlreadyClaimedError,
    AuthenticationError,
    ContentionError,
    ConversationAccessDeniedError,
    ConversationClosedError,
    ConversationNotFoundError,
    InvalidTransitionError,
    MessageNotFoundError,
    NotExpertError,
    NotOwnerError,
    RoleNotAllowedError,
    StorageFailureError,
    UsernameTakenError,
    ValueError,
)


def raise_for_service_error(exc: Exception) -> None:
    if isinstance(exc, (ConversationNotFoundError, MessageNotFoundError)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, AuthenticationError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    if isinstance(
        exc,
        (NotOwnerError, NotExpertError, ConversationAccessDeniedError, RoleNotAllowedError),
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(
        exc,
        (
            AlreadyClaimedError,
            InvalidTransitionError,
            ContentionError,
            ConversationClosedError,
            UsernameTakenError,
        ),
    ):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, StorageFailureError):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    if isinstance(exc, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    raise exc
