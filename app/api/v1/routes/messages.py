from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.deps import get_principal
from app.api.errors import SERVICE_ERRORS, raise_for_service_error
from app.api.v1.routes.conversations import get_conversation_service
from app.domain.principal import Principal
from app.schemas.message import MessageResponse, SendMessageRequest
from app.services.conversation_service import ConversationService

router = APIRouter()


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    payload: SendMessageRequest,
    service: ConversationService = Depends(get_conversation_service),
    principal: Principal = Depends(get_principal),
) -> MessageResponse:
    try:
        message = await service.send_message(
            principal,
            conversation_id=payload.conversation_id,
            content=payload.content,
        )
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return MessageResponse.model_validate(message)


@router.post("/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(
    message_id: UUID,
    service: ConversationService = Depends(get_conversation_service),
    principal: Principal = Depends(get_principal),
) -> MessageResponse:
    try:
        message = await service.mark_message_read(principal, message_id)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return MessageResponse.model_validate(message)
