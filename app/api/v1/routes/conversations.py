from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_principal
from app.api.errors import SERVICE_ERRORS, raise_for_service_error
from app.core.db import get_db_session
from app.domain.principal import Principal
from app.schemas.conversation import ConversationResponse, CreateConversationRequest
from app.schemas.message import MessageResponse
from app.services.conversation_service import ConversationService

router = APIRouter()


async def get_conversation_service(
    session: AsyncSession = Depends(get_db_session),
) -> ConversationService:
    return ConversationService(session=session)


def _to_conversation_response(conversation) -> ConversationResponse:
    return ConversationResponse.model_validate(conversation)


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    service: ConversationService = Depends(get_conversation_service),
    principal: Principal = Depends(get_principal),
) -> list[ConversationResponse]:
    conversations = await service.list_conversations(principal)
    return [_to_conversation_response(conversation) for conversation in conversations]


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    payload: CreateConversationRequest,
    service: ConversationService = Depends(get_conversation_service),
    principal: Principal = Depends(get_principal),
) -> ConversationResponse:
    try:
        conversation = await service.create_conversation(
            principal,
            title=payload.title,
            initial_message=payload.initial_message,
        )
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return _to_conversation_response(conversation)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    service: ConversationService = Depends(get_conversation_service),
    principal: Principal = Depends(get_principal),
) -> ConversationResponse:
    try:
        conversation = await service.get_conversation(principal, conversation_id)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return _to_conversation_response(conversation)


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_conversation_messages(
    conversation_id: UUID,
    service: ConversationService = Depends(get_conversation_service),
    principal: Principal = Depends(get_principal),
) -> list[MessageResponse]:
    try:
        result = await service.list_messages(principal, conversation_id)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return [MessageResponse.model_validate(message) for message in result.messages]
