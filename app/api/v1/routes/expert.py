from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_principal
from app.api.errors import SERVICE_ERRORS, raise_for_service_error
from app.core.db import get_db_session
from app.domain.principal import Principal
from app.schemas.conversation import ConversationResponse
from app.schemas.expert import (
    AssignmentActionResponse,
    ExpertAssignmentResponse,
    ExpertProfileResponse,
    ExpertQueueResponse,
    UpdateExpertProfileRequest,
)
from app.services.assignment_coordinator import AssignmentCoordinator, AssignmentResult
from app.services.expert_profile_service import ExpertProfileService
from app.services.expert_queue import ExpertQueue, ExpertQueueProjection

router = APIRouter()


async def get_assignment_coordinator(
    session: AsyncSession = Depends(get_db_session),
) -> AssignmentCoordinator:
    return AssignmentCoordinator(session=session)


async def get_expert_queue(
    session: AsyncSession = Depends(get_db_session),
) -> ExpertQueueProjection:
    return ExpertQueueProjection(session=session)


async def get_expert_profile_service(
    session: AsyncSession = Depends(get_db_session),
) -> ExpertProfileService:
    return ExpertProfileService(session=session)


def _to_queue_response(queue: ExpertQueue) -> ExpertQueueResponse:
    return ExpertQueueResponse(
        waiting_conversations=[
            ConversationResponse.model_validate(conversation)
            for conversation in queue.waiting_conversations
        ],
        assigned_conversations=[
            ConversationResponse.model_validate(conversation)
            for conversation in queue.assigned_conversations
        ],
    )


def _to_action_response(result: AssignmentResult) -> AssignmentActionResponse:
    return AssignmentActionResponse(
        success=True,
        conversation=ConversationResponse.model_validate(result.conversation),
        assignment=ExpertAssignmentResponse.model_validate(result.assignment),
    )


@router.get("/queue", response_model=ExpertQueueResponse)
async def get_queue(
    projection: ExpertQueueProjection = Depends(get_expert_queue),
    principal: Principal = Depends(get_principal),
) -> ExpertQueueResponse:
    try:
        queue = await projection.queue(principal)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return _to_queue_response(queue)


@router.post(
    "/conversations/{conversation_id}/claim",
    response_model=AssignmentActionResponse,
    response_model_exclude_none=True,
)
async def claim_conversation(
    conversation_id: UUID,
    coordinator: AssignmentCoordinator = Depends(get_assignment_coordinator),
    principal: Principal = Depends(get_principal),
) -> AssignmentActionResponse:
    try:
        result = await coordinator.claim(principal, conversation_id)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return _to_action_response(result)


@router.post(
    "/conversations/{conversation_id}/unclaim",
    response_model=AssignmentActionResponse,
    response_model_exclude_none=True,
)
async def unclaim_conversation(
    conversation_id: UUID,
    coordinator: AssignmentCoordinator = Depends(get_assignment_coordinator),
    principal: Principal = Depends(get_principal),
) -> AssignmentActionResponse:
    try:
        result = await coordinator.unclaim(principal, conversation_id)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return _to_action_response(result)


@router.post(
    "/conversations/{conversation_id}/resolve",
    response_model=AssignmentActionResponse,
    response_model_exclude_none=True,
)
async def resolve_conversation(
    conversation_id: UUID,
    coordinator: AssignmentCoordinator = Depends(get_assignment_coordinator),
    principal: Principal = Depends(get_principal),
) -> AssignmentActionResponse:
    try:
        result = await coordinator.resolve(principal, conversation_id)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return _to_action_response(result)


@router.get(
    "/conversations/{conversation_id}/assignments",
    response_model=list[ExpertAssignmentResponse],
    response_model_exclude_none=True,
)
async def get_conversation_assignments(
    conversation_id: UUID,
    coordinator: AssignmentCoordinator = Depends(get_assignment_coordinator),
    principal: Principal = Depends(get_principal),
) -> list[ExpertAssignmentResponse]:
    try:
        entries = await coordinator.history(principal, conversation_id)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return [ExpertAssignmentResponse.model_validate(entry) for entry in entries]


@router.get(
    "/assignments/history",
    response_model=list[ExpertAssignmentResponse],
    response_model_exclude_none=True,
)
async def get_assignment_history(
    coordinator: AssignmentCoordinator = Depends(get_assignment_coordinator),
    principal: Principal = Depends(get_principal),
) -> list[ExpertAssignmentResponse]:
    try:
        entries = await coordinator.expert_history(principal)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return [ExpertAssignmentResponse.model_validate(entry) for entry in entries]


@router.get("/profile", response_model=ExpertProfileResponse)
async def get_profile(
    service: ExpertProfileService = Depends(get_expert_profile_service),
    principal: Principal = Depends(get_principal),
) -> ExpertProfileResponse:
    try:
        profile = await service.get_profile(principal)
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return ExpertProfileResponse.model_validate(profile)


@router.put("/profile", response_model=ExpertProfileResponse)
async def update_profile(
    payload: UpdateExpertProfileRequest,
    service: ExpertProfileService = Depends(get_expert_profile_service),
    principal: Principal = Depends(get_principal),
) -> ExpertProfileResponse:
    links = (
        [str(link) for link in payload.knowledge_base_links]
        if payload.knowledge_base_links is not None
        else None
    )
    try:
        profile = await service.update_profile(
            principal,
            bio=payload.bio,
            knowledge_base_links=links,
        )
    except SERVICE_ERRORS as exc:
        raise_for_service_error(exc)
    return ExpertProfileResponse.model_validate(profile)
