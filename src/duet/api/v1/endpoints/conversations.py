# src/duet/api/v1/endpoints/conversations.py
"""Conversation and message endpoints for the Duet API."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from duet.api.v1.dependencies import CurrentIdentityDep, LifecycleDep
from duet.schemas.conversation import (
    ConversationListItem,
    ConversationListResponse,
    ConversationResponse,
    ConversationStart,
    DeleteConversationResponse,
    UnreadCountResponse,
)
from duet.schemas.error import ErrorResponse
from duet.schemas.message import MessageCreate, MessageResponse

ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
}

router = APIRouter(prefix="/conversations", tags=["conversations"], responses=ERROR_RESPONSES)


@router.post(
    "",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_200_OK: {"model": ConversationResponse}},
)
async def start_conversation(
    payload: ConversationStart,
    identity: CurrentIdentityDep,
    lifecycle: LifecycleDep,
    response: Response,
) -> ConversationResponse:
    """Start a conversation, or return the existing one for this pair.

    Answers 201 when a conversation was created and 200 when an existing
    one was returned.
    """
    result = lifecycle.start_conversation(identity, payload.receiver_id)
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return ConversationResponse.model_validate(result.view)


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    identity: CurrentIdentityDep,
    lifecycle: LifecycleDep,
) -> ConversationListResponse:
    """List the caller's conversations, most recently active first."""
    listing = lifecycle.list_conversations(identity)
    return ConversationListResponse(
        conversations=[ConversationListItem.model_validate(view) for view in listing.conversations],
        total_unread=listing.total_unread,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    identity: CurrentIdentityDep,
    lifecycle: LifecycleDep,
) -> UnreadCountResponse:
    """Return how many messages addressed to the caller are unread."""
    return UnreadCountResponse(count=lifecycle.unread_count(identity))


@router.get("/{conversation_id}", response_model=ConversationListItem)
async def get_conversation(
    conversation_id: str,
    identity: CurrentIdentityDep,
    lifecycle: LifecycleDep,
) -> ConversationListItem:
    """Return one conversation with the caller's unread count."""
    view = lifecycle.show_conversation(identity, conversation_id)
    return ConversationListItem.model_validate(view)


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: str,
    identity: CurrentIdentityDep,
    lifecycle: LifecycleDep,
) -> list[MessageResponse]:
    """Return messages in chronological order; marks the caller's unread ones as read."""
    messages = lifecycle.list_messages(identity, conversation_id)
    return [MessageResponse.model_validate(message) for message in messages]


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: str,
    payload: MessageCreate,
    identity: CurrentIdentityDep,
    lifecycle: LifecycleDep,
) -> MessageResponse:
    """Send a text message to the other participant."""
    message = lifecycle.send_message(identity, conversation_id, payload.text)
    return MessageResponse.model_validate(message)


@router.delete("/{conversation_id}", response_model=DeleteConversationResponse)
async def delete_conversation(
    conversation_id: str,
    identity: CurrentIdentityDep,
    lifecycle: LifecycleDep,
) -> DeleteConversationResponse:
    """Delete a conversation together with all of its messages."""
    result = lifecycle.delete_conversation(identity, conversation_id)
    return DeleteConversationResponse(
        conversation_id=result.conversation_id,
        messages_deleted=result.messages_deleted,
    )
