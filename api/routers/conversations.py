"""
Session and conversation endpoints
"""
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_gateway, get_optional_session_id, get_session_id
from api.models.chat_models import (
    AuthenticatedSessionRequest,
    CreateConversationRequest,
    GuestSessionRequest,
    SendMessageRequest,
    TypingIndicatorRequest,
)
from gateway import ChatGateway

router = APIRouter(prefix="/api")

GatewayDep = Annotated[ChatGateway, Depends(get_gateway)]
SessionDep = Annotated[str, Depends(get_session_id)]
OptionalSessionDep = Annotated[str, Depends(get_optional_session_id)]


# === Sessions ===
@router.post("/sessions/guest")
async def issue_guest_session(
    request: GuestSessionRequest, gateway: GatewayDep
) -> dict[str, Any]:
    """Exchange a guest identity for an opaque session id"""
    return await gateway.issue_guest_session(
        app_name=request.app_name,
        client_version=request.client_version,
        captcha_token=request.captcha_token,
        device_id=request.device_id,
    )


@router.post("/sessions/authenticated")
async def issue_authenticated_session(
    request: AuthenticatedSessionRequest, gateway: GatewayDep
) -> dict[str, Any]:
    return await gateway.issue_authenticated_session(
        request.jwt,
        request.subject,
        device_id=request.device_id,
        app_name=request.app_name,
        client_version=request.client_version,
    )


@router.delete("/sessions")
async def revoke_session(gateway: GatewayDep, session_id: SessionDep) -> dict[str, Any]:
    return await gateway.revoke_token(session_id)


# === Conversations ===
@router.post("/conversations")
async def create_conversation(
    request: CreateConversationRequest, gateway: GatewayDep, session_id: SessionDep
) -> dict[str, Any]:
    return await gateway.create_conversation(
        session_id,
        routing_attributes=request.routing_attributes,
        conversation_id=request.conversation_id,
        capabilities=request.capabilities,
        prechat_details=request.prechat_details,
    )


@router.post("/conversations/{conversation_id}/messages")
async def send_message(
    conversation_id: str,
    request: SendMessageRequest,
    gateway: GatewayDep,
    session_id: SessionDep,
) -> dict[str, Any]:
    return await gateway.send_message(
        session_id, conversation_id, request.text, message_type=request.message_type
    )


@router.get("/conversations/{conversation_id}/entries")
async def list_entries(
    conversation_id: str,
    gateway: GatewayDep,
    session_id: SessionDep,
    continuation_token: Annotated[str | None, Query(alias="continuationToken")] = None,
    polling_enabled: Annotated[bool, Query(alias="pollingEnabled")] = True,
) -> dict[str, Any]:
    """List entries, waiting for a bot or agent reply when polling is enabled"""
    return await gateway.list_entries(
        session_id,
        conversation_id,
        continuation_token=continuation_token,
        polling_enabled=polling_enabled,
    )


@router.get("/conversations/{conversation_id}/routing-status")
async def get_routing_status(
    conversation_id: str, gateway: GatewayDep, session_id: SessionDep
) -> dict[str, Any]:
    return await gateway.get_routing_status(session_id, conversation_id)


@router.post("/conversations/{conversation_id}/close")
async def close_conversation(
    conversation_id: str, gateway: GatewayDep, session_id: OptionalSessionDep
) -> dict[str, Any]:
    """Best-effort close; always reports success"""
    return await gateway.close_conversation(session_id, conversation_id)


@router.get("/conversations/{conversation_id}/live-agent")
async def show_live_agent(
    conversation_id: str,
    gateway: GatewayDep,
    session_id: SessionDep,
    agent_name: Annotated[str, Query(alias="agentName", min_length=1)],
) -> dict[str, Any]:
    return await gateway.show_live_agent(session_id, conversation_id, agent_name)


@router.post("/conversations/{conversation_id}/typing")
async def send_typing_indicator(
    conversation_id: str,
    request: TypingIndicatorRequest,
    gateway: GatewayDep,
    session_id: SessionDep,
) -> dict[str, Any]:
    return await gateway.send_typing_indicator(session_id, conversation_id, request.is_typing)


@router.get("/conversations/{conversation_id}/transcript")
async def get_transcript(
    conversation_id: str, gateway: GatewayDep, session_id: SessionDep
) -> dict[str, Any]:
    return await gateway.get_transcript(session_id, conversation_id)
