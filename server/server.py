"""MCP tool server for the chat gateway.

Run with: python -m server.server (from project root)
Or: fastmcp run server/server.py
"""

import json
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import Field

from api.config.logging import configure_structured_logging, get_logger, log_function_call
from api.config.settings import get_settings
from gateway import ChatGateway
from gateway.exceptions import GatewayBaseError, RemoteServiceError
from gateway.utils import mask_sensitive_keys

logger = get_logger(__name__)

# Create an MCP server
mcp = FastMCP(
    "miaw_chat_gateway",
    instructions=(
        "Gateway to a customer-service chat. Start with generate_guest_access_token, "
        "create a conversation, send the user's message, then call "
        "list_conversation_entries and follow roleInfo.nextAction exactly."
    ),
)

# Gateway instance, built on first use unless injected
_gateway: ChatGateway | None = None

SessionId = Annotated[str, Field(description="Opaque session id from generate_guest_access_token")]
ConversationId = Annotated[str, Field(description="Conversation id from create_conversation")]


def get_gateway() -> ChatGateway:
    global _gateway
    if _gateway is None:
        _gateway = ChatGateway.from_settings(get_settings())
    return _gateway


def set_gateway(gateway: ChatGateway | None) -> None:
    global _gateway
    _gateway = gateway


def error_payload(exc: GatewayBaseError) -> dict[str, Any]:
    """Structured error returned to the calling agent instead of a protocol error."""
    return {
        "error": True,
        "message": exc.message,
        "code": exc.error_code,
        "status": exc.status_code if isinstance(exc, RemoteServiceError) else None,
        "details": mask_sensitive_keys(exc.context),
        "errorType": type(exc).__name__,
    }


async def _respond(call: Callable[[ChatGateway], Awaitable[dict[str, Any]]]) -> str:
    try:
        result = await call(get_gateway())
    except GatewayBaseError as e:
        logger.warning("Tool call failed", error_type=type(e).__name__, error_code=e.error_code)
        return json.dumps(error_payload(e), indent=2)
    return json.dumps(result, indent=2)


# === Sessions ===
@mcp.tool()
@log_function_call("generate_guest_access_token")
async def generate_guest_access_token(
    app_name: str | None = None,
    client_version: str | None = None,
    captcha_token: str | None = None,
    device_id: str | None = None,
) -> str:
    """Start a guest chat session. Returns a sessionId to pass to every other tool; the access credential itself stays on the server."""
    return await _respond(
        lambda gateway: gateway.issue_guest_session(
            app_name=app_name,
            client_version=client_version,
            captcha_token=captcha_token,
            device_id=device_id,
        )
    )


@mcp.tool()
@log_function_call("generate_authenticated_access_token")
async def generate_authenticated_access_token(
    jwt: Annotated[str, Field(description="Customer identity JWT")],
    subject: Annotated[str, Field(description="Subject the JWT identifies")],
    device_id: str | None = None,
    app_name: str | None = None,
    client_version: str | None = None,
) -> str:
    """Start a session for a verified customer identity. Returns a sessionId."""
    return await _respond(
        lambda gateway: gateway.issue_authenticated_session(
            jwt,
            subject,
            device_id=device_id,
            app_name=app_name,
            client_version=client_version,
        )
    )


@mcp.tool()
async def generate_continuation_token(session_id: SessionId) -> str:
    """Get a continuation token that lets the session be resumed later."""
    return await _respond(lambda gateway: gateway.generate_continuation_token(session_id))


@mcp.tool()
async def revoke_token(session_id: SessionId) -> str:
    """Revoke the session's credential and forget the session."""
    return await _respond(lambda gateway: gateway.revoke_token(session_id))


@mcp.tool()
async def end_messaging_session(session_id: SessionId) -> str:
    """End the messaging session on the remote service."""
    return await _respond(lambda gateway: gateway.end_messaging_session(session_id))


# === Conversations ===
@mcp.tool()
@log_function_call("create_conversation")
async def create_conversation(
    session_id: SessionId,
    routing_attributes: dict[str, Any] | None = None,
    conversation_id: str | None = None,
    capabilities: list[str] | None = None,
    prechat_details: list[dict[str, Any]] | None = None,
) -> str:
    """Open a conversation for the session. A conversation id is generated when none is given."""
    return await _respond(
        lambda gateway: gateway.create_conversation(
            session_id,
            routing_attributes=routing_attributes,
            conversation_id=conversation_id,
            capabilities=capabilities,
            prechat_details=prechat_details,
        )
    )


@mcp.tool()
@log_function_call("send_message")
async def send_message(
    session_id: SessionId,
    conversation_id: ConversationId,
    text: Annotated[str, Field(description="The user's message, sent as typed")],
    message_type: str | None = None,
) -> str:
    """Send the user's message into the conversation. Afterwards call list_conversation_entries to wait for the reply."""
    return await _respond(
        lambda gateway: gateway.send_message(
            session_id, conversation_id, text, message_type=message_type
        )
    )


@mcp.tool()
@log_function_call("list_conversation_entries")
async def list_conversation_entries(
    session_id: SessionId,
    conversation_id: ConversationId,
    continuation_token: str | None = None,
    polling_enabled: Annotated[
        bool, Field(description="Wait for a bot or agent reply instead of returning a snapshot")
    ] = True,
) -> str:
    """List conversation entries, waiting up to the poll deadline for a bot or agent reply.

    Follow roleInfo.nextAction: recite_verbatim means relay the reply word for word,
    show_live_agent means call show_live_agent, keep_polling means call this tool again,
    conversation_ended means the chat is over.
    """
    return await _respond(
        lambda gateway: gateway.list_entries(
            session_id,
            conversation_id,
            continuation_token=continuation_token,
            polling_enabled=polling_enabled,
        )
    )


@mcp.tool()
async def get_conversation_routing_status(
    session_id: SessionId, conversation_id: ConversationId
) -> str:
    """Get the routing status of the conversation and the estimated wait, when known."""
    return await _respond(lambda gateway: gateway.get_routing_status(session_id, conversation_id))


@mcp.tool()
@log_function_call("close_conversation")
async def close_conversation(session_id: SessionId, conversation_id: ConversationId) -> str:
    """Close the conversation. Always reports success."""
    return await _respond(lambda gateway: gateway.close_conversation(session_id, conversation_id))


@mcp.tool()
@log_function_call("show_live_agent")
async def show_live_agent(
    session_id: SessionId,
    conversation_id: ConversationId,
    agent_name: Annotated[str, Field(description="mostRecentSenderName from roleInfo")],
) -> str:
    """Open the live-agent chat surface once a human agent has joined the conversation."""
    return await _respond(
        lambda gateway: gateway.show_live_agent(session_id, conversation_id, agent_name)
    )


@mcp.tool()
async def send_typing_indicator(
    session_id: SessionId, conversation_id: ConversationId, is_typing: bool = True
) -> str:
    """Start or stop the user's typing indicator."""
    return await _respond(
        lambda gateway: gateway.send_typing_indicator(session_id, conversation_id, is_typing)
    )


@mcp.tool()
async def send_delivery_acknowledgements(
    session_id: SessionId,
    conversation_id: ConversationId,
    acknowledgements: list[dict[str, Any]],
) -> str:
    """Acknowledge delivery or reading of conversation entries."""
    return await _respond(
        lambda gateway: gateway.send_delivery_acknowledgements(session_id, conversation_id, acknowledgements)
    )


@mcp.tool()
async def get_conversation_transcript(
    session_id: SessionId, conversation_id: ConversationId
) -> str:
    """Get the full conversation transcript from the remote service."""
    return await _respond(lambda gateway: gateway.get_transcript(session_id, conversation_id))


@mcp.tool()
async def list_conversations(session_id: SessionId) -> str:
    """List the session's conversations."""
    return await _respond(lambda gateway: gateway.list_conversations(session_id))


if __name__ == "__main__":
    settings = get_settings()
    configure_structured_logging(level=settings.log_level, format_json=settings.log_format_json)

    # Configuration errors are fatal at startup
    set_gateway(ChatGateway.from_settings(settings))
    logger.info("Starting MCP server", transport=settings.mcp_transport)

    if settings.mcp_transport == "stdio":
        mcp.run()
    else:
        mcp.run(transport=settings.mcp_transport, host=settings.mcp_host, port=settings.mcp_port)
