"""
Pydantic models for the gateway REST API
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    """Accepts the camelCase field names the MCP tools use, as well as snake_case."""
    model_config = ConfigDict(populate_by_name=True)


class GuestSessionRequest(_CamelModel):
    """Request for a guest session"""
    app_name: str | None = Field(None, alias="appName", description="Client application name")
    client_version: str | None = Field(None, alias="clientVersion", description="Client version")
    captcha_token: str | None = Field(None, alias="captchaToken", description="Captcha token")
    device_id: str | None = Field(None, alias="deviceId", description="Device id (ignored on Web)")


class AuthenticatedSessionRequest(_CamelModel):
    """Request for a session backed by a customer identity token"""
    jwt: str = Field(..., description="Customer identity JWT")
    subject: str = Field(..., description="Subject the JWT identifies")
    device_id: str | None = Field(None, alias="deviceId")
    app_name: str | None = Field(None, alias="appName")
    client_version: str | None = Field(None, alias="clientVersion")


class CreateConversationRequest(_CamelModel):
    """Request to open a conversation"""
    routing_attributes: dict[str, Any] | None = Field(None, alias="routingAttributes")
    conversation_id: str | None = Field(None, alias="conversationId")
    capabilities: list[str] | None = None
    prechat_details: list[dict[str, Any]] | None = Field(None, alias="prechatDetails")


class SendMessageRequest(_CamelModel):
    """Request to send a user message"""
    text: str = Field(..., description="Message text")
    message_type: str | None = Field(None, alias="messageType")


class TypingIndicatorRequest(_CamelModel):
    """Request to start or stop the typing indicator"""
    is_typing: bool = Field(True, alias="isTyping")
