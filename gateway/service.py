import logging
import time
import uuid
from typing import TYPE_CHECKING, Any

from .classifier import EntryClassifier
from .closer import ConversationCloser
from .exceptions import InvalidSessionError, MessageValidationError, RemoteServiceError
from .noise import NoiseFilterConfig
from .poller import EntryPoller
from .remote_client import RemoteChatClient, RemoteClientConfig
from .sessions import InMemorySessionStore, Session, SessionStore, new_session_id

if TYPE_CHECKING:
    from api.config.settings import Settings

MAX_MESSAGE_LENGTH = 10000
DEFAULT_MESSAGE_TYPE = "StaticContentMessage"


def validate_message(text: str | None) -> str:
    """Return the message text, or raise MessageValidationError if it cannot be sent."""
    if not text or not text.strip():
        msg = "Message text must not be empty"
        raise MessageValidationError(msg, error_code="MESSAGE_EMPTY")
    if len(text) > MAX_MESSAGE_LENGTH:
        msg = f"Message text exceeds {MAX_MESSAGE_LENGTH} characters"
        raise MessageValidationError(
            msg, error_code="MESSAGE_TOO_LONG", context={"length": len(text)}
        )
    return text


def _positive_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value > 0 else None


class ChatGateway:
    """Tool operations over the remote messaging service.

    Resolves the caller's opaque session id to its credential, forwards the
    call through the remote client, and shapes the result for the calling
    agent. Credentials never appear in a returned payload.
    """

    def __init__(
        self,
        client: RemoteChatClient,
        sessions: SessionStore,
        classifier: EntryClassifier,
        poller: EntryPoller,
        closer: ConversationCloser,
        *,
        public_url: str = "",
    ) -> None:
        self.client = client
        self.sessions = sessions
        self.classifier = classifier
        self.poller = poller
        self.closer = closer
        self.public_url = public_url
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ChatGateway":
        """Build the full object graph; raises ConfigurationError when settings are incomplete."""
        client = RemoteChatClient(
            RemoteClientConfig(
                scrt_url=settings.scrt_url or "",
                org_id=settings.org_id or "",
                es_developer_name=settings.es_developer_name or "",
                capabilities_version=settings.capabilities_version,
                platform=settings.platform,
                timeout=settings.http_timeout_seconds,
            )
        )
        classifier = EntryClassifier(NoiseFilterConfig.from_yaml(settings.noise_filter_file))
        return cls(
            client=client,
            sessions=InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds),
            classifier=classifier,
            poller=EntryPoller(
                client,
                classifier,
                timeout=settings.poll_timeout_seconds,
                interval=settings.poll_interval_seconds,
            ),
            closer=ConversationCloser(client, close_message=settings.close_message),
            public_url=settings.public_url,
        )

    # === Sessions ===
    def _resolve(self, session_id: str) -> Session:
        session = self.sessions.get(session_id) if session_id else None
        if session is None:
            msg = "Invalid or expired session. Call generate_guest_access_token to start a new one."
            raise InvalidSessionError(
                msg, error_code="INVALID_SESSION", context={"session_id": session_id}
            )
        return session

    def _open_session(self, token_response: dict[str, Any]) -> dict[str, Any]:
        access_token = token_response.get("accessToken")
        if not isinstance(access_token, str) or not access_token:
            msg = "Remote service did not return an access token"
            raise RemoteServiceError(msg, error_code="ACCESS_TOKEN_MISSING")

        session = Session(session_id=new_session_id(), access_token=access_token)
        ttl = self.sessions.set(
            session, ttl_seconds=_positive_number(token_response.get("expiresIn"))
        )
        self.logger.info("Opened session %s", session.session_id)
        return {"sessionId": session.session_id, "expiresIn": int(ttl)}

    def _device_id(self, device_id: str | None) -> str | None:
        # The Web platform rejects token requests that carry a device id.
        if self.client.config.platform.lower() == "web":
            return None
        return device_id or str(uuid.uuid4())

    @staticmethod
    def _client_context(app_name: str | None, client_version: str | None) -> dict[str, str] | None:
        context = {
            key: value
            for key, value in (("appName", app_name), ("clientVersion", client_version))
            if value
        }
        return context or None

    async def issue_guest_session(
        self,
        app_name: str | None = None,
        client_version: str | None = None,
        captcha_token: str | None = None,
        device_id: str | None = None,
    ) -> dict[str, Any]:
        response = await self.client.generate_guest_access_token(
            device_id=self._device_id(device_id),
            context=self._client_context(app_name, client_version),
            captcha_token=captcha_token,
        )
        return self._open_session(response)

    async def issue_authenticated_session(
        self,
        jwt: str,
        subject: str,
        device_id: str | None = None,
        app_name: str | None = None,
        client_version: str | None = None,
    ) -> dict[str, Any]:
        response = await self.client.generate_authenticated_access_token(
            jwt,
            subject,
            device_id=self._device_id(device_id),
            context=self._client_context(app_name, client_version),
        )
        return self._open_session(response)

    async def generate_continuation_token(self, session_id: str) -> dict[str, Any]:
        session = self._resolve(session_id)
        response = await self.client.generate_continuation_token(session.access_token)
        return {"continuationToken": response.get("continuationToken") or response.get("accessToken")}

    async def revoke_token(self, session_id: str) -> dict[str, Any]:
        session = self._resolve(session_id)
        try:
            await self.client.revoke_token(session.access_token)
        finally:
            self.sessions.delete(session_id)
        return {"success": True, "message": "Token revoked"}

    # === Conversations ===
    async def create_conversation(
        self,
        session_id: str,
        routing_attributes: dict[str, Any] | None = None,
        conversation_id: str | None = None,
        capabilities: list[str] | None = None,
        prechat_details: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        session = self._resolve(session_id)
        conversation_id = conversation_id or str(uuid.uuid4())
        response = await self.client.create_conversation(
            session.access_token,
            conversation_id,
            routing_attributes=routing_attributes,
            capabilities=capabilities,
            prechat_details=prechat_details,
        )
        session.conversation_id = conversation_id
        self.logger.info("Created conversation %s for session %s", conversation_id, session_id)
        return {
            "conversationId": conversation_id,
            "status": response.get("status") or "Created",
            "nextAction": (
                "Send the user's message with send_message, then call "
                "list_conversation_entries to wait for the reply."
            ),
        }

    async def send_message(
        self,
        session_id: str,
        conversation_id: str,
        text: str,
        message_type: str | None = None,
        client_timestamp: int | None = None,
    ) -> dict[str, Any]:
        session = self._resolve(session_id)
        validate_message(text)
        message_id = str(uuid.uuid4())
        response = await self.client.send_message(
            session.access_token,
            conversation_id,
            text,
            message_id=message_id,
            message_type=message_type or DEFAULT_MESSAGE_TYPE,
            client_timestamp=client_timestamp,
        )
        timestamp = response.get("timestamp") or client_timestamp or int(time.time() * 1000)
        return {
            "messageId": response.get("messageId") or message_id,
            "timestamp": timestamp,
            "success": True,
            "nextAction": (
                "Call list_conversation_entries to wait for the reply before answering the user."
            ),
        }

    async def list_entries(
        self,
        session_id: str,
        conversation_id: str,
        continuation_token: str | None = None,
        polling_enabled: bool = True,
    ) -> dict[str, Any]:
        session = self._resolve(session_id)
        result = await self.poller.await_response(
            session.access_token,
            conversation_id,
            continuation_token,
            polling_enabled=polling_enabled,
            live_agent_active=session.has_live_agent(conversation_id),
        )
        if result.role_info.is_live_agent:
            session.mark_live_agent(conversation_id)
        return {"conversationId": conversation_id, **result.to_dict()}

    async def get_routing_status(self, session_id: str, conversation_id: str) -> dict[str, Any]:
        session = self._resolve(session_id)
        response = await self.client.get_routing_status(session.access_token, conversation_id)
        status: dict[str, Any] = {
            "conversationId": conversation_id,
            "status": response.get("routingStatus") or response.get("status") or "Unknown",
        }
        wait_time = response.get("estimatedWaitTime")
        if wait_time is not None:
            status["estimatedWaitTime"] = wait_time
        return status

    async def close_conversation(self, session_id: str, conversation_id: str) -> dict[str, Any]:
        session = self.sessions.get(session_id) if session_id else None
        if session is None:
            self.logger.warning(
                "Close requested for conversation %s without a valid session", conversation_id
            )
            return {
                "success": True,
                "conversationId": conversation_id,
                "closedVia": None,
                "message": "Session unknown; nothing to close on the remote service",
            }

        outcome = await self.closer.close(session.access_token, conversation_id)
        if session.conversation_id == conversation_id:
            session.conversation_id = None
        session.live_agent_conversations.discard(conversation_id)
        return outcome.to_dict()

    async def show_live_agent(
        self, session_id: str, conversation_id: str, agent_name: str
    ) -> dict[str, Any]:
        session = self._resolve(session_id)
        result = await self.poller.await_response(
            session.access_token,
            conversation_id,
            polling_enabled=False,
            live_agent_active=True,
        )
        session.mark_live_agent(conversation_id)
        return {
            "type": "live_agent_chat",
            "conversationId": conversation_id,
            "sessionId": session_id,
            "agentName": agent_name,
            "serverUrl": self.public_url,
            "transcript": [entry.to_dict() for entry in result.transcript],
            "continuationToken": result.continuation_token,
            "conversationEnded": result.role_info.conversation_ended,
        }

    # === Auxiliary calls ===
    async def send_typing_indicator(
        self, session_id: str, conversation_id: str, is_typing: bool
    ) -> dict[str, Any]:
        session = self._resolve(session_id)
        await self.client.send_typing_indicator(session.access_token, conversation_id, is_typing)
        return {"success": True, "message": "Typing indicator sent"}

    async def send_delivery_acknowledgements(
        self, session_id: str, conversation_id: str, acknowledgements: list[dict[str, Any]]
    ) -> dict[str, Any]:
        session = self._resolve(session_id)
        await self.client.send_delivery_acknowledgements(
            session.access_token, conversation_id, acknowledgements
        )
        return {"success": True, "message": "Acknowledgements sent"}

    async def get_transcript(self, session_id: str, conversation_id: str) -> dict[str, Any]:
        session = self._resolve(session_id)
        return await self.client.get_transcript(session.access_token, conversation_id)

    async def list_conversations(self, session_id: str) -> dict[str, Any]:
        session = self._resolve(session_id)
        return await self.client.list_conversations(session.access_token)

    async def end_messaging_session(self, session_id: str) -> dict[str, Any]:
        session = self._resolve(session_id)
        await self.client.end_messaging_session(session.access_token)
        session.conversation_id = None
        session.live_agent_conversations.clear()
        return {"success": True, "message": "Messaging session ended"}

    # === Lifecycle ===
    def get_status(self) -> dict[str, Any]:
        return {
            "initialized": True,
            "active_sessions": len(self.sessions),
            "remote_base_url": self.client.config.base_url,
            "platform": self.client.config.platform,
        }

    async def cleanup(self) -> None:
        await self.client.aclose()
        self.logger.info("Remote client closed")
