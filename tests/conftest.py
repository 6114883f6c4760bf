"""Pytest configuration and shared fixtures."""

from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_gateway, set_gateway
from api.main import app
from gateway import (
    ChatGateway,
    ConversationCloser,
    EntryClassifier,
    EntryPoller,
    InMemorySessionStore,
    NoiseFilterConfig,
    RemoteChatClient,
    RemoteClientConfig,
)


class FakeClock:
    """Manually advanced monotonic clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_entry(
    role: str,
    text: str,
    timestamp: int,
    *,
    sender_name: str | None = None,
    entry_type: str = "Message",
    message_reason: str | None = None,
    entry_id: str | None = None,
) -> dict[str, Any]:
    """Build a raw conversation entry in the remote wire format."""
    payload: dict[str, Any] = {"entryType": entry_type}
    if entry_type == "Message":
        payload["abstractMessage"] = {
            "messageType": "StaticContentMessage",
            "staticContent": {"formatType": "Text", "text": text},
        }
        if message_reason:
            payload["messageReason"] = message_reason
    return {
        "identifier": entry_id or f"{role}-{timestamp}",
        "entryType": entry_type,
        "sender": {"role": role},
        "senderDisplayName": sender_name or role,
        "entryPayload": payload,
        "clientTimestamp": timestamp,
    }


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote_config() -> RemoteClientConfig:
    return RemoteClientConfig(
        scrt_url="example.my.salesforce-scrt.com",
        org_id="00D000000000001",
        es_developer_name="Test_Deployment",
    )


@pytest.fixture
def noise_filters() -> NoiseFilterConfig:
    return NoiseFilterConfig.from_yaml()


@pytest.fixture
def classifier(noise_filters: NoiseFilterConfig) -> EntryClassifier:
    return EntryClassifier(noise_filters)


@pytest.fixture
def mock_remote_client(remote_config: RemoteClientConfig) -> MagicMock:
    """RemoteChatClient double with every remote call as an AsyncMock."""
    mock = MagicMock(spec=RemoteChatClient)
    mock.config = remote_config
    mock.generate_guest_access_token = AsyncMock(
        return_value={"accessToken": "guest-token-abcdefghijklmnopqrstuvwxyz"}
    )
    mock.generate_authenticated_access_token = AsyncMock(
        return_value={"accessToken": "auth-token-abcdefghijklmnopqrstuvwxyz"}
    )
    mock.generate_continuation_token = AsyncMock(
        return_value={"continuationToken": "continuation-123"}
    )
    mock.revoke_token = AsyncMock(return_value=None)
    mock.create_conversation = AsyncMock(return_value={})
    mock.list_conversations = AsyncMock(return_value={"conversations": []})
    mock.get_routing_status = AsyncMock(return_value={"routingStatus": "Routed"})
    mock.get_transcript = AsyncMock(return_value={"conversationEntries": []})
    mock.send_message = AsyncMock(return_value={})
    mock.send_typing_indicator = AsyncMock(return_value=None)
    mock.send_delivery_acknowledgements = AsyncMock(return_value=None)
    mock.list_entries = AsyncMock(return_value={"conversationEntries": []})
    mock.post_entry = AsyncMock(return_value={})
    mock.end_conversation_session = AsyncMock(return_value=None)
    mock.delete_conversation = AsyncMock(return_value=None)
    mock.end_messaging_session = AsyncMock(return_value=None)
    mock.aclose = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def gateway(
    mock_remote_client: MagicMock, classifier: EntryClassifier, fake_clock: FakeClock
) -> ChatGateway:
    """ChatGateway over a mocked remote client and a fake clock."""
    return ChatGateway(
        client=mock_remote_client,
        sessions=InMemorySessionStore(ttl_seconds=3600.0, clock=fake_clock),
        classifier=classifier,
        poller=EntryPoller(
            mock_remote_client,
            classifier,
            timeout=2.0,
            interval=0.5,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        ),
        closer=ConversationCloser(mock_remote_client),
        public_url="http://gateway.test",
    )


@pytest.fixture
def mock_transport_client(
    remote_config: RemoteClientConfig,
) -> Callable[[Callable[[httpx.Request], httpx.Response]], RemoteChatClient]:
    """Build a RemoteChatClient whose HTTP calls go to an in-process handler."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> RemoteChatClient:
        http_client = httpx.AsyncClient(
            base_url=remote_config.base_url, transport=httpx.MockTransport(handler)
        )
        return RemoteChatClient(remote_config, http_client=http_client)

    return factory


@pytest.fixture
def client(gateway: ChatGateway) -> Generator[TestClient, None, None]:
    """Test client for the FastAPI app, wired to the mocked gateway."""
    app.dependency_overrides[get_gateway] = lambda: gateway
    set_gateway(gateway)
    yield TestClient(app)
    app.dependency_overrides.clear()
    set_gateway(None)
