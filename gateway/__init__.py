"""MIAW Chat Gateway Package.

Lets an AI agent run customer-service chats over a messaging-for-web REST API
without ever holding the remote credential. Every tool call carries an opaque
session id; the gateway resolves it, forwards the call, and tells the agent
what to do next (relay a bot reply verbatim, hand off to a live agent, keep
waiting, or stop because the conversation ended).

Main Components:
- ChatGateway: the tool operations, wiring everything below together
- RemoteChatClient: async client for the remote messaging API
- EntryClassifier: decides which entries are genuine replies and which are noise
- EntryPoller: polls the entry stream until a reply is ready or the deadline passes
- ConversationCloser: best-effort close across several termination methods
- SessionStore / InMemorySessionStore: session id to credential mapping with TTL

Quick Start:
    from api.config.settings import get_settings
    from gateway import ChatGateway

    gateway = ChatGateway.from_settings(get_settings())
    session = await gateway.issue_guest_session()
    conversation = await gateway.create_conversation(session["sessionId"])
    await gateway.send_message(session["sessionId"], conversation["conversationId"], "Hi")
    reply = await gateway.list_entries(session["sessionId"], conversation["conversationId"])
"""

from .classifier import ConversationEntry, EntryClassifier, EntryType, SenderRole
from .closer import CloseOutcome, ConversationCloser
from .exceptions import (
    ConfigurationError,
    ConfigurationLoadError,
    ConfigurationMissingError,
    ExternalServiceError,
    GatewayBaseError,
    InvalidSessionError,
    MessageError,
    MessageValidationError,
    RemoteServiceError,
    ResourceError,
    ResourceNotFoundError,
    SessionError,
    wrap_exception,
)
from .noise import NoiseFilterConfig
from .poller import EntryPoller, NextAction, PollResult, RoleInfo
from .remote_client import RemoteChatClient, RemoteClientConfig
from .service import ChatGateway
from .sessions import InMemorySessionStore, Session, SessionStore

__version__ = "1.0.0"

__all__ = [
    # Main classes
    "ChatGateway",
    "CloseOutcome",
    # Exception hierarchy
    "ConfigurationError",
    "ConfigurationLoadError",
    "ConfigurationMissingError",
    "ConversationCloser",
    "ConversationEntry",
    "EntryClassifier",
    "EntryPoller",
    "EntryType",
    "ExternalServiceError",
    "GatewayBaseError",
    "InMemorySessionStore",
    "InvalidSessionError",
    "MessageError",
    "MessageValidationError",
    "NextAction",
    "NoiseFilterConfig",
    "PollResult",
    "RemoteChatClient",
    "RemoteClientConfig",
    "RemoteServiceError",
    "ResourceError",
    "ResourceNotFoundError",
    "RoleInfo",
    "SenderRole",
    "Session",
    "SessionError",
    "SessionStore",
    "__version__",
    # Utility functions
    "wrap_exception",
]
