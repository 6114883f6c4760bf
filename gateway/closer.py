import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from .classifier import EntryType, SenderRole
from .exceptions import RemoteServiceError
from .remote_client import RemoteChatClient

DEFAULT_CLOSE_MESSAGE = "Chat ended by user."


@dataclass
class CloseOutcome:
    """Result of a best-effort close; ``success`` is always True by policy."""

    conversation_id: str
    closed_via: str | None = None
    attempted: list[str] = field(default_factory=list)
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "conversationId": self.conversation_id,
            "closedVia": self.closed_via,
            "message": (
                f"Conversation closed ({self.closed_via})"
                if self.closed_via
                else "Close requested; the remote service did not confirm it"
            ),
        }


class ConversationCloser:
    """Ends a conversation by trying each termination method in order.

    The first method that succeeds stops the chain. Failures are logged and the
    next method is tried; when every method fails the close is still reported
    as successful, since the caller has no meaningful retry.
    """

    def __init__(
        self, client: RemoteChatClient, *, close_message: str = DEFAULT_CLOSE_MESSAGE
    ) -> None:
        self.client = client
        self.close_message = close_message
        self.logger = logging.getLogger(__name__)

    def _methods(
        self, access_token: str, conversation_id: str
    ) -> list[tuple[str, Callable[[], Awaitable[Any]]]]:
        client = self.client
        return [
            (
                "participant_left",
                lambda: client.post_entry(
                    access_token,
                    conversation_id,
                    EntryType.PARTICIPANT_CHANGED.value,
                    {
                        "entries": [
                            {
                                "operation": "remove",
                                "participant": {"role": SenderRole.END_USER.value},
                            }
                        ]
                    },
                ),
            ),
            (
                "routing_end",
                lambda: client.post_entry(
                    access_token,
                    conversation_id,
                    EntryType.ROUTING_RESULT.value,
                    {"routingType": "EndConversation"},
                ),
            ),
            (
                "end_message",
                lambda: client.send_message(
                    access_token,
                    conversation_id,
                    self.close_message,
                    message_id=str(uuid.uuid4()),
                ),
            ),
            (
                "end_session",
                lambda: client.end_conversation_session(access_token, conversation_id),
            ),
            (
                "delete_conversation",
                lambda: client.delete_conversation(access_token, conversation_id),
            ),
        ]

    async def close(self, access_token: str, conversation_id: str) -> CloseOutcome:
        outcome = CloseOutcome(conversation_id=conversation_id)

        for name, attempt in self._methods(access_token, conversation_id):
            outcome.attempted.append(name)
            try:
                await attempt()
            except RemoteServiceError as e:
                self.logger.warning(
                    "Close method %s failed for conversation %s: %s",
                    name,
                    conversation_id,
                    e.message,
                )
                continue
            outcome.closed_via = name
            self.logger.info("Conversation %s closed via %s", conversation_id, name)
            return outcome

        self.logger.warning(
            "All close methods failed for conversation %s; reporting success",
            conversation_id,
        )
        return outcome
