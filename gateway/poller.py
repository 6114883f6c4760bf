"""Response-readiness engine for the entry-listing operation.

Polls the remote entry stream until the most recent genuine message comes from
a bot or a human agent, the conversation ends, or the deadline passes.
"""

import asyncio
import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .classifier import (
    ConversationEntry,
    EntryClassifier,
    SenderRole,
    normalize_entries,
)
from .remote_client import RemoteChatClient

DEFAULT_POLL_TIMEOUT_SECONDS = 25.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.5


class NextAction(str, Enum):
    SHOW_LIVE_AGENT = "show_live_agent"
    RECITE_VERBATIM = "recite_verbatim"
    KEEP_POLLING = "keep_polling"
    CONVERSATION_ENDED = "conversation_ended"


@dataclass(frozen=True)
class RoleInfo:
    most_recent_sender_role: str
    most_recent_sender_name: str
    is_live_agent: bool
    conversation_ended: bool
    next_action: NextAction
    instruction: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "mostRecentSenderRole": self.most_recent_sender_role,
            "mostRecentSenderName": self.most_recent_sender_name,
            "isLiveAgent": self.is_live_agent,
            "conversationEnded": self.conversation_ended,
            "nextAction": self.next_action.value,
            "instruction": self.instruction,
        }


@dataclass
class PollResult:
    entries: list[ConversationEntry]
    raw_entries: list[dict[str, Any]]
    continuation_token: str | None
    role_info: RoleInfo
    polls: int
    timed_out: bool = False
    transcript: list[ConversationEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "rawEntries": self.raw_entries,
            "continuationToken": self.continuation_token,
            "roleInfo": self.role_info.to_dict(),
            "polls": self.polls,
            "timedOut": self.timed_out,
        }


def build_role_info(
    responder: ConversationEntry | None,
    *,
    conversation_ended: bool,
    live_agent: bool,
    polling: bool,
) -> RoleInfo:
    """Turn the readiness decision into the caller's next step.

    Precedence: conversation end, then live-agent hand-off, then recite, then poll again.
    """
    role = responder.role.value if responder else SenderRole.UNKNOWN.value
    name = responder.sender_name if responder else ""

    if conversation_ended:
        action = NextAction.CONVERSATION_ENDED
        instruction = (
            "The conversation has ended. Tell the user the chat is closed and do not "
            "send further messages in this conversation."
        )
    elif live_agent:
        action = NextAction.SHOW_LIVE_AGENT
        agent = name or "A live agent"
        instruction = (
            f"{agent} is handling this conversation. Call show_live_agent with this "
            "agentName to open the live chat, and do not narrate agent replies yourself."
        )
    elif responder is not None:
        action = NextAction.RECITE_VERBATIM
        instruction = (
            f"Relay the latest reply from {name or 'the assistant'} to the user word "
            "for word, without paraphrasing or adding to it."
        )
    else:
        action = NextAction.KEEP_POLLING
        if polling:
            instruction = (
                "No reply has arrived yet. Call list_conversation_entries again to keep waiting."
            )
        else:
            instruction = (
                "No new reply in this snapshot. Call list_conversation_entries with "
                "polling enabled to wait for one."
            )

    return RoleInfo(
        most_recent_sender_role=role,
        most_recent_sender_name=name,
        is_live_agent=live_agent,
        conversation_ended=conversation_ended,
        next_action=action,
        instruction=instruction,
    )


class EntryPoller:
    """Drives repeated entry listing against a deadline.

    Waits between polls with a non-blocking sleep clipped to the deadline, so a
    loop makes at most ``ceil(timeout / interval) + 1`` listing calls and
    returns no later than the deadline plus one call's latency. Transport
    errors are not retried; only "no qualifying reply yet" is.
    """

    def __init__(
        self,
        client: RemoteChatClient,
        classifier: EntryClassifier,
        *,
        timeout: float = DEFAULT_POLL_TIMEOUT_SECONDS,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if interval <= 0:
            msg = "Poll interval must be positive"
            raise ValueError(msg)
        self.client = client
        self.classifier = classifier
        self.timeout = timeout
        self.interval = interval
        self.max_polls = math.ceil(max(timeout, 0.0) / interval) + 1
        self._clock = clock
        self._sleep = sleep
        self.logger = logging.getLogger(__name__)

    async def await_response(
        self,
        access_token: str,
        conversation_id: str,
        continuation_token: str | None = None,
        *,
        polling_enabled: bool = True,
        live_agent_active: bool = False,
    ) -> PollResult:
        deadline = self._clock() + self.timeout
        polls = 0

        while True:
            page = await self.client.list_entries(
                access_token, conversation_id, continuation_token
            )
            polls += 1
            raw_entries = _raw_entries(page)
            entries = normalize_entries(raw_entries)

            latest = self.classifier.latest_message(entries)
            responder = (
                latest
                if latest is not None and self.classifier.is_qualifying_response(latest)
                else None
            )
            ended = self.classifier.conversation_ended(entries)

            if responder is not None or ended or not polling_enabled:
                break

            remaining = deadline - self._clock()
            if remaining <= 0 or polls >= self.max_polls:
                self.logger.info(
                    "No reply in conversation %s after %d polls", conversation_id, polls
                )
                break
            await self._sleep(min(self.interval, remaining))

        timed_out = polling_enabled and responder is None and not ended
        live_agent = live_agent_active or (
            responder is not None and responder.role is SenderRole.AGENT
        )
        role_info = build_role_info(
            responder,
            conversation_ended=ended,
            live_agent=live_agent,
            polling=polling_enabled,
        )
        self.logger.debug(
            "Conversation %s: %s after %d polls", conversation_id, role_info.next_action.value, polls
        )

        return PollResult(
            entries=self.classifier.reply_entries(entries),
            raw_entries=raw_entries,
            continuation_token=_continuation_token(page),
            role_info=role_info,
            polls=polls,
            timed_out=timed_out,
            transcript=self.classifier.transcript_entries(entries),
        )


def _raw_entries(page: dict[str, Any]) -> list[dict[str, Any]]:
    for key in ("conversationEntries", "entries", "items"):
        value = page.get(key)
        if isinstance(value, list):
            return [entry for entry in value if isinstance(entry, dict)]
    return []


def _continuation_token(page: dict[str, Any]) -> str | None:
    token = page.get("continuationToken")
    return token if isinstance(token, str) and token else None
