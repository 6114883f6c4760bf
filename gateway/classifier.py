"""Conversation entry normalization and classification.

The remote service's entry shapes vary across deployments and API revisions, so
every field is read defensively: a missing sender, role, payload or timestamp
never raises, it just degrades the entry to ``Unknown``/oldest.
"""

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .noise import NoiseFilterConfig


class EntryType(str, Enum):
    MESSAGE = "Message"
    PARTICIPANT_CHANGED = "ParticipantChanged"
    ROUTING_RESULT = "RoutingResult"
    CONVERSATION_CLOSE = "ConversationClose"


class SenderRole(str, Enum):
    END_USER = "EndUser"
    CHATBOT = "Chatbot"
    AGENT = "Agent"
    UNKNOWN = "Unknown"


RESPONSE_ROLES = frozenset({SenderRole.CHATBOT, SenderRole.AGENT})
TRANSCRIPT_ROLES = frozenset({SenderRole.END_USER, SenderRole.CHATBOT, SenderRole.AGENT})

# "System" and anything unrecognised collapse to UNKNOWN.
_ROLE_LOOKUP = {
    "enduser": SenderRole.END_USER,
    "chatbot": SenderRole.CHATBOT,
    "agent": SenderRole.AGENT,
}

_TIMESTAMP_FIELDS = (
    "clientTimestamp",
    "transcriptedTimestamp",
    "serverReceivedTimestamp",
    "timestamp",
)

_LEAVE_OPERATIONS = frozenset({"remove", "removed", "left", "leave"})


def _as_mapping(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, str) and value.strip():
        try:
            decoded = json.loads(value)
        except ValueError:
            return {}
        return dict(decoded) if isinstance(decoded, Mapping) else {}
    return {}


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_timestamp(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return 0
    return 0


def parse_role(value: Any) -> SenderRole:
    """Map a raw sender role to a ``SenderRole``; empty, missing and System become UNKNOWN."""
    return _ROLE_LOOKUP.get(_as_text(value).strip().lower(), SenderRole.UNKNOWN)


@dataclass(frozen=True)
class ConversationEntry:
    """Normalized, read-only view of one raw conversation entry."""

    entry_id: str
    entry_type: str
    role: SenderRole
    sender_name: str
    text: str
    message_reason: str
    timestamp: int
    payload: dict[str, Any] = field(default_factory=dict, compare=False)
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_raw(cls, raw: Any) -> "ConversationEntry":
        data = _as_mapping(raw)
        payload = _as_mapping(data.get("entryPayload"))
        sender = _as_mapping(data.get("sender"))
        message = _as_mapping(payload.get("abstractMessage") or payload.get("message"))
        static_content = _as_mapping(message.get("staticContent"))

        text = (
            _as_text(static_content.get("text"))
            or _as_text(message.get("text"))
            or _as_text(data.get("text"))
            or _as_text(data.get("messageText"))
        )
        message_reason = (
            _as_text(message.get("messageReason"))
            or _as_text(payload.get("messageReason"))
            or _as_text(data.get("messageReason"))
        )
        timestamp = 0
        for name in _TIMESTAMP_FIELDS:
            timestamp = _as_timestamp(data.get(name))
            if timestamp:
                break

        return cls(
            entry_id=_as_text(data.get("identifier")) or _as_text(data.get("id")),
            entry_type=_as_text(data.get("entryType")) or _as_text(payload.get("entryType")),
            role=parse_role(sender.get("role") or data.get("senderRole")),
            sender_name=_as_text(data.get("senderDisplayName")) or _as_text(sender.get("displayName")),
            text=text,
            message_reason=message_reason,
            timestamp=timestamp,
            payload=payload,
            raw=data,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.entry_id,
            "entryType": self.entry_type,
            "role": self.role.value,
            "senderName": self.sender_name,
            "text": self.text,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Classification:
    is_message: bool
    role: SenderRole
    is_noise: bool

    @property
    def is_qualifying_response(self) -> bool:
        return self.is_message and self.role in RESPONSE_ROLES and not self.is_noise


def newest_first(entries: Iterable[ConversationEntry]) -> list[ConversationEntry]:
    """Sort by descending timestamp; entries without a timestamp (0) end up last."""
    return sorted(entries, key=lambda entry: entry.timestamp, reverse=True)


def oldest_first(entries: Iterable[ConversationEntry]) -> list[ConversationEntry]:
    return sorted(entries, key=lambda entry: entry.timestamp)


class EntryClassifier:
    """Classifies entries by kind, sender role and noise status.

    Stateless apart from the injected noise table, so it is safe to share
    between concurrent poll loops.
    """

    def __init__(self, noise_filters: NoiseFilterConfig) -> None:
        self.noise_filters = noise_filters

    def classify(self, entry: ConversationEntry) -> Classification:
        return Classification(
            is_message=entry.entry_type == EntryType.MESSAGE.value,
            role=entry.role,
            is_noise=self.is_noise(entry),
        )

    def is_noise(self, entry: ConversationEntry) -> bool:
        return (
            self.noise_filters.sender_is_automated(entry.sender_name)
            or self.noise_filters.reason_is_automated(entry.message_reason)
            or self.noise_filters.text_is_boilerplate(entry.text)
        )

    def is_qualifying_response(self, entry: ConversationEntry) -> bool:
        return self.classify(entry).is_qualifying_response

    def _messages_from(
        self, entries: Iterable[ConversationEntry], roles: frozenset[SenderRole]
    ) -> list[ConversationEntry]:
        selected = []
        for entry in entries:
            result = self.classify(entry)
            if result.is_message and result.role in roles and not result.is_noise:
                selected.append(entry)
        return oldest_first(selected)

    def reply_entries(self, entries: Iterable[ConversationEntry]) -> list[ConversationEntry]:
        """Bot and agent messages the calling agent may recite, oldest first."""
        return self._messages_from(entries, RESPONSE_ROLES)

    def transcript_entries(self, entries: Iterable[ConversationEntry]) -> list[ConversationEntry]:
        """End-user, bot and agent messages for the live-chat surface, oldest first."""
        return self._messages_from(entries, TRANSCRIPT_ROLES)

    def latest_message(self, entries: Iterable[ConversationEntry]) -> ConversationEntry | None:
        """Most recent message across every sender role, noise included."""
        for entry in newest_first(entries):
            if self.classify(entry).is_message:
                return entry
        return None

    def conversation_ended(self, entries: Iterable[ConversationEntry]) -> bool:
        return any(self._signals_end(entry) for entry in entries)

    def _signals_end(self, entry: ConversationEntry) -> bool:
        if entry.entry_type == EntryType.CONVERSATION_CLOSE.value:
            return True
        if entry.entry_type == EntryType.ROUTING_RESULT.value:
            return _as_text(entry.payload.get("routingType")) == "EndConversation"
        if entry.entry_type == EntryType.PARTICIPANT_CHANGED.value:
            changes = entry.payload.get("entries")
            if not isinstance(changes, list):
                changes = [entry.payload]
            return any(_end_user_left(_as_mapping(change)) for change in changes)
        return False


def _end_user_left(change: dict[str, Any]) -> bool:
    operation = _as_text(change.get("operation")).strip().lower()
    participant = _as_mapping(change.get("participant"))
    role = parse_role(participant.get("role") or change.get("role"))
    return operation in _LEAVE_OPERATIONS and role is SenderRole.END_USER


def normalize_entries(raw_entries: Iterable[Any]) -> list[ConversationEntry]:
    return [ConversationEntry.from_raw(raw) for raw in raw_entries]
