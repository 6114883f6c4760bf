import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

DEFAULT_SESSION_TTL_SECONDS = 3600.0


def new_session_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Session:
    """Server-side record binding an opaque session id to a remote credential.

    The credential stays inside the store and is left out of the repr.
    """

    session_id: str
    access_token: str = field(repr=False)
    conversation_id: str | None = None
    expires_at: float | None = None
    live_agent_conversations: set[str] = field(default_factory=set)

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def mark_live_agent(self, conversation_id: str) -> None:
        self.live_agent_conversations.add(conversation_id)

    def has_live_agent(self, conversation_id: str) -> bool:
        return conversation_id in self.live_agent_conversations


class SessionStore(ABC):
    """Storage interface for sessions; swap in a shared backend for multi-process use."""

    @abstractmethod
    def get(self, session_id: str) -> Session | None:
        """Return the live session, or None when unknown or expired."""

    @abstractmethod
    def set(self, session: Session, ttl_seconds: float | None = None) -> float:
        """Insert or replace a session, (re)setting its expiry; returns the TTL applied."""

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Forget a session; unknown ids are ignored."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Evict every expired session and return how many were removed."""

    @abstractmethod
    def __len__(self) -> int: ...


class InMemorySessionStore(SessionStore):
    """Process-local session store with TTL expiry.

    Expired sessions are evicted lazily on lookup and in bulk on every insert.
    No lock is taken: all access happens on the event loop thread.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self.logger = logging.getLogger(__name__)

    def get(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.is_expired(self._clock()):
            del self._sessions[session_id]
            self.logger.info("Session %s expired", session_id)
            return None
        return session

    def set(self, session: Session, ttl_seconds: float | None = None) -> float:
        self.purge_expired()
        ttl = self.ttl_seconds if ttl_seconds is None else min(ttl_seconds, self.ttl_seconds)
        session.expires_at = self._clock() + ttl
        self._sessions[session.session_id] = session
        return ttl

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [sid for sid, session in self._sessions.items() if session.is_expired(now)]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            self.logger.info("Evicted %d expired sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
