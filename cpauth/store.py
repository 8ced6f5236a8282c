"""In-memory credential and challenge stores shared by concurrent requests."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .constants import DEFAULT_CHALLENGE_TTL

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class Credential:
    """Public values registered for a user: ``alpha^x`` and ``beta^x``."""

    user_name: str
    y1: int
    y2: int


@dataclass(frozen=True)
class ChallengeSession:
    """Pending challenge awaiting the prover's response."""

    user_name: str
    r1: int
    r2: int
    c: int
    created_at: float


class CredentialStore:
    """Maps user names to their registered credential."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._credentials: Dict[str, Credential] = {}

    def put(self, credential: Credential) -> None:
        with self._lock:
            self._credentials[credential.user_name] = credential

    def get(self, user_name: str) -> Optional[Credential]:
        with self._lock:
            return self._credentials.get(user_name)

    def __contains__(self, user_name: object) -> bool:
        with self._lock:
            return user_name in self._credentials

    def __len__(self) -> int:
        with self._lock:
            return len(self._credentials)


class ChallengeStore:
    """Maps auth ids to pending challenges, expiring them after ``ttl`` seconds."""

    def __init__(self, ttl: float = DEFAULT_CHALLENGE_TTL, clock: Clock = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, ChallengeSession] = {}

    def now(self) -> float:
        return self._clock()

    def _expired(self, session: ChallengeSession, now: float) -> bool:
        return now - session.created_at >= self.ttl

    def _purge_locked(self, now: float) -> int:
        # Sessions are kept in insertion order, so the oldest come first.
        stale = []
        for key, session in self._sessions.items():
            if not self._expired(session, now):
                break
            stale.append(key)
        for key in stale:
            del self._sessions[key]
        return len(stale)

    def add(self, auth_id: str, session: ChallengeSession) -> None:
        with self._lock:
            purged = self._purge_locked(self.now())
            if auth_id in self._sessions:
                raise KeyError(f"Duplicate auth id {auth_id[:8]}...")
            self._sessions[auth_id] = session
        if purged:
            logger.debug("Purged %d expired challenge(s)", purged)

    def pop(self, auth_id: str) -> Optional[ChallengeSession]:
        """Remove and return a live session, or ``None`` if absent or expired."""

        with self._lock:
            session = self._sessions.pop(auth_id, None)
        if session is None or self._expired(session, self.now()):
            return None
        return session

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked(self.now())

    def __contains__(self, auth_id: object) -> bool:
        with self._lock:
            session = self._sessions.get(auth_id)  # type: ignore[arg-type]
            return session is not None and not self._expired(session, self.now())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = ["ChallengeSession", "Clock", "Credential", "CredentialStore", "ChallengeStore"]
