"""Server-side orchestration of the register / challenge / verify protocol."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .crypto import (
    DEFAULT_RANDOM,
    ChaumPedersenVerifier,
    GroupParameters,
    RandomSource,
    random_token,
    reference_group,
)
from .errors import UnknownSession, UnknownUser, VerificationFailed
from .store import ChallengeSession, ChallengeStore, Credential, CredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedChallenge:
    """Reply to a challenge request."""

    auth_id: str
    c: int


def _short(identifier: str) -> str:
    return identifier[:8] + "..."


class AuthService:
    """Verifier side of the protocol.

    Owns the credential and challenge stores. Each store carries its own lock,
    so a request only ever holds one of them at a time and the group
    arithmetic runs with neither held.
    """

    def __init__(
        self,
        params: Optional[GroupParameters] = None,
        *,
        credentials: Optional[CredentialStore] = None,
        challenges: Optional[ChallengeStore] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        self.params = params or reference_group()
        self.credentials = credentials if credentials is not None else CredentialStore()
        self.challenges = challenges if challenges is not None else ChallengeStore()
        self.rng = rng or DEFAULT_RANDOM

    def register(self, user_name: str, y1: int, y2: int) -> None:
        """Store or overwrite the credential for ``user_name``."""

        replaced = user_name in self.credentials
        self.credentials.put(Credential(user_name=user_name, y1=y1, y2=y2))
        logger.info("%s user %r", "Re-registered" if replaced else "Registered", user_name)

    def create_challenge(self, user_name: str, r1: int, r2: int) -> IssuedChallenge:
        credential = self.credentials.get(user_name)
        if credential is None:
            logger.warning("Challenge requested for unknown user %r", user_name)
            raise UnknownUser(user_name)

        verifier = ChaumPedersenVerifier(self.params, credential.y1, credential.y2)
        c = verifier.random_challenge(self.rng)
        session = ChallengeSession(
            user_name=user_name,
            r1=r1,
            r2=r2,
            c=c,
            created_at=self.challenges.now(),
        )
        while True:
            auth_id = random_token(self.rng)
            try:
                self.challenges.add(auth_id, session)
            except KeyError:
                continue
            break
        logger.info("Issued challenge %s for user %r", _short(auth_id), user_name)
        return IssuedChallenge(auth_id=auth_id, c=c)

    def verify(self, auth_id: str, s: int) -> str:
        """Check the answer to a pending challenge and return a session token.

        The challenge is consumed whatever the outcome; a rejected prover has
        to request a new one.
        """

        session = self.challenges.pop(auth_id)
        if session is None:
            logger.warning("Verification for unknown auth id %s", _short(auth_id))
            raise UnknownSession(auth_id)

        # The credential may have been replaced since the challenge was issued.
        credential = self.credentials.get(session.user_name)
        if credential is None:
            logger.warning("Credential for %r vanished before verification", session.user_name)
            raise UnknownUser(session.user_name)

        verifier = ChaumPedersenVerifier(self.params, credential.y1, credential.y2)
        if not verifier.verify(session.r1, session.r2, session.c, s):
            logger.warning("Rejected proof for user %r (auth id %s)", session.user_name, _short(auth_id))
            raise VerificationFailed(f"Wrong answer for auth id '{auth_id}'")

        token = random_token(self.rng)
        logger.info("User %r authenticated, session %s", session.user_name, _short(token))
        return token


__all__ = ["AuthService", "IssuedChallenge"]
