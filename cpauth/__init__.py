"""Chaum-Pedersen zero-knowledge authentication package."""

from .auth import AuthService, IssuedChallenge
from .client import HttpChannel, LocalChannel, Prover, secret_from_password
from .crypto import (
    ChaumPedersenCommitment,
    ChaumPedersenProver,
    ChaumPedersenVerifier,
    GroupParameters,
    SystemRandomSource,
    commit,
    random_exponent,
    reference_group,
    respond,
    toy_group,
    verify,
)
from .errors import (
    AuthError,
    MalformedInput,
    UnknownSession,
    UnknownUser,
    VerificationFailed,
)
from .store import ChallengeSession, ChallengeStore, Credential, CredentialStore

__all__ = [
    "AuthService",
    "IssuedChallenge",
    "HttpChannel",
    "LocalChannel",
    "Prover",
    "secret_from_password",
    "ChaumPedersenCommitment",
    "ChaumPedersenProver",
    "ChaumPedersenVerifier",
    "GroupParameters",
    "SystemRandomSource",
    "commit",
    "random_exponent",
    "reference_group",
    "respond",
    "toy_group",
    "verify",
    "AuthError",
    "MalformedInput",
    "UnknownSession",
    "UnknownUser",
    "VerificationFailed",
    "ChallengeSession",
    "ChallengeStore",
    "Credential",
    "CredentialStore",
]
