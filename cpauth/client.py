"""Prover-side driver for the three protocol phases."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Tuple

import httpx

from .auth import AuthService
from .crypto import (
    ChaumPedersenProver,
    GroupParameters,
    RandomSource,
    decode_hex,
    encode_hex,
)
from .errors import AuthError, MalformedInput, UnknownSession, UnknownUser, VerificationFailed

logger = logging.getLogger(__name__)


def secret_from_password(password: str) -> int:
    """Interpret the UTF-8 bytes of ``password`` as a big-endian integer."""

    return int.from_bytes(password.encode("utf-8"), "big")


class AuthChannel(Protocol):
    def register(self, user_name: str, y1: int, y2: int) -> None:
        ...

    def create_authentication_challenge(self, user_name: str, r1: int, r2: int) -> Tuple[str, int]:
        ...

    def verify_authentication(self, auth_id: str, s: int) -> str:
        ...


class LocalChannel:
    """Talks to an in-process :class:`AuthService`."""

    def __init__(self, service: AuthService) -> None:
        self.service = service

    def register(self, user_name: str, y1: int, y2: int) -> None:
        self.service.register(user_name, y1, y2)

    def create_authentication_challenge(self, user_name: str, r1: int, r2: int) -> Tuple[str, int]:
        issued = self.service.create_challenge(user_name, r1, r2)
        return issued.auth_id, issued.c

    def verify_authentication(self, auth_id: str, s: int) -> str:
        return self.service.verify(auth_id, s)


class HttpChannel:
    """Talks to the FastAPI service over HTTP."""

    def __init__(self, base_url: str = "", *, client: Optional[httpx.Client] = None) -> None:
        self.client = client or httpx.Client(base_url=base_url)

    def close(self) -> None:
        self.client.close()

    def _post(self, path: str, payload: dict) -> dict:
        response = self.client.post(path, json=payload)
        if response.status_code == 200:
            return response.json()
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        detail = str(body.get("detail", response.text))
        error = body.get("error")
        if error == "UnknownUser":
            raise UnknownUser(body.get("user_name") or payload.get("user_name", ""))
        if error == "UnknownSession":
            raise UnknownSession(payload.get("auth_id", ""))
        if error == "VerificationFailed":
            raise VerificationFailed(detail)
        if error == "MalformedInput" or response.status_code == 422:
            raise MalformedInput(detail)
        response.raise_for_status()
        raise AuthError(f"Unexpected status {response.status_code}: {detail}")

    def parameters(self) -> GroupParameters:
        response = self.client.get("/parameters")
        response.raise_for_status()
        data = response.json()
        params = GroupParameters(**{key: decode_hex(value, key) for key, value in data.items()})
        params.validate()
        return params

    def register(self, user_name: str, y1: int, y2: int) -> None:
        self._post("/register", {"user_name": user_name, "y1": encode_hex(y1), "y2": encode_hex(y2)})

    def create_authentication_challenge(self, user_name: str, r1: int, r2: int) -> Tuple[str, int]:
        data = self._post(
            "/challenge",
            {"user_name": user_name, "r1": encode_hex(r1), "r2": encode_hex(r2)},
        )
        return data["auth_id"], decode_hex(data["c"], "c")

    def verify_authentication(self, auth_id: str, s: int) -> str:
        data = self._post("/verify", {"auth_id": auth_id, "s": encode_hex(s)})
        return data["session_id"]


class Prover:
    """Registers a secret once and then logs in as often as needed."""

    def __init__(
        self,
        params: GroupParameters,
        secret: int,
        rng: Optional[RandomSource] = None,
    ) -> None:
        params.validate()
        self._prover = ChaumPedersenProver(params, secret, rng)

    @property
    def params(self) -> GroupParameters:
        return self._prover.params

    def register(self, channel: AuthChannel, user_name: str) -> None:
        y1, y2 = self._prover.public_values()
        channel.register(user_name, y1, y2)
        logger.info("Registered %r", user_name)

    def login(self, channel: AuthChannel, user_name: str) -> str:
        commitment = self._prover.commit()
        auth_id, c = channel.create_authentication_challenge(user_name, commitment.r1, commitment.r2)
        s = self._prover.respond(commitment, c)
        session_id = channel.verify_authentication(auth_id, s)
        logger.info("Logged in as %r", user_name)
        return session_id


__all__ = [
    "AuthChannel",
    "HttpChannel",
    "LocalChannel",
    "Prover",
    "secret_from_password",
]
