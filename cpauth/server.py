"""FastAPI-powered Chaum-Pedersen authentication service."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .auth import AuthService
from .crypto import decode_hex, encode_hex
from .errors import AuthError, MalformedInput, UnknownSession, UnknownUser, VerificationFailed

logger = logging.getLogger(__name__)


class RegisterRequest(BaseModel):
    user_name: str
    y1: str
    y2: str


class RegisterResponse(BaseModel):
    pass


class ChallengeRequest(BaseModel):
    user_name: str
    r1: str
    r2: str


class ChallengeResponse(BaseModel):
    auth_id: str
    c: str


class VerifyRequest(BaseModel):
    auth_id: str
    s: str


class VerifyResponse(BaseModel):
    session_id: str


class ParametersResponse(BaseModel):
    alpha: str
    beta: str
    p: str
    q: str
    rng_upper_bound: str


def _status_for(exc: AuthError) -> int:
    if isinstance(exc, (UnknownUser, UnknownSession)):
        return 404
    if isinstance(exc, VerificationFailed):
        return 401
    if isinstance(exc, MalformedInput):
        return 400
    return 500


def create_app(service: Optional[AuthService] = None) -> FastAPI:
    """Build the HTTP application around ``service`` (a fresh one by default)."""

    auth = service or AuthService()
    app = FastAPI(title="CPAuth", description="Passwordless Chaum-Pedersen authentication")
    app.state.auth = auth

    @app.exception_handler(AuthError)
    async def _auth_error(request: Request, exc: AuthError) -> JSONResponse:
        status = _status_for(exc)
        logger.info("%s %s -> %d: %s", request.method, request.url.path, status, exc)
        content = {"detail": str(exc), "error": type(exc).__name__}
        if isinstance(exc, UnknownUser):
            content["user_name"] = exc.user_name
        return JSONResponse(status_code=status, content=content)

    @app.get("/parameters", response_model=ParametersResponse)
    def parameters() -> ParametersResponse:
        return ParametersResponse(**auth.params.to_dict())

    @app.post("/register", response_model=RegisterResponse)
    def register(request: RegisterRequest) -> RegisterResponse:
        auth.register(
            request.user_name,
            decode_hex(request.y1, "y1"),
            decode_hex(request.y2, "y2"),
        )
        return RegisterResponse()

    @app.post("/challenge", response_model=ChallengeResponse)
    def create_authentication_challenge(request: ChallengeRequest) -> ChallengeResponse:
        issued = auth.create_challenge(
            request.user_name,
            decode_hex(request.r1, "r1"),
            decode_hex(request.r2, "r2"),
        )
        return ChallengeResponse(auth_id=issued.auth_id, c=encode_hex(issued.c))

    @app.post("/verify", response_model=VerifyResponse)
    def verify_authentication(request: VerifyRequest) -> VerifyResponse:
        session_id = auth.verify(request.auth_id, decode_hex(request.s, "s"))
        return VerifyResponse(session_id=session_id)

    return app


app = create_app()


__all__ = ["app", "create_app"]
