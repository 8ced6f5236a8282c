"""Core arithmetic for the Chaum-Pedersen equality-of-discrete-logs protocol."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Sequence, Tuple

from .constants import (
    ALPHA_1024,
    ALPHA_2048,
    BETA_EXPONENT,
    P_1024,
    P_2048,
    Q_1024,
    Q_2048,
    RNG_BOUND_1024,
    RNG_BOUND_2048,
    TOKEN_ALPHABET,
    TOKEN_LENGTH,
    TOY_ALPHA,
    TOY_BETA,
    TOY_P,
    TOY_Q,
)
from .errors import MalformedInput


class RandomSource(Protocol):
    """Source of randomness used for exponents, challenges and identifiers."""

    def randbelow(self, upper: int) -> int:
        ...

    def choice(self, population: Sequence[str]) -> str:
        ...


class SystemRandomSource:
    """Cryptographically secure randomness backed by :mod:`secrets`."""

    def randbelow(self, upper: int) -> int:
        return secrets.randbelow(upper)

    def choice(self, population: Sequence[str]) -> str:
        return secrets.choice(population)


DEFAULT_RANDOM = SystemRandomSource()


def _is_probable_prime(n: int, rounds: int = 40) -> bool:
    """Miller-Rabin primality test."""

    if n < 2:
        return False
    for small in (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37):
        if n % small == 0:
            return n == small

    r = 0
    d = n - 1
    while d % 2 == 0:
        r += 1
        d //= 2

    for _ in range(rounds):
        a = secrets.randbelow(n - 3) + 2
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(r - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


@dataclass(frozen=True)
class GroupParameters:
    """Public parameters shared by prover and verifier."""

    alpha: int
    beta: int
    p: int
    q: int
    rng_upper_bound: int

    def validate(self) -> None:
        if not _is_probable_prime(self.p):
            raise ValueError("p must be prime")
        if not _is_probable_prime(self.q):
            raise ValueError("q must be prime")
        if (self.p - 1) % self.q != 0:
            raise ValueError("q must divide p - 1")
        for name, generator in (("alpha", self.alpha), ("beta", self.beta)):
            if not 1 < generator < self.p:
                raise ValueError(f"{name} must lie in (1, p)")
            if pow(generator, self.q, self.p) != 1:
                raise ValueError(f"{name} must have order q")
        if self.rng_upper_bound <= 0:
            raise ValueError("rng_upper_bound must be positive")

    def to_dict(self) -> Dict[str, str]:
        return {
            "alpha": hex(self.alpha),
            "beta": hex(self.beta),
            "p": hex(self.p),
            "q": hex(self.q),
            "rng_upper_bound": hex(self.rng_upper_bound),
        }


def reference_group(bits: int = 1024) -> GroupParameters:
    """Return one of the built-in reference groups."""

    if bits == 1024:
        alpha, p, q, bound = ALPHA_1024, P_1024, Q_1024, RNG_BOUND_1024
    elif bits == 2048:
        alpha, p, q, bound = ALPHA_2048, P_2048, Q_2048, RNG_BOUND_2048
    else:
        raise ValueError(f"Unsupported group size: {bits}")
    return GroupParameters(
        alpha=alpha,
        beta=pow(alpha, BETA_EXPONENT, p),
        p=p,
        q=q,
        rng_upper_bound=bound,
    )


def toy_group(rng_upper_bound: int = TOY_P) -> GroupParameters:
    """Tiny group for worked examples. Offers no security whatsoever."""

    return GroupParameters(
        alpha=TOY_ALPHA,
        beta=TOY_BETA,
        p=TOY_P,
        q=TOY_Q,
        rng_upper_bound=rng_upper_bound,
    )


def int_to_bytes(value: int) -> bytes:
    """Encode a non-negative integer as minimal big-endian bytes."""

    if value < 0:
        raise ValueError("Only unsigned integers can be encoded")
    length = max(1, (value.bit_length() + 7) // 8)
    return value.to_bytes(length, "big")


def bytes_to_int(data: bytes) -> int:
    return int.from_bytes(data, "big")


def encode_hex(value: int) -> str:
    return int_to_bytes(value).hex()


def decode_hex(data: str, field: str = "value") -> int:
    """Decode a hex encoded big-endian unsigned integer of any width."""

    text = data.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    if len(text) % 2:
        text = "0" + text
    try:
        return bytes_to_int(bytes.fromhex(text))
    except ValueError as exc:
        raise MalformedInput(f"{field} must be hex encoded") from exc


def commit(params: GroupParameters, exponent: int) -> Tuple[int, int]:
    """Return ``(alpha^exponent mod p, beta^exponent mod p)``."""

    if exponent < 0:
        raise ValueError("Exponent must be non-negative")
    return pow(params.alpha, exponent, params.p), pow(params.beta, exponent, params.p)


def respond(params: GroupParameters, k: int, c: int, x: int) -> int:
    """Compute ``s = (k - c * x) mod q`` without leaving unsigned arithmetic."""

    if k < 0 or c < 0 or x < 0:
        raise ValueError("Response inputs must be non-negative")
    cx = c * x
    if k >= cx:
        return (k - cx) % params.q
    return (params.q - (cx - k) % params.q) % params.q


def verify(
    params: GroupParameters,
    y1: int,
    y2: int,
    r1: int,
    r2: int,
    s: int,
    c: int,
) -> bool:
    """Check ``r1 = alpha^s * y1^c`` and ``r2 = beta^s * y2^c`` modulo p."""

    if min(y1, y2, r1, r2, s, c) < 0:
        return False
    p = params.p
    r1_ok = r1 == (pow(params.alpha, s, p) * pow(y1, c, p)) % p
    r2_ok = r2 == (pow(params.beta, s, p) * pow(y2, c, p)) % p
    return r1_ok and r2_ok


def random_exponent(params: GroupParameters, rng: Optional[RandomSource] = None) -> int:
    """Draw a uniform value in ``[0, rng_upper_bound)``."""

    return (rng or DEFAULT_RANDOM).randbelow(params.rng_upper_bound)


def random_token(rng: Optional[RandomSource] = None, size: int = TOKEN_LENGTH) -> str:
    """Alphanumeric identifier used for auth ids and session tokens."""

    source = rng or DEFAULT_RANDOM
    return "".join(source.choice(TOKEN_ALPHABET) for _ in range(size))


@dataclass
class ChaumPedersenCommitment:
    """Commitment sent before the challenge is known, with its private nonce."""

    r1: int
    r2: int
    nonce: int


class ChaumPedersenProver:
    """Holds the long-lived secret and answers challenges."""

    def __init__(
        self,
        params: GroupParameters,
        secret: int,
        rng: Optional[RandomSource] = None,
    ) -> None:
        if secret < 0:
            raise ValueError("Secret must be non-negative")
        self.params = params
        self.secret = secret
        self.rng = rng or DEFAULT_RANDOM

    def public_values(self) -> Tuple[int, int]:
        return commit(self.params, self.secret)

    def commit(self) -> ChaumPedersenCommitment:
        # A fresh nonce per commitment; reusing one across challenges reveals the secret.
        nonce = random_exponent(self.params, self.rng)
        r1, r2 = commit(self.params, nonce)
        return ChaumPedersenCommitment(r1=r1, r2=r2, nonce=nonce)

    def respond(self, commitment: ChaumPedersenCommitment, challenge: int) -> int:
        return respond(self.params, commitment.nonce, challenge, self.secret)


class ChaumPedersenVerifier:
    """Checks responses against a registered pair of public values."""

    def __init__(self, params: GroupParameters, y1: int, y2: int) -> None:
        self.params = params
        self.y1 = y1
        self.y2 = y2

    def random_challenge(self, rng: Optional[RandomSource] = None) -> int:
        return random_exponent(self.params, rng)

    def verify(self, r1: int, r2: int, challenge: int, response: int) -> bool:
        return verify(self.params, self.y1, self.y2, r1, r2, response, challenge)


__all__ = [
    "ChaumPedersenCommitment",
    "ChaumPedersenProver",
    "ChaumPedersenVerifier",
    "DEFAULT_RANDOM",
    "GroupParameters",
    "RandomSource",
    "SystemRandomSource",
    "bytes_to_int",
    "commit",
    "decode_hex",
    "encode_hex",
    "int_to_bytes",
    "random_exponent",
    "random_token",
    "reference_group",
    "respond",
    "toy_group",
    "verify",
]
