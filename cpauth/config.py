"""Runtime configuration read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .constants import DEFAULT_CHALLENGE_TTL, DEFAULT_HOST, DEFAULT_PORT, SUPPORTED_BITS
from .crypto import GroupParameters, reference_group

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


@dataclass
class Settings:
    group_bits: int = field(default_factory=lambda: int(os.getenv("CPAUTH_GROUP_BITS", "1024")))
    challenge_ttl: float = field(
        default_factory=lambda: float(os.getenv("CPAUTH_CHALLENGE_TTL", str(DEFAULT_CHALLENGE_TTL)))
    )
    host: str = field(default_factory=lambda: os.getenv("CPAUTH_HOST", DEFAULT_HOST))
    port: int = field(default_factory=lambda: int(os.getenv("CPAUTH_PORT", str(DEFAULT_PORT))))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    def __post_init__(self) -> None:
        if self.group_bits not in SUPPORTED_BITS:
            raise ValueError(f"group_bits must be one of {SUPPORTED_BITS}, got {self.group_bits}")
        if self.challenge_ttl <= 0:
            raise ValueError("challenge_ttl must be positive")

    def group(self) -> GroupParameters:
        return reference_group(self.group_bits)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


__all__ = ["LOG_FORMAT", "Settings", "setup_logging"]
