from __future__ import annotations

import secrets
from dataclasses import dataclass

# Uppercase letters and digits without the look-alikes I, O, 0 and 1
HUMAN_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
NUMERIC_ALPHABET = "0123456789"
DEFAULT_LENGTH = 6


@dataclass(frozen=True, slots=True)
class CredentialGenerator:
    """
    Generates short secrets meant to be read aloud or typed by a person.

    Each credential type (rider handoff token, pickup OTP) gets its own generator so the
    alphabet can differ per type.
    """
    alphabet: str = HUMAN_ALPHABET
    length: int = DEFAULT_LENGTH

    def __post_init__(self) -> None:
        if len(set(self.alphabet)) < 2:
            raise ValueError("Credential alphabet needs at least two distinct characters")
        if len(set(self.alphabet)) != len(self.alphabet):
            raise ValueError("Credential alphabet must not repeat characters")
        if self.length <= 0:
            raise ValueError("Credential length must be positive")

    def generate(self) -> str:
        return "".join(secrets.choice(self.alphabet) for _ in range(self.length))


@dataclass(frozen=True, slots=True)
class CredentialPolicy:
    """The generator for each credential type a rental issues."""
    handoff_token: CredentialGenerator
    pickup_otp: CredentialGenerator
