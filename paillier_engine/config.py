"""
Runtime configuration read from the environment.
Only defaults live here; every operation also accepts explicit arguments.
"""

import os

from pydantic import BaseModel, Field, field_validator


# ── Defaults ───────────────────────────────────────
DEFAULT_KEY_BITS = 2048
DEFAULT_MR_ROUNDS = 20


class PaillierSettings(BaseModel):
    key_bits: int = Field(default=DEFAULT_KEY_BITS, ge=16)
    miller_rabin_rounds: int = Field(default=DEFAULT_MR_ROUNDS, ge=1, le=256)

    @field_validator("key_bits")
    @classmethod
    def key_bits_must_be_even(cls, v: int) -> int:
        # p and q share bit length, so the modulus size splits evenly
        if v % 2:
            raise ValueError("key_bits must be even")
        return v


def get_settings() -> PaillierSettings:
    """
    Build settings from PAILLIER_KEY_BITS and PAILLIER_MR_ROUNDS.
    Raises pydantic.ValidationError on invalid values.
    """
    return PaillierSettings(
        key_bits=os.getenv("PAILLIER_KEY_BITS", str(DEFAULT_KEY_BITS)),
        miller_rabin_rounds=os.getenv("PAILLIER_MR_ROUNDS", str(DEFAULT_MR_ROUNDS)),
    )
