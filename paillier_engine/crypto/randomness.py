import logging
import secrets
from functools import lru_cache
from typing import Optional, Protocol

from paillier_engine.config import get_settings

logger = logging.getLogger(__name__)

SMALL_PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47)


class RandomSource(Protocol):
    """
    Source of cryptographic randomness consumed by key generation and encryption.

    Implementations shared between threads must be safe for concurrent use.
    Any exception they raise is propagated to the caller unchanged.
    """

    def randbelow(self, bound: int) -> int:
        """Uniform integer in [0, bound)."""
        ...

    def prime(self, bits: int) -> int:
        """Probable prime of exactly `bits` bits."""
        ...


def is_probable_prime(n: int, rounds: int = 20) -> bool:
    """Trial division by small primes, then Miller-Rabin with `rounds` random bases."""
    if n < 2:
        return False
    if n in SMALL_PRIMES:
        return True
    if any((n % p) == 0 for p in SMALL_PRIMES):
        return False

    d = n - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1

    for _ in range(rounds):
        a = secrets.randbelow(n - 3) + 2
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


class SystemRandomSource:
    """RandomSource backed by the `secrets` module (OS CSPRNG)."""

    def __init__(self, rounds: Optional[int] = None):
        if rounds is None:
            rounds = get_settings().miller_rabin_rounds
        self.rounds = rounds

    def randbelow(self, bound: int) -> int:
        if bound <= 0:
            raise ValueError("bound must be positive")
        return secrets.randbelow(bound)

    def prime(self, bits: int) -> int:
        if bits < 2:
            raise ValueError("prime size must be at least 2 bits")
        # Top two bits set so the product of two such primes has exactly 2*bits bits.
        top = 3 << (bits - 2)
        attempts = 0
        while True:
            attempts += 1
            candidate = secrets.randbits(bits) | top | 1
            if is_probable_prime(candidate, self.rounds):
                logger.debug("found %d-bit probable prime after %d candidates", bits, attempts)
                return candidate


@lru_cache(maxsize=1)
def default_random_source() -> SystemRandomSource:
    return SystemRandomSource()
