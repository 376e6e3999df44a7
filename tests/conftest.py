"""Shared pytest fixtures for the paillier-engine test suite."""

import threading

import pytest

from paillier_engine.crypto.paillier import PrivateKey, generate_key
from paillier_engine.crypto.randomness import SystemRandomSource


class ScriptedRandomSource:
    """Hands out pre-chosen primes and nonces in order."""

    def __init__(self, primes=(), nonces=()):
        self._primes = list(primes)
        self._nonces = list(nonces)
        self._lock = threading.Lock()

    def prime(self, bits: int) -> int:
        with self._lock:
            return self._primes.pop(0)

    def randbelow(self, bound: int) -> int:
        with self._lock:
            return self._nonces.pop(0)


class FailingRandomSource:
    def prime(self, bits: int) -> int:
        raise RuntimeError("entropy exhausted")

    def randbelow(self, bound: int) -> int:
        raise RuntimeError("entropy exhausted")


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def toy_key() -> PrivateKey:
    """p=7, q=11, so n=77."""
    return PrivateKey.from_primes(7, 11)


@pytest.fixture(scope="session")
def key_256() -> PrivateKey:
    return generate_key(SystemRandomSource(rounds=20), bits=256)


@pytest.fixture()
def failing_source() -> FailingRandomSource:
    return FailingRandomSource()


@pytest.fixture()
def scripted_source():
    """Factory: scripted_source(primes=[...], nonces=[...])."""
    return ScriptedRandomSource
