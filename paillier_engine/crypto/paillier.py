"""
Paillier cryptosystem with CRT decryption.

Plaintexts, ciphertexts and homomorphic constants cross this API as unsigned
big-endian bytes (b"" is zero). Keys are immutable and may be shared freely
between threads.
"""

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import anyio.to_thread

from paillier_engine.config import get_settings
from paillier_engine.crypto.randomness import RandomSource, default_random_source
from paillier_engine.encoding import bytes_to_int, int_to_bytes

logger = logging.getLogger(__name__)


class MessageTooLong(ValueError):
    """Plaintext >= n when encrypting, or ciphertext >= n² when decrypting."""


@dataclass(frozen=True)
class PublicKey:
    n: int
    n_squared: int
    g: int  # n + 1, valid because p and q have the same length

    def __post_init__(self):
        if self.n_squared != self.n * self.n or self.g != self.n + 1:
            raise ValueError("inconsistent Paillier public key")

    @classmethod
    def from_modulus(cls, n: int) -> "PublicKey":
        return cls(n=n, n_squared=n * n, g=n + 1)

    @property
    def byte_length(self) -> int:
        return (self.n.bit_length() + 7) // 8

    @property
    def ciphertext_byte_length(self) -> int:
        return (self.n_squared.bit_length() + 7) // 8


@dataclass(frozen=True)
class PrivateKey:
    public_key: PublicKey
    p: int
    pp: int
    p_minus_one: int
    q: int
    qq: int
    q_minus_one: int
    p_inv_q: int
    hp: int
    hq: int
    n: int

    @classmethod
    def from_primes(cls, p: int, q: int) -> "PrivateKey":
        """Derive the modulus and every CRT helper from the two primes."""
        if p == q:
            raise ValueError("p and q must be distinct")
        n = p * q
        pp = p * p
        qq = q * q
        return cls(
            public_key=PublicKey.from_modulus(n),
            p=p,
            pp=pp,
            p_minus_one=p - 1,
            q=q,
            qq=qq,
            q_minus_one=q - 1,
            p_inv_q=pow(p, -1, q),
            hp=_h(p, pp, n),
            hq=_h(q, qq, n),
            n=n,
        )

    @property
    def n_squared(self) -> int:
        return self.public_key.n_squared

    @property
    def g(self) -> int:
        return self.public_key.g


def _l(u: int, n: int) -> int:
    # exact: every caller passes u ≡ 1 (mod n)
    return (u - 1) // n


def _h(p: int, pp: int, n: int) -> int:
    gp = (1 - n) % pp
    return pow(_l(gp, p), -1, p)


def _search_prime(random: RandomSource, bits: int, label: str) -> int:
    logger.debug("searching for %d-bit prime %s", bits, label)
    try:
        return random.prime(bits)
    except Exception:
        logger.warning("prime search for %s failed", label)
        raise


def generate_key(random: Optional[RandomSource] = None, bits: Optional[int] = None) -> PrivateKey:
    """
    Generate a Paillier key pair whose modulus has `bits` bits.

    p and q are searched for concurrently; the first failing search raises
    its exception unchanged and the other one is not waited for.
    """
    if random is None:
        random = default_random_source()
    if bits is None:
        bits = get_settings().key_bits
    half = bits // 2
    logger.info("generating %d-bit Paillier key", bits)

    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="paillier-prime")
    try:
        futures = [executor.submit(_search_prime, random, half, label) for label in ("p", "q")]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        for future in done:
            future.result()
        p, q = (future.result() for future in futures)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    key = PrivateKey.from_primes(p, q)
    logger.info("generated Paillier key with %d-bit modulus", key.n.bit_length())
    return key


async def generate_key_async(
    random: Optional[RandomSource] = None, bits: Optional[int] = None
) -> PrivateKey:
    """generate_key run in a worker thread so the event loop stays responsive."""
    return await anyio.to_thread.run_sync(generate_key, random, bits)


def encrypt(pub: PublicKey, plaintext: bytes, random: Optional[RandomSource] = None) -> bytes:
    c, _ = encrypt_and_nonce(pub, plaintext, random)
    return c


def encrypt_and_nonce(
    pub: PublicKey, plaintext: bytes, random: Optional[RandomSource] = None
) -> Tuple[bytes, int]:
    """Encrypt with a fresh nonce drawn from [0, n) and return (ciphertext, nonce)."""
    if random is None:
        random = default_random_source()
    r = random.randbelow(pub.n)
    return encrypt_with_nonce(pub, r, plaintext), r


def encrypt_with_nonce(pub: PublicKey, nonce: Union[int, bytes], plaintext: bytes) -> bytes:
    """Deterministic encryption for a caller-supplied nonce."""
    r = nonce if isinstance(nonce, int) else bytes_to_int(nonce)
    m = bytes_to_int(plaintext)
    if m >= pub.n:
        raise MessageTooLong("message too long for Paillier public key size")

    # c = g^m * r^n mod n² = ((1 + m*n) mod n²) * r^n mod n²
    n, n_sq = pub.n, pub.n_squared
    c = ((1 + m * n) % n_sq) * pow(r, n, n_sq) % n_sq
    return int_to_bytes(c)


def decrypt(priv: PrivateKey, ciphertext: bytes) -> bytes:
    c = bytes_to_int(ciphertext)
    if c >= priv.n_squared:
        raise MessageTooLong("ciphertext too long for Paillier private key size")

    cp = pow(c, priv.p_minus_one, priv.pp)
    mp = (_l(cp, priv.p) * priv.hp) % priv.p
    cq = pow(c, priv.q_minus_one, priv.qq)
    mq = (_l(cq, priv.q) * priv.hq) % priv.q
    return int_to_bytes(_crt(mp, mq, priv))


def _crt(mp: int, mq: int, priv: PrivateKey) -> int:
    u = ((mq - mp) * priv.p_inv_q) % priv.q
    return (mp + u * priv.p) % priv.n


def add_cipher(pub: PublicKey, cipher1: bytes, cipher2: bytes) -> bytes:
    """E(m1) * E(m2) mod n² decrypts to m1 + m2 mod n."""
    x = bytes_to_int(cipher1)
    y = bytes_to_int(cipher2)
    return int_to_bytes((x * y) % pub.n_squared)


def add(pub: PublicKey, cipher: bytes, constant: bytes) -> bytes:
    """E(m) * g^k mod n² decrypts to m + k mod n."""
    c = bytes_to_int(cipher)
    k = bytes_to_int(constant)
    return int_to_bytes((c * pow(pub.g, k, pub.n_squared)) % pub.n_squared)


def mul(pub: PublicKey, cipher: bytes, constant: bytes) -> bytes:
    """E(m)^k mod n² decrypts to m * k mod n."""
    c = bytes_to_int(cipher)
    k = bytes_to_int(constant)
    return int_to_bytes(pow(c, k, pub.n_squared))
