"""Unsigned big-endian integer encoding used for plaintexts, ciphertexts and nonces."""


def bytes_to_int(data: bytes) -> int:
    # b"" decodes to 0
    return int.from_bytes(data, "big")


def int_to_bytes(value: int) -> bytes:
    """Minimal-length big-endian encoding. Zero encodes to b""."""
    if value < 0:
        raise ValueError("cannot encode a negative integer")
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def int_to_bytes_fixed(value: int, length: int) -> bytes:
    """Big-endian, left-padded with zeros to exactly `length` bytes."""
    b = int_to_bytes(value)
    if len(b) > length:
        raise ValueError("integer too large for target length")
    return b.rjust(length, b"\x00")
