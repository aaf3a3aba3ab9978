"""Method selectors following the FRC-42 method-number convention.

The host computes the same numbers at call time, so this must stay bit exact:
BLAKE2b-512 over ``"1|" + name``, read as big-endian 4-byte chunks, first
chunk at or above ``2**24`` wins. ``Constructor`` is pinned to 1.
"""

from __future__ import annotations

import hashlib

from actorbundle.errors import MethodNameError

CONSTRUCTOR_METHOD_NAME = "Constructor"
CONSTRUCTOR_METHOD_NUMBER = 1
FIRST_METHOD_NUMBER = 1 << 24
DIGEST_CHUNK_LENGTH = 4


def check_method_name(name: str) -> None:
    if not name:
        raise MethodNameError("method name is empty")
    if not ("A" <= name[0] <= "Z"):
        raise MethodNameError(f"method name must start with an uppercase ASCII letter: {name!r}")
    if not all(ch == "_" or (ch.isascii() and ch.isalnum()) for ch in name):
        raise MethodNameError(f"method name contains illegal characters: {name!r}")


def method_number(name: str) -> int:
    check_method_name(name)
    if name == CONSTRUCTOR_METHOD_NAME:
        return CONSTRUCTOR_METHOD_NUMBER
    digest = hashlib.blake2b(f"1|{name}".encode("utf-8"), digest_size=64).digest()
    for offset in range(0, len(digest) - DIGEST_CHUNK_LENGTH + 1, DIGEST_CHUNK_LENGTH):
        number = int.from_bytes(digest[offset : offset + DIGEST_CHUNK_LENGTH], "big")
        if number >= FIRST_METHOD_NUMBER:
            return number
    raise MethodNameError(f"could not determine a method number for {name!r}")
