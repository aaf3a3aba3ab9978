from __future__ import annotations

import hashlib
import json
from typing import Any

import cbor2


def canonical_cbor_bytes(obj: Any) -> bytes:
    return cbor2.dumps(obj, canonical=True)


def canonical_json_bytes(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode(
        "utf-8"
    )


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def sha256_canonical(obj: Any) -> str:
    return sha256_bytes(canonical_json_bytes(obj))
