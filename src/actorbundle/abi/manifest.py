from __future__ import annotations

from typing import Any

import cbor2
from pydantic import BaseModel, Field, ValidationError

from actorbundle.abi.canonical import canonical_cbor_bytes, sha256_bytes
from actorbundle.abi.method import method_number
from actorbundle.dispatch.types import DispatchTable
from actorbundle.errors import ManifestError, MethodNameError


class MethodDescriptor(BaseModel):
    number: int
    name: str

    @classmethod
    def from_name(cls, name: str) -> MethodDescriptor:
        return cls(number=method_number(name), name=name)


class Abi(BaseModel):
    constructor: MethodDescriptor | None = None
    set_up: MethodDescriptor | None = Field(default=None, alias="setup")
    methods: list[MethodDescriptor] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


def build_abi(table: DispatchTable, *, unit: str | None = None) -> Abi:
    def _descriptor(name: str) -> MethodDescriptor:
        try:
            return MethodDescriptor.from_name(name)
        except MethodNameError as exc:
            raise MethodNameError(
                f"could not generate method {name!r}: {exc.message}", unit=unit
            ) from exc

    return Abi(
        constructor=_descriptor(table.constructor) if table.constructor else None,
        set_up=_descriptor(table.set_up) if table.set_up else None,
        methods=[_descriptor(name) for name in table.methods],
    )


def abi_payload(abi: Abi) -> dict[str, Any]:
    return abi.model_dump(mode="python", by_alias=True)


def encode_abi(abi: Abi) -> bytes:
    try:
        return canonical_cbor_bytes(abi_payload(abi))
    except cbor2.CBOREncodeError as exc:
        raise ManifestError(f"could not encode ABI: {exc}") from exc


def decode_abi(data: bytes) -> Abi:
    try:
        payload = cbor2.loads(data)
    except cbor2.CBORDecodeError as exc:
        raise ManifestError(f"not a valid CBOR manifest: {exc}") from exc
    if not isinstance(payload, dict):
        raise ManifestError("ABI manifest must be a map")
    try:
        return Abi.model_validate(payload)
    except ValidationError as exc:
        raise ManifestError(f"malformed ABI manifest: {exc}") from exc


def manifest_digest(data: bytes) -> str:
    return sha256_bytes(data)
