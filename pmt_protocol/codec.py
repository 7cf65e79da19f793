# MIT License © 2025 Motohiro Suzuki
"""
pmt_protocol/codec.py

Byte-exact encodings shared by sealing and verification.

canonical_json(fields):
  compact JSON object, keys in the given order, ASCII only.
  Signatures cover the exact string produced here; the verifying side uses
  the string it received and never re-encodes.

length_value(*chunks):
  for each chunk: u32 little-endian byte length || utf-8 bytes
  message TBS = length_value(sender_id, recipient_id, version, signedMessage)
  key TBS     = length_value(sender_id, version, signedKey)
"""

from __future__ import annotations

import json
import struct
import time
from typing import Iterable, Tuple

_U32_LE = struct.Struct("<I")


def canonical_json(fields: Iterable[Tuple[str, str]]) -> str:
    obj = {}
    for k, v in fields:
        if not isinstance(k, str) or not isinstance(v, str):
            raise TypeError("canonical_json fields must be (str, str)")
        if k in obj:
            raise ValueError(f"duplicate field: {k}")
        obj[k] = v
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=True)


def _u32le(n: int) -> bytes:
    if not (0 <= int(n) <= 0xFFFFFFFF):
        raise ValueError("length does not fit u32")
    return _U32_LE.pack(int(n))


def length_value(*chunks: str) -> bytes:
    out = bytearray()
    for c in chunks:
        if not isinstance(c, str):
            raise TypeError(f"length_value chunk must be str, got {type(c).__name__}")
        b = c.encode("utf-8")
        out += _u32le(len(b))
        out += b
    return bytes(out)


def message_tbs(*, sender_id: str, recipient_id: str, protocol_version: str, signed_message: str) -> bytes:
    return length_value(sender_id, recipient_id, protocol_version, signed_message)


def signed_key_tbs(*, sender_id: str, protocol_version: str, signed_key: str) -> bytes:
    return length_value(sender_id, protocol_version, signed_key)


def now_millis() -> int:
    return time.time_ns() // 1_000_000
