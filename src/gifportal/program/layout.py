# src/gifportal/program/layout.py
from __future__ import annotations

"""Binary layout of program-owned account data.

Account data = 8-byte discriminator || fields, little-endian:

  u8/u16/u32/u64/i64   fixed width
  bool                 one byte, 0 or 1
  string               u32 byte length || UTF-8
  publicKey            32 raw bytes (surfaced as lowercase hex)
  vec<T>               u32 count || items
  option<T>            u8 tag (0 = None, 1 = Some) || T
  defined              struct fields in declaration order

The discriminator is sha256("account:<AccountName>")[:8].
"""

import hashlib
import struct
from typing import Any, Dict, List, Tuple

from gifportal.program.idl import ProgramIdl

Json = Dict[str, Any]

_FIXED: Dict[str, Tuple[str, int]] = {
    "u8": ("<B", 1),
    "u16": ("<H", 2),
    "u32": ("<I", 4),
    "u64": ("<Q", 8),
    "i64": ("<q", 8),
}


class LayoutError(RuntimeError):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code


def account_discriminator(account_name: str) -> bytes:
    return hashlib.sha256(f"account:{account_name}".encode("utf-8")).digest()[:8]


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def take(self, n: int, field: str) -> bytes:
        if n < 0 or self.remaining < n:
            raise LayoutError("short_buffer", f"account data too short reading '{field}'")
        out = self._data[self._pos : self._pos + n]
        self._pos += n
        return out


def _decode(idl: ProgramIdl, t: Any, r: _Reader, field: str) -> Any:
    if isinstance(t, str):
        if t in _FIXED:
            fmt, size = _FIXED[t]
            return struct.unpack(fmt, r.take(size, field))[0]
        if t == "bool":
            b = r.take(1, field)[0]
            if b not in (0, 1):
                raise LayoutError("invalid_bool", f"invalid bool byte {b} in '{field}'")
            return b == 1
        if t == "string":
            (n,) = struct.unpack("<I", r.take(4, field))
            try:
                return r.take(n, field).decode("utf-8")
            except UnicodeDecodeError as e:
                raise LayoutError("invalid_utf8", f"invalid utf-8 in '{field}': {e}") from e
        if t == "publicKey":
            return r.take(32, field).hex()
        raise LayoutError("unsupported_type", f"unsupported type {t!r} in '{field}'")

    (kind, inner), = t.items()
    if kind == "vec":
        (count,) = struct.unpack("<I", r.take(4, field))
        return [_decode(idl, inner, r, f"{field}[{i}]") for i in range(count)]
    if kind == "option":
        tag = r.take(1, field)[0]
        if tag == 0:
            return None
        if tag != 1:
            raise LayoutError("invalid_option", f"invalid option tag {tag} in '{field}'")
        return _decode(idl, inner, r, field)
    if kind == "defined":
        return _decode_struct(idl, idl.defined(inner)["type"], r, field)
    raise LayoutError("unsupported_type", f"unsupported type {t!r} in '{field}'")


def _decode_struct(idl: ProgramIdl, body: Json, r: _Reader, field: str) -> Json:
    out: Json = {}
    for f in body["fields"]:
        out[f["name"]] = _decode(idl, f["type"], r, f"{field}.{f['name']}")
    return out


def decode_account(idl: ProgramIdl, account_name: str, data: bytes) -> Json:
    """Decode account data into a dict keyed by IDL field names."""
    td = idl.account(account_name)
    r = _Reader(bytes(data))
    disc = r.take(8, "discriminator")
    if disc != account_discriminator(account_name):
        raise LayoutError("bad_discriminator", f"account data is not a {account_name}")
    # Trailing bytes are allowed: accounts are often allocated larger than their content.
    return _decode_struct(idl, td["type"], r, account_name)


def _encode(idl: ProgramIdl, t: Any, v: Any, out: List[bytes], field: str) -> None:
    try:
        if isinstance(t, str):
            if t in _FIXED:
                fmt, _size = _FIXED[t]
                out.append(struct.pack(fmt, int(v)))
                return
            if t == "bool":
                out.append(b"\x01" if bool(v) else b"\x00")
                return
            if t == "string":
                if not isinstance(v, str):
                    raise LayoutError("invalid_string", f"'{field}' must be a string")
                b = v.encode("utf-8")
                out.append(struct.pack("<I", len(b)))
                out.append(b)
                return
            if t == "publicKey":
                pk = bytes.fromhex(str(v))
                if len(pk) != 32:
                    raise LayoutError("invalid_pubkey", f"publicKey '{field}' must be 32 bytes")
                out.append(pk)
                return
            raise LayoutError("unsupported_type", f"unsupported type {t!r} in '{field}'")

        (kind, inner), = t.items()
        if kind == "vec":
            items = list(v or [])
            out.append(struct.pack("<I", len(items)))
            for i, item in enumerate(items):
                _encode(idl, inner, item, out, f"{field}[{i}]")
            return
        if kind == "option":
            if v is None:
                out.append(b"\x00")
                return
            out.append(b"\x01")
            _encode(idl, inner, v, out, field)
            return
        if kind == "defined":
            body = idl.defined(inner)["type"]
            if not isinstance(v, dict):
                raise LayoutError("invalid_struct", f"'{field}' must be an object")
            for f in body["fields"]:
                _encode(idl, f["type"], v.get(f["name"]), out, f"{field}.{f['name']}")
            return
    except (struct.error, TypeError, ValueError) as e:
        raise LayoutError("encode_failed", f"cannot encode '{field}': {e}") from e
    raise LayoutError("unsupported_type", f"unsupported type {t!r} in '{field}'")


def encode_account(idl: ProgramIdl, account_name: str, value: Json) -> bytes:
    """Inverse of decode_account; used by the in-process ledger."""
    td = idl.account(account_name)
    out: List[bytes] = [account_discriminator(account_name)]
    for f in td["type"]["fields"]:
        _encode(idl, f["type"], value.get(f["name"]), out, f"{account_name}.{f['name']}")
    return b"".join(out)


def encode_args(idl: ProgramIdl, instruction: str, args: Json) -> bytes:
    """Serialize instruction args in declaration order (type check for callers)."""
    out: List[bytes] = []
    for a in idl.instruction(instruction)["args"]:
        if a["name"] not in args:
            raise LayoutError("missing_arg", f"instruction '{instruction}' missing arg '{a['name']}'")
        _encode(idl, a["type"], args[a["name"]], out, f"{instruction}.{a['name']}")
    return b"".join(out)
