# src/gifportal/program/idl.py
from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, TypedDict

from gifportal.crypto.sig import decode_bytes

Json = Dict[str, Any]

_PRIMITIVES = {"bool", "u8", "u16", "u32", "u64", "i64", "string", "publicKey"}


class IdlError(RuntimeError):
    pass


class IdlAccountRole(TypedDict):
    name: str
    isMut: bool
    isSigner: bool


class IdlArg(TypedDict):
    name: str
    type: Any


class IdlInstruction(TypedDict):
    name: str
    accounts: List[IdlAccountRole]
    args: List[IdlArg]


class IdlTypeDef(TypedDict):
    name: str
    type: Json


@dataclass(frozen=True)
class ProgramIdl:
    """
    Normalized interface definition of a ledger program.

    - instructions: callable operations with their account roles and args
    - accounts: typed records the program stores (decodable with layout.py)
    - types: struct definitions referenced via {"defined": name}
    """

    name: str
    version: str
    address: str
    instructions: Dict[str, IdlInstruction]
    accounts: Dict[str, IdlTypeDef]
    types: Dict[str, IdlTypeDef]
    source_sha256: str

    def instruction(self, name: str) -> IdlInstruction:
        ix = self.instructions.get(name)
        if ix is None:
            raise IdlError(f"unknown instruction: {name}")
        return ix

    def account(self, name: str) -> IdlTypeDef:
        acct = self.accounts.get(name)
        if acct is None:
            raise IdlError(f"unknown account type: {name}")
        return acct

    def defined(self, name: str) -> IdlTypeDef:
        td = self.types.get(name) or self.accounts.get(name)
        if td is None:
            raise IdlError(f"unknown defined type: {name}")
        return td

    def signer_roles(self, instruction: str) -> List[str]:
        return [r["name"] for r in self.instruction(instruction)["accounts"] if r.get("isSigner")]


def _sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _validate_type(t: Any, where: str) -> None:
    if isinstance(t, str):
        if t not in _PRIMITIVES:
            raise IdlError(f"{where}: unsupported type {t!r}")
        return
    if isinstance(t, dict) and len(t) == 1:
        (kind, inner), = t.items()
        if kind in {"vec", "option"}:
            _validate_type(inner, f"{where}.{kind}")
            return
        if kind == "defined" and isinstance(inner, str) and inner:
            return
    raise IdlError(f"{where}: malformed type {t!r}")


def _validate_struct(td: Any, where: str) -> IdlTypeDef:
    if not isinstance(td, dict) or not isinstance(td.get("name"), str) or not td["name"]:
        raise IdlError(f"{where}: entry must have a non-empty name")
    body = td.get("type")
    if not isinstance(body, dict) or body.get("kind") != "struct" or not isinstance(body.get("fields"), list):
        raise IdlError(f"{where}.{td['name']}: only struct types are supported")
    for f in body["fields"]:
        if not isinstance(f, dict) or not isinstance(f.get("name"), str):
            raise IdlError(f"{where}.{td['name']}: field must have a name")
        _validate_type(f.get("type"), f"{where}.{td['name']}.{f['name']}")
    return td  # type: ignore[return-value]


def _validate_instruction(ix: Any) -> IdlInstruction:
    if not isinstance(ix, dict) or not isinstance(ix.get("name"), str) or not ix["name"]:
        raise IdlError("instruction entry must have a non-empty name")
    name = ix["name"]

    roles = ix.get("accounts")
    if not isinstance(roles, list):
        raise IdlError(f"instruction '{name}' missing accounts list")
    seen: set[str] = set()
    for r in roles:
        if not isinstance(r, dict) or not isinstance(r.get("name"), str) or not r["name"]:
            raise IdlError(f"instruction '{name}' has an account role without a name")
        if r["name"] in seen:
            raise IdlError(f"instruction '{name}' repeats account role {r['name']!r}")
        seen.add(r["name"])
        r.setdefault("isMut", False)
        r.setdefault("isSigner", False)

    args = ix.get("args")
    if args is None:
        ix["args"] = args = []
    if not isinstance(args, list):
        raise IdlError(f"instruction '{name}' args must be a list")
    for a in args:
        if not isinstance(a, dict) or not isinstance(a.get("name"), str):
            raise IdlError(f"instruction '{name}' has an arg without a name")
        _validate_type(a.get("type"), f"{name}.{a['name']}")

    return ix  # type: ignore[return-value]


def parse_idl(obj: Any, *, source_sha256: str = "") -> ProgramIdl:
    if not isinstance(obj, dict):
        raise IdlError("IDL must be a JSON object")

    meta = obj.get("metadata") if isinstance(obj.get("metadata"), dict) else {}
    address = str(meta.get("address") or "").strip()
    if not address:
        raise IdlError("IDL metadata.address (program id) is required")
    try:
        if len(decode_bytes(address)) != 32:
            raise IdlError("IDL metadata.address must encode 32 bytes")
    except ValueError as e:
        raise IdlError(f"IDL metadata.address is not hex or base64: {e}") from e

    instructions: Dict[str, IdlInstruction] = {}
    for ix in obj.get("instructions") or []:
        v = _validate_instruction(ix)
        if v["name"] in instructions:
            raise IdlError(f"duplicate instruction in IDL: {v['name']}")
        instructions[v["name"]] = v

    accounts: Dict[str, IdlTypeDef] = {}
    for td in obj.get("accounts") or []:
        v2 = _validate_struct(td, "accounts")
        accounts[v2["name"]] = v2

    types: Dict[str, IdlTypeDef] = {}
    for td in obj.get("types") or []:
        v3 = _validate_struct(td, "types")
        types[v3["name"]] = v3

    if not instructions:
        raise IdlError("IDL declares no instructions")

    return ProgramIdl(
        name=str(obj.get("name") or ""),
        version=str(obj.get("version") or ""),
        address=address,
        instructions=instructions,
        accounts=accounts,
        types=types,
        source_sha256=source_sha256,
    )


def load_idl(path: str | Path) -> ProgramIdl:
    """Load and validate an IDL JSON artifact."""
    p = Path(path).expanduser()
    if not p.is_file():
        raise IdlError(f"IDL artifact not found: {p}")
    raw = p.read_bytes()
    try:
        obj = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise IdlError(f"failed to parse IDL: {e}") from e
    return parse_idl(obj, source_sha256=_sha256_bytes(raw))


def default_idl_path() -> Path:
    return Path(__file__).resolve().parent / "gif_portal_idl.json"
