# src/gifportal/crypto/sig.py
from __future__ import annotations

import base64
import json
from typing import Any, Dict, List, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

Json = Dict[str, Any]


def decode_bytes(s: str) -> bytes:
    """Decode a hex or base64/base64url string."""
    s = s.strip()
    if not s:
        raise ValueError("empty string")
    # hex
    try:
        return bytes.fromhex(s)
    except ValueError:
        pass
    # base64 / base64url
    try:
        padding = "=" * (-len(s) % 4)
        s2 = (s + padding).replace("-", "+").replace("_", "/")
        return base64.b64decode(s2, validate=True)
    except ValueError as e:
        raise ValueError("not hex or base64") from e


def canonical_json(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def canonical_tx_message(
    *,
    program_id: str,
    instruction: str,
    accounts: Dict[str, str],
    args: Json,
    fee_payer: str,
    recent_blockhash: str,
    signers: Optional[List[str]] = None,
) -> bytes:
    """Bytes every required signer signs for one program instruction."""
    obj: Json = {
        "program_id": str(program_id),
        "instruction": str(instruction),
        "accounts": {str(k): str(v) for k, v in accounts.items()},
        "args": args if isinstance(args, dict) else {},
        "fee_payer": str(fee_payer),
        "recent_blockhash": str(recent_blockhash),
        "signers": sorted(str(s) for s in (signers or [])),
    }
    return canonical_json(obj)


def tx_message_from_envelope(tx: Json) -> bytes:
    accounts = tx.get("accounts") if isinstance(tx.get("accounts"), dict) else {}
    sigs = tx.get("signatures") if isinstance(tx.get("signatures"), dict) else {}
    return canonical_tx_message(
        program_id=str(tx.get("program_id") or ""),
        instruction=str(tx.get("instruction") or ""),
        accounts=accounts,
        args=tx.get("args") if isinstance(tx.get("args"), dict) else {},
        fee_payer=str(tx.get("fee_payer") or ""),
        recent_blockhash=str(tx.get("recent_blockhash") or ""),
        signers=list(sigs.keys()),
    )


def sign_ed25519(*, message: bytes, privkey: Ed25519PrivateKey | str, encoding: str = "hex") -> str:
    """Sign a message with an Ed25519 private key.

    privkey: a key object, or a hex / base64 string of a 32-byte seed or a
    64-byte seed+pubkey secret.
    encoding: "hex" (default) or "b64".
    """
    if isinstance(privkey, Ed25519PrivateKey):
        key = privkey
    else:
        pk_b = decode_bytes(privkey)
        if len(pk_b) == 64:
            pk_b = pk_b[:32]
        if len(pk_b) != 32:
            raise ValueError("ed25519 privkey must be 32-byte seed (or 64-byte secret key)")
        key = Ed25519PrivateKey.from_private_bytes(pk_b)

    sig_b = key.sign(message)
    if encoding == "hex":
        return sig_b.hex()
    if encoding in {"b64", "base64"}:
        return base64.b64encode(sig_b).decode("ascii")
    raise ValueError("unsupported encoding")


def verify_ed25519_signature(*, message: bytes, sig: str, pubkey: str) -> bool:
    try:
        sig_b = decode_bytes(sig)
        pk_b = decode_bytes(pubkey)
        key = Ed25519PublicKey.from_public_bytes(pk_b)
        key.verify(sig_b, message)
        return True
    except (InvalidSignature, ValueError):
        return False


def missing_signers(tx: Json, required: List[str]) -> List[str]:
    """Return required signer pubkeys whose signature is absent or invalid."""
    sigs = tx.get("signatures") if isinstance(tx.get("signatures"), dict) else {}
    msg = tx_message_from_envelope(tx)

    out: List[str] = []
    for pk in required:
        sig = sigs.get(pk)
        if not isinstance(sig, str) or not verify_ed25519_signature(message=msg, sig=sig, pubkey=pk):
            out.append(pk)
    return out
