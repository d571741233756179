# src/gifportal/crypto/keypair.py
from __future__ import annotations

"""Persisted Ed25519 keypair artifacts.

The base account's own signing identity ships as a JSON artifact and is loaded
once at process start. Accepted shapes:

  {"_keypair": {"publicKey": {...}, "secretKey": {"0": 12, "1": 250, ...}}}
  [12, 250, ...]                                  (64 or 32 byte values)
  {"secret_key": "<hex|base64>"}

A 64-byte secret is seed || public key; the embedded public key must match the
one derived from the seed.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, PublicFormat

from gifportal.crypto.sig import decode_bytes, sign_ed25519


class KeypairError(ValueError):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code


@dataclass(frozen=True)
class Keypair:
    private_key: Ed25519PrivateKey

    @classmethod
    def generate(cls) -> "Keypair":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        if len(seed) != 32:
            raise KeypairError("bad_seed_length", f"seed must be 32 bytes; got {len(seed)}")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def from_secret_key(cls, secret: bytes) -> "Keypair":
        if len(secret) == 32:
            return cls.from_seed(secret)
        if len(secret) != 64:
            raise KeypairError("bad_secret_length", f"secret key must be 64 (or 32) bytes; got {len(secret)}")
        kp = cls.from_seed(secret[:32])
        if kp.public_key_bytes() != secret[32:]:
            raise KeypairError("pubkey_mismatch", "embedded public key does not match the seed")
        return kp

    def seed(self) -> bytes:
        return self.private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())

    def secret_key(self) -> bytes:
        return self.seed() + self.public_key_bytes()

    def public_key_bytes(self) -> bytes:
        return self.private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)

    @property
    def public_key(self) -> str:
        return self.public_key_bytes().hex()

    def sign(self, message: bytes) -> str:
        return sign_ed25519(message=message, privkey=self.private_key)


def _byte_list(values: List[Any]) -> bytes:
    try:
        return bytes(int(v) for v in values)
    except (TypeError, ValueError) as e:
        raise KeypairError("bad_secret_bytes", f"secret key values must be bytes 0..255: {e}") from e


def _secret_from_obj(obj: Any) -> bytes:
    if isinstance(obj, list):
        return _byte_list(obj)

    if not isinstance(obj, dict):
        raise KeypairError("bad_artifact", "keypair artifact must be a JSON object or array")

    if isinstance(obj.get("_keypair"), dict):
        return _secret_from_obj(obj["_keypair"].get("secretKey"))

    sk = obj.get("secret_key")
    if isinstance(sk, str):
        try:
            return decode_bytes(sk)
        except ValueError as e:
            raise KeypairError("bad_secret_encoding", str(e)) from e

    # {"0": 12, "1": 250, ...}
    if obj and all(isinstance(k, str) and k.isdigit() for k in obj.keys()):
        ordered = [obj[k] for k in sorted(obj.keys(), key=int)]
        return _byte_list(ordered)

    raise KeypairError("bad_artifact", "keypair artifact has no secret key")


def load_keypair_file(path: str | Path) -> Keypair:
    p = Path(path).expanduser()
    if not p.is_file():
        raise KeypairError("not_found", f"keypair artifact not found: {p}")
    try:
        obj = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise KeypairError("invalid_json", f"keypair artifact is not JSON: {e}") from e
    return Keypair.from_secret_key(_secret_from_obj(obj))


def write_keypair_file(path: str | Path, keypair: Keypair | None = None, *, overwrite: bool = False) -> Keypair:
    """Write a keypair artifact in the `_keypair.secretKey` shape. Returns the keypair."""
    kp = keypair or Keypair.generate()
    p = Path(path).expanduser()
    if p.exists() and not overwrite:
        raise KeypairError("exists", f"refusing to overwrite keypair artifact: {p}")

    secret = kp.secret_key()
    obj = {
        "_keypair": {
            "publicKey": {str(i): b for i, b in enumerate(kp.public_key_bytes())},
            "secretKey": {str(i): b for i, b in enumerate(secret)},
        }
    }
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    tmp.write_text(json.dumps(obj), encoding="utf-8")
    os.chmod(tmp, 0o600)
    os.replace(tmp, p)
    return kp
