from __future__ import annotations

import base64

import pytest

from gifportal.crypto.sig import (
    canonical_tx_message,
    decode_bytes,
    missing_signers,
    sign_ed25519,
    verify_ed25519_signature,
)
from gifportal.testing.keys import deterministic_keypair


def _msg(**kw) -> bytes:
    base = dict(
        program_id="aa" * 32,
        instruction="addGif",
        accounts={"user": "bb" * 32, "baseAccount": "cc" * 32},
        args={"gifLink": "x.gif"},
        fee_payer="bb" * 32,
        recent_blockhash="dd" * 32,
        signers=["bb" * 32],
    )
    base.update(kw)
    return canonical_tx_message(**base)


def test_decode_bytes_accepts_hex_and_base64() -> None:
    assert decode_bytes("00ff") == b"\x00\xff"
    assert decode_bytes(base64.b64encode(b"hello!").decode("ascii")) == b"hello!"
    with pytest.raises(ValueError):
        decode_bytes("   ")


def test_canonical_message_is_order_independent() -> None:
    a = _msg(accounts={"user": "bb" * 32, "baseAccount": "cc" * 32}, signers=["22", "11"])
    b = _msg(accounts={"baseAccount": "cc" * 32, "user": "bb" * 32}, signers=["11", "22"])
    assert a == b
    assert _msg(args={"gifLink": "y.gif"}) != a


def test_sign_and_verify_roundtrip() -> None:
    kp = deterministic_keypair(label="alice")
    msg = _msg()
    sig = kp.sign(msg)
    assert verify_ed25519_signature(message=msg, sig=sig, pubkey=kp.public_key)
    assert not verify_ed25519_signature(message=msg + b"x", sig=sig, pubkey=kp.public_key)

    # String seed form signs identically.
    assert sign_ed25519(message=msg, privkey=kp.seed().hex()) == sig
    b64 = sign_ed25519(message=msg, privkey=kp.private_key, encoding="b64")
    assert verify_ed25519_signature(message=msg, sig=b64, pubkey=kp.public_key)


def test_verify_rejects_garbage_inputs() -> None:
    assert not verify_ed25519_signature(message=b"m", sig="zz", pubkey="00" * 32)
    assert not verify_ed25519_signature(message=b"m", sig="00" * 64, pubkey="abcd")


def test_missing_signers_reports_absent_and_invalid() -> None:
    alice = deterministic_keypair(label="alice")
    bob = deterministic_keypair(label="bob")
    tx = {
        "program_id": "aa" * 32,
        "instruction": "startStuffOff",
        "accounts": {"baseAccount": bob.public_key, "user": alice.public_key},
        "args": {},
        "fee_payer": alice.public_key,
        "recent_blockhash": "dd" * 32,
        "signatures": {alice.public_key: "", bob.public_key: ""},
    }
    msg = canonical_tx_message(
        program_id=tx["program_id"],
        instruction=tx["instruction"],
        accounts=tx["accounts"],
        args=tx["args"],
        fee_payer=tx["fee_payer"],
        recent_blockhash=tx["recent_blockhash"],
        signers=[alice.public_key, bob.public_key],
    )
    tx["signatures"] = {alice.public_key: alice.sign(msg), bob.public_key: alice.sign(msg)}

    assert missing_signers(tx, [alice.public_key, bob.public_key]) == [bob.public_key]

    tx["signatures"][bob.public_key] = bob.sign(msg)
    assert missing_signers(tx, [alice.public_key, bob.public_key]) == []
