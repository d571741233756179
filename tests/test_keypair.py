from __future__ import annotations

import json
import os
import stat

import pytest

from gifportal.crypto.keypair import Keypair, KeypairError, load_keypair_file, write_keypair_file
from gifportal.testing.keys import deterministic_keypair


def test_write_then_load_keeps_identity(tmp_path) -> None:
    p = tmp_path / "keys" / "base.json"
    kp = write_keypair_file(p)

    loaded = load_keypair_file(p)
    assert loaded.public_key == kp.public_key
    assert len(bytes.fromhex(loaded.public_key)) == 32

    obj = json.loads(p.read_text(encoding="utf-8"))
    assert set(obj["_keypair"].keys()) == {"publicKey", "secretKey"}
    assert len(obj["_keypair"]["secretKey"]) == 64

    if os.name == "posix":
        assert stat.S_IMODE(p.stat().st_mode) == 0o600


def test_write_refuses_overwrite_without_flag(tmp_path) -> None:
    p = tmp_path / "base.json"
    write_keypair_file(p)
    with pytest.raises(KeypairError) as ei:
        write_keypair_file(p)
    assert ei.value.code == "exists"

    kp2 = write_keypair_file(p, overwrite=True)
    assert load_keypair_file(p).public_key == kp2.public_key


def test_load_accepts_byte_array_and_secret_key_string(tmp_path) -> None:
    kp = deterministic_keypair(label="base")

    arr = tmp_path / "arr.json"
    arr.write_text(json.dumps(list(kp.secret_key())), encoding="utf-8")
    assert load_keypair_file(arr).public_key == kp.public_key

    hx = tmp_path / "hex.json"
    hx.write_text(json.dumps({"secret_key": kp.seed().hex()}), encoding="utf-8")
    assert load_keypair_file(hx).public_key == kp.public_key


def test_load_rejects_mismatched_embedded_pubkey(tmp_path) -> None:
    a = deterministic_keypair(label="a")
    b = deterministic_keypair(label="b")
    p = tmp_path / "bad.json"
    p.write_text(json.dumps(list(a.seed() + b.public_key_bytes())), encoding="utf-8")

    with pytest.raises(KeypairError) as ei:
        load_keypair_file(p)
    assert ei.value.code == "pubkey_mismatch"


def test_load_errors_have_codes(tmp_path) -> None:
    with pytest.raises(KeypairError) as ei:
        load_keypair_file(tmp_path / "missing.json")
    assert ei.value.code == "not_found"

    p = tmp_path / "junk.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(KeypairError) as ei2:
        load_keypair_file(p)
    assert ei2.value.code == "invalid_json"

    p.write_text(json.dumps({"hello": "world"}), encoding="utf-8")
    with pytest.raises(KeypairError) as ei3:
        load_keypair_file(p)
    assert ei3.value.code == "bad_artifact"

    with pytest.raises(KeypairError):
        Keypair.from_secret_key(b"\x01" * 10)


def test_deterministic_keypair_is_stable() -> None:
    assert deterministic_keypair(label="x").public_key == deterministic_keypair(label="x").public_key
    assert deterministic_keypair(label="x").public_key != deterministic_keypair(label="y").public_key
