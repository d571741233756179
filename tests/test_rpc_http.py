from __future__ import annotations

import asyncio
import base64
import json
from dataclasses import replace

import httpx
import pytest

from gifportal.client.list_sync import Uninitialized
from gifportal.client.portal import build_controller
from gifportal.config import default_portal_config
from gifportal.rpc.http import HttpLedgerRpc
from gifportal.rpc.transport import LedgerRpc, RpcError
from gifportal.testing.keys import deterministic_keypair, write_test_keypair
from gifportal.wallet.local import KeypairWallet

URL = "http://rpc.test"


def _rpc(handler) -> HttpLedgerRpc:
    return HttpLedgerRpc(URL, timeout_s=2.0, transport=httpx.MockTransport(handler))


def _result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def test_http_rpc_satisfies_protocol() -> None:
    assert isinstance(HttpLedgerRpc(URL), LedgerRpc)
    with pytest.raises(ValueError):
        HttpLedgerRpc("")


def test_get_account_info_decodes_base64() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        value = {
            "owner": "aa" * 32,
            "lamports": 5,
            "data": [base64.b64encode(b"\x01\x02\x03").decode("ascii"), "base64"],
        }
        return _result(request, {"context": {"slot": 1}, "value": value})

    info = asyncio.run(_rpc(handler).get_account_info("bb" * 32, commitment="processed"))
    assert info is not None
    assert info.owner == "aa" * 32
    assert info.lamports == 5
    assert info.data == b"\x01\x02\x03"
    assert seen[0]["method"] == "getAccountInfo"
    assert seen[0]["params"] == ["bb" * 32, {"encoding": "base64", "commitment": "processed"}]


def test_get_account_info_null_value_is_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _result(request, {"context": {"slot": 1}, "value": None})

    assert asyncio.run(_rpc(handler).get_account_info("bb" * 32, commitment="processed")) is None


def test_blockhash_and_send_transaction() -> None:
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["method"] == "getLatestBlockhash":
            return _result(request, {"value": {"blockhash": "dd" * 32, "lastValidBlockHeight": 9}})
        sent.append(body)
        return _result(request, "sig123")

    rpc = _rpc(handler)
    assert asyncio.run(rpc.get_latest_blockhash(commitment="confirmed")) == "dd" * 32

    tx = {"instruction": "addGif", "args": {"gifLink": "a.gif"}}
    assert asyncio.run(rpc.send_transaction(tx, preflight_commitment="processed")) == "sig123"

    wire, opts = sent[0]["params"]
    assert json.loads(base64.b64decode(wire)) == tx
    assert opts == {"encoding": "base64", "preflightCommitment": "processed"}


def test_error_object_becomes_rpc_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        err = {"code": -32002, "message": "Transaction simulation failed", "data": {"logs": []}}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": err})

    with pytest.raises(RpcError) as ei:
        asyncio.run(_rpc(handler).get_latest_blockhash(commitment="processed"))
    assert ei.value.code == "-32002"
    assert ei.value.data == {"logs": []}


@pytest.mark.parametrize(
    "response, code",
    [
        (httpx.Response(503, text="busy"), "http_status"),
        (httpx.Response(200, text="not json"), "invalid_json"),
        (httpx.Response(200, json=[1, 2]), "invalid_response"),
        (httpx.Response(200, json={"jsonrpc": "2.0", "id": 1}), "invalid_response"),
    ],
)
def test_bad_responses(response: httpx.Response, code: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(RpcError) as ei:
        asyncio.run(_rpc(handler).get_latest_blockhash(commitment="processed"))
    assert ei.value.code == code


def test_timeout_and_transport_errors() -> None:
    def slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    def down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RpcError) as ei:
        asyncio.run(_rpc(slow).get_latest_blockhash(commitment="processed"))
    assert ei.value.code == "timeout"

    with pytest.raises(RpcError) as ei2:
        asyncio.run(_rpc(down).get_latest_blockhash(commitment="processed"))
    assert ei2.value.code == "transport_error"


def test_malformed_account_data_is_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _result(request, {"value": {"owner": "aa", "lamports": 1, "data": ["!!!", "base64"]}})

    with pytest.raises(RpcError) as ei:
        asyncio.run(_rpc(handler).get_account_info("bb" * 32, commitment="processed"))
    assert ei.value.code == "invalid_response"


def test_non_numeric_lamports_is_invalid_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _result(request, {"value": {"owner": "aa", "lamports": "lots", "data": ["", "base64"]}})

    with pytest.raises(RpcError) as ei:
        asyncio.run(_rpc(handler).get_account_info("bb" * 32, commitment="processed"))
    assert ei.value.code == "invalid_response"


def test_malformed_node_reply_leaves_list_uninitialized(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _result(request, {"value": {"owner": "aa", "lamports": "lots", "data": ["", "base64"]}})

    base_path = tmp_path / "base.json"
    write_test_keypair(base_path, label="base")
    cfg = replace(default_portal_config(), base_account_keypair_path=str(base_path))
    wallet = KeypairWallet(deterministic_keypair(label="alice"), trusted=True)
    ctl = build_controller(cfg, ledger=_rpc(handler), wallet=wallet)

    asyncio.run(ctl.start())
    assert ctl.connection.session.present is True
    assert isinstance(ctl.view, Uninitialized)
