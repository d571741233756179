# src/gifportal/rpc/http.py
from __future__ import annotations

import base64
import binascii
import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx

from gifportal.crypto.sig import canonical_json
from gifportal.rpc.transport import AccountInfo, RpcError
from gifportal.structured_logging import log_event

Json = Dict[str, Any]

_ids = itertools.count(1)
_log = logging.getLogger("gifportal.rpc")


class HttpLedgerRpc:
    """
    JSON-RPC 2.0 ledger client over HTTP.

    - One httpx.AsyncClient per call; nothing is pooled across calls.
    - No retries. Transport timeouts and JSON-RPC error objects surface as RpcError.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not url:
            raise ValueError("rpc url must be non-empty")
        self.url = url
        self.timeout_s = float(timeout_s)
        # Test seam (httpx.MockTransport); None means the default network transport.
        self._transport = transport

    async def _call(self, method: str, params: List[Any]) -> Any:
        req_id = next(_ids)
        body = {"jsonrpc": "2.0", "id": req_id, "method": method, "params": params}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                resp = await client.post(self.url, json=body, headers={"Content-Type": "application/json"})
        except httpx.TimeoutException as e:
            log_event(_log, "rpc_timeout", level=logging.WARNING, method=method, url=self.url)
            raise RpcError("timeout", f"{method} timed out") from e
        except httpx.HTTPError as e:
            log_event(_log, "rpc_transport_error", level=logging.WARNING, method=method, error=str(e))
            raise RpcError("transport_error", f"{method} failed: {e}") from e

        if resp.status_code != 200:
            raise RpcError("http_status", f"{method} returned HTTP {resp.status_code}", {"status": resp.status_code})

        try:
            payload = resp.json()
        except ValueError as e:
            raise RpcError("invalid_json", f"{method} returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise RpcError("invalid_response", f"{method} response must be an object")

        err = payload.get("error")
        if isinstance(err, dict):
            raise RpcError(
                str(err.get("code", "rpc_error")),
                str(err.get("message") or f"{method} failed"),
                err.get("data"),
            )

        if "result" not in payload:
            raise RpcError("invalid_response", f"{method} response has no result")
        return payload["result"]

    async def get_account_info(self, address: str, *, commitment: str) -> Optional[AccountInfo]:
        result = await self._call("getAccountInfo", [address, {"encoding": "base64", "commitment": commitment}])
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            return None
        if not isinstance(value, dict):
            raise RpcError("invalid_response", "getAccountInfo value must be an object or null")

        data_field = value.get("data")
        if not isinstance(data_field, list) or len(data_field) != 2 or data_field[1] != "base64":
            raise RpcError("invalid_response", "getAccountInfo data must be [<b64>, 'base64']")
        try:
            data = base64.b64decode(str(data_field[0]), validate=True)
        except (binascii.Error, ValueError) as e:
            raise RpcError("invalid_response", f"getAccountInfo data is not base64: {e}") from e

        try:
            lamports = int(value.get("lamports") or 0)
        except (TypeError, ValueError) as e:
            raise RpcError("invalid_response", f"getAccountInfo lamports is not an integer: {e}") from e

        return AccountInfo(owner=str(value.get("owner") or ""), lamports=lamports, data=data)

    async def get_latest_blockhash(self, *, commitment: str) -> str:
        result = await self._call("getLatestBlockhash", [{"commitment": commitment}])
        value = result.get("value") if isinstance(result, dict) else None
        blockhash = value.get("blockhash") if isinstance(value, dict) else None
        if not isinstance(blockhash, str) or not blockhash:
            raise RpcError("invalid_response", "getLatestBlockhash returned no blockhash")
        return blockhash

    async def send_transaction(self, tx: Json, *, preflight_commitment: str) -> str:
        wire = base64.b64encode(canonical_json(tx)).decode("ascii")
        result = await self._call(
            "sendTransaction",
            [wire, {"encoding": "base64", "preflightCommitment": preflight_commitment}],
        )
        if not isinstance(result, str) or not result:
            raise RpcError("invalid_response", "sendTransaction returned no signature")
        return result
