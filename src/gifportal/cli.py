# src/gifportal/cli.py
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from gifportal.client.list_sync import ListSyncController, Populated
from gifportal.client.portal import build_controller
from gifportal.config import load_portal_config
from gifportal.crypto.keypair import KeypairError, write_keypair_file
from gifportal.env import load_dotenv_if_present
from gifportal.structured_logging import configure_structured_logging

Json = Dict[str, Any]


def _prompt_approve(public_key: str) -> bool:
    try:
        answer = input(f"Connect wallet {public_key} to the GIF portal? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _notice(msg: str) -> None:
    print(msg, file=sys.stderr)


def _view_json(ctl: ListSyncController) -> Json:
    view = ctl.view
    out: Json = {"state": view.state if view is not None else "not_loaded"}
    if isinstance(view, Populated):
        out["entries"] = [{"link": e.link, "submitter": e.submitter} for e in view.entries]
    return out


async def _open(ctl: ListSyncController) -> bool:
    """Startup, then an explicit connect if the silent one did not succeed."""
    await ctl.start()
    if not ctl.connection.session.present:
        await ctl.connect()
    return ctl.connection.session.present


async def _run_action(ctl: ListSyncController, action: str, link: Optional[str]) -> Json:
    connected = await _open(ctl)
    if not connected:
        return {"ok": False, "connected": False, "view": _view_json(ctl)}

    ok = True
    if action == "init":
        ok = await ctl.initialize_account()
    elif action == "add":
        ctl.set_input(link or "")
        ok = await ctl.submit()

    return {
        "ok": ok,
        "connected": True,
        "wallet_public_key": ctl.connection.session.wallet_public_key,
        "view": _view_json(ctl),
    }


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="gifportal", description="GIF portal client (shared on-chain GIF list)")
    ap.add_argument("--config", dest="config_path", default=None, help="JSON config file (or GIFPORTAL_CONFIG_PATH)")
    sub = ap.add_subparsers(dest="command", required=True)

    kg = sub.add_parser("keygen", help="write a new keypair artifact")
    kg.add_argument("path")
    kg.add_argument("--force", action="store_true", help="overwrite an existing artifact")

    sub.add_parser("show", help="connect and print the list")
    sub.add_parser("init", help="create the shared list account")

    add = sub.add_parser("add", help="append a GIF link to the list")
    add.add_argument("link")

    sub.add_parser("serve", help="run the HTTP API")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    load_dotenv_if_present()

    if args.command == "keygen":
        try:
            kp = write_keypair_file(args.path, overwrite=bool(args.force))
        except KeypairError as e:
            print(json.dumps({"ok": False, "error": {"code": e.code, "message": str(e)}}))
            return 1
        print(json.dumps({"ok": True, "path": str(args.path), "public_key": kp.public_key}))
        return 0

    cfg = load_portal_config(config_path=args.config_path)
    configure_structured_logging(cfg.log_level)

    if args.command == "serve":
        import uvicorn

        from gifportal.api.app import create_app

        ctl = build_controller(cfg, approve=lambda _pk: True)
        uvicorn.run(create_app(portal=ctl), host=cfg.api_host, port=cfg.api_port, log_level=cfg.log_level.lower())
        return 0

    ctl = build_controller(cfg, approve=_prompt_approve, notify=_notice)
    res = asyncio.run(_run_action(ctl, str(args.command), getattr(args, "link", None)))
    print(json.dumps(res, indent=2))
    return 0 if res.get("ok") else 1


if __name__ == "__main__":
    raise SystemExit(main())
