from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Service Registry Reconciler CLI")
    p.add_argument("--api", default="http://localhost:8000", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("cache", help="List cached registry entries and their liveness")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--entry", default=None, help="Only events for this entry id")

    sub.add_parser("reconcile", help="Run one reconcile pass now")
    sub.add_parser("last-run", help="Show the last reconcile report")

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "cache":
        _print(requests.get(f"{base}/cache", timeout=10).json())
        return 0

    if args.cmd == "events":
        params = {"limit": args.limit}
        if args.entry:
            params["entry_id"] = args.entry
        _print(requests.get(f"{base}/events", params=params, timeout=10).json())
        return 0

    if args.cmd == "reconcile":
        r = requests.post(f"{base}/reconcile", timeout=120)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "last-run":
        _print(requests.get(f"{base}/runs/last", timeout=10).json())
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
