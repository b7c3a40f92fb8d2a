#!/usr/bin/env python3
"""Run a workflow against the orchestrator from the command line and print each step result."""
import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

import httpx

ORCHESTRATOR_URL = os.environ.get("ORCHESTRATOR_BASE_URL", "http://127.0.0.1:8000")


def _trunc(s: Any, max_len: int = 100) -> str:
    s = str(s)
    return (s[:max_len] + "…") if len(s) > max_len else s


def _trace(label: str, body: Any, trace: bool, max_len: int = 2000) -> None:
    if not trace:
        return
    print(f"[{label}]", flush=True)
    raw = json.dumps(body, indent=2, default=str) if isinstance(body, (dict, list)) else str(body)
    print(raw[:max_len] + ("\n… (truncated)" if len(raw) > max_len else ""), flush=True)
    print("---", flush=True)


def build_request(args: argparse.Namespace, code: str) -> tuple[str, dict]:
    options = {"read_only": args.read_only}
    if args.stop_on_error:
        options["stop_on_error"] = True
    if args.command == "preset":
        return f"/agent/workflow/{args.workflow_id}", {"code": code, "options": options}
    if args.command == "custom":
        return "/agent/execute", {"goal": args.goal, "code": code, "options": options}
    body = {"prompt": args.prompt, "code": code, "models": args.models, "options": options}
    if args.command == "mesh":
        body["iterations"] = args.iterations
        return "/agent/all-to-all", body
    return {"compare": "/agent/compare", "chain": "/agent/chain"}[args.command], body


def print_result(data: dict) -> None:
    result = data.get("result") or {}
    print("Run ID:", data.get("run_id") or "(not recorded)", flush=True)
    print("Status:", data.get("status"), flush=True)
    for i, r in enumerate(result.get("results") or []):
        who = r.get("model") or r.get("step_name") or "?"
        where = f" r{r['round']}" if r.get("round") else ""
        if r.get("success"):
            print(f"  [{i}] {who}{where}: {_trunc(r.get('output'), 150)}", flush=True)
        else:
            print(f"  [{i}] {who}{where}: FAILED {r.get('error')}", flush=True)
    usage = result.get("total_usage") or {}
    print(f"Tokens: {usage.get('total_tokens', 0)}  Duration: {result.get('duration_ms', 0)} ms", flush=True)
    print("---", flush=True)
    print("Final output:", flush=True)
    print(result.get("final_output"), flush=True)


def main():
    parser = argparse.ArgumentParser(description="Run a code workflow through the orchestrator.")
    parser.add_argument("--url", default=ORCHESTRATOR_URL, help="Orchestrator base URL")
    parser.add_argument("--file", help="Read code from this file (default: stdin)")
    parser.add_argument("--read-only", action="store_true", help="Describe changes instead of rewriting code")
    parser.add_argument("--stop-on-error", action="store_true")
    parser.add_argument("--trace", action="store_true", help="Print request and response bodies")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List preset workflows")
    p = sub.add_parser("preset")
    p.add_argument("workflow_id")
    p = sub.add_parser("custom")
    p.add_argument("goal")
    for name in ("compare", "chain", "mesh"):
        p = sub.add_parser(name)
        p.add_argument("prompt")
        p.add_argument("models", nargs="+")
        if name == "mesh":
            p.add_argument("--iterations", type=int, default=2)
    args = parser.parse_args()
    base = args.url.rstrip("/")

    try:
        if args.command == "list":
            r = httpx.get(f"{base}/agent/workflows", timeout=10)
            r.raise_for_status()
            for wf in r.json().get("workflows", []):
                print(f"{wf['id']:<16} {wf['steps']} steps  {wf['description']}")
            return
        code = Path(args.file).read_text(encoding="utf-8") if args.file else sys.stdin.read()
        path, body = build_request(args, code)
        _trace(f"POST {base}{path}", body, args.trace)
        r = httpx.post(f"{base}{path}", json=body, timeout=600)
        _trace(f"RESPONSE {r.status_code}", r.text, args.trace)
        r.raise_for_status()
        print_result(r.json())
    except httpx.ConnectError:
        print(f"Cannot reach orchestrator at {args.url}. Is it running?", file=sys.stderr)
        sys.exit(1)
    except httpx.HTTPStatusError as e:
        print(f"{e.response.status_code}: {e.response.text}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
